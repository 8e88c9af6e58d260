"""
Opponent Analyzer

Turns per-frame opponent zone reads into a short list of tactical notes
for the session review. At most three notes, never the same text twice.
"""

from typing import List, Optional
import logging

from .pose_metrics import DepthPosition, LateralBias, OpponentInfo

logger = logging.getLogger(__name__)


DEEP_NOTE = "Opponent staying deep, use depth to push them back."
CHEATING_FOREHAND_NOTE = "Opponent cheating to forehand, open court on backhand."
FAVORING_BACKHAND_NOTE = "Opponent favoring backhand side, attack forehand."
AT_NET_NOTE = "Opponent at net, consider lobs or passing shots."

SHALLOW_NOTES = {
    LateralBias.FOREHAND: CHEATING_FOREHAND_NOTE,
    LateralBias.BACKHAND: FAVORING_BACKHAND_NOTE,
    LateralBias.CENTER: AT_NET_NOTE,
}


def tactical_note_for(info: OpponentInfo) -> Optional[str]:
    """First-match table lookup; None for mid-court or unknown zones."""
    if info.depth_position == DepthPosition.DEEP:
        return DEEP_NOTE
    if info.depth_position == DepthPosition.SHALLOW:
        return SHALLOW_NOTES.get(info.lateral_bias)
    return None


class OpponentAnalyzer:
    """Collects deduplicated tactical notes over one session."""

    MIN_CONFIDENCE = 0.5
    MAX_NOTES = 3

    def __init__(self):
        self.notes: List[str] = []

    def process(self, info: OpponentInfo) -> Optional[str]:
        """
        Consider one opponent sample.

        Returns the note if a new one was added.
        """
        if not info.is_visible or info.confidence < self.MIN_CONFIDENCE:
            return None
        if len(self.notes) >= self.MAX_NOTES:
            return None

        note = tactical_note_for(info)
        if note is None or note in self.notes:
            return None

        self.notes.append(note)
        logger.info("Opponent note: %s", note)
        return note

    def reset(self):
        self.notes.clear()
