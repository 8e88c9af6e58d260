"""
Coaching Policy - Decides What The Coach Says

Turns smoothed metrics plus session issue counters into at most one
short cue. Rules:
1. One sentence, body/timing/tactics only - never racket mechanics
2. Speak only when an issue was seen at least 3 times AND the current
   read is confident
3. Priority order: spacing > preparation > balance/knees
4. No back-to-back repeat of the same kind once there is some history
5. Low confidence means silence, not "I'm not sure"

Cadence (one cue per 20 seconds) is enforced by the session, not here.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional
from enum import Enum
import logging
import random

from .issues import IssueType
from .pose_metrics import DepthPosition, LateralBias, OpponentInfo, PoseMetrics

logger = logging.getLogger(__name__)


class CueType(Enum):
    """Cue kinds; the value is the priority (lower speaks first)."""
    FOOTWORK_SPACING = 1
    EARLY_PREPARATION = 2
    BALANCE_RECOVERY = 3
    TACTICAL_POSITION = 4
    UNSURE = 99

    @property
    def priority(self) -> int:
        return self.value


SPACING_CUES = [
    "Give yourself more space from the ball.",
    "Step back to create room.",
    "You're a bit close, widen your stance.",
    "Make space before contact.",
]

PREPARATION_CUES = [
    "Turn earlier before the bounce.",
    "Get your body sideways sooner.",
    "Start your turn as the ball leaves their racket.",
    "Earlier shoulder turn.",
]

KNEE_BEND_CUES = [
    "Bend your knees more, stay athletic.",
    "Lower your center of gravity.",
    "Sit into your legs.",
    "More knee flex.",
]

BALANCE_CUES = [
    "Recover faster after the shot.",
    "Get back to center.",
    "Reset your balance quicker.",
    "Stay centered between shots.",
]


@dataclass(frozen=True)
class Cue:
    """A single coaching sentence chosen by the policy."""
    kind: CueType
    text: str
    confidence: float
    triggered_by: str = ""

    @property
    def priority(self) -> int:
        return self.kind.priority

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind.name.lower(),
            "text": self.text,
            "confidence": round(self.confidence, 3),
            "priority": self.priority,
            "triggered_by": self.triggered_by,
        }


class CoachingPolicy:
    """
    Priority-ordered, confidence-gated cue selector.

    Holds nothing about the session except a short history of the cue
    kinds it emitted, used for anti-repetition.
    """

    SPEAKING_CONFIDENCE = 0.5
    MIN_OCCURRENCES = 3
    MAX_HISTORY = 5

    SPACING_THRESHOLD = 0.4
    ROTATION_THRESHOLD = 0.3
    KNEE_THRESHOLD = 0.3
    BALANCE_THRESHOLD = 0.4

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.history: Deque[CueType] = deque(maxlen=self.MAX_HISTORY)

    @property
    def last_kind(self) -> Optional[CueType]:
        return self.history[-1] if self.history else None

    def select(
        self,
        metrics: PoseMetrics,
        issue_counters: Dict[IssueType, int],
        min_occurrences: Optional[int] = None,
    ) -> Optional[Cue]:
        """
        Pick the cue to speak now, or None for silence.

        Only call this once the cadence gate has allowed a cue.
        """
        min_occurrences = self.MIN_OCCURRENCES if min_occurrences is None else min_occurrences
        candidates = self.build_candidates(metrics, issue_counters, min_occurrences)
        candidates.sort(key=lambda c: c.priority)

        for candidate in candidates:
            if candidate.confidence < self.SPEAKING_CONFIDENCE:
                continue
            # Same kind twice in a row is allowed once, not after that
            if candidate.kind == self.last_kind and len(self.history) >= 2:
                continue

            self._record(candidate.kind)
            logger.debug("Selected %s cue (%s)", candidate.kind.name, candidate.triggered_by)
            return candidate

        return None

    def build_candidates(
        self,
        metrics: PoseMetrics,
        issue_counters: Dict[IssueType, int],
        min_occurrences: int,
    ) -> List[Cue]:
        candidates = []
        for check in (self._spacing_cue, self._preparation_cue, self._balance_cue):
            cue = check(metrics, issue_counters, min_occurrences)
            if cue is not None:
                candidates.append(cue)
        return candidates

    def _spacing_cue(self, metrics, counters, min_occurrences) -> Optional[Cue]:
        spacing = metrics.spacing
        if not spacing.is_reliable:
            return None
        if (spacing.value < self.SPACING_THRESHOLD
                and counters.get(IssueType.TIGHT_SPACING, 0) >= min_occurrences):
            return Cue(
                kind=CueType.FOOTWORK_SPACING,
                text=self.rng.choice(SPACING_CUES),
                confidence=spacing.confidence,
                triggered_by="tight_spacing",
            )
        return None

    def _preparation_cue(self, metrics, counters, min_occurrences) -> Optional[Cue]:
        rotation = metrics.torso_rotation
        if (rotation.is_reliable and rotation.value < self.ROTATION_THRESHOLD
                and counters.get(IssueType.LIMITED_ROTATION, 0) >= min_occurrences):
            return Cue(
                kind=CueType.EARLY_PREPARATION,
                text=self.rng.choice(PREPARATION_CUES),
                confidence=rotation.confidence,
                triggered_by="limited_rotation",
            )

        if counters.get(IssueType.LATE_PREPARATION, 0) >= min_occurrences:
            # Late prep is derived from spacing, so fall back to its confidence
            confidence = rotation.confidence if rotation.is_reliable else metrics.spacing.confidence
            return Cue(
                kind=CueType.EARLY_PREPARATION,
                text=self.rng.choice(PREPARATION_CUES),
                confidence=confidence,
                triggered_by="late_preparation",
            )
        return None

    def _balance_cue(self, metrics, counters, min_occurrences) -> Optional[Cue]:
        knee = metrics.knee_bend
        balance = metrics.balance

        if (knee.is_reliable and knee.value < self.KNEE_THRESHOLD
                and counters.get(IssueType.INSUFFICIENT_KNEE_BEND, 0) >= min_occurrences):
            return Cue(
                kind=CueType.BALANCE_RECOVERY,
                text=self.rng.choice(KNEE_BEND_CUES),
                confidence=knee.confidence,
                triggered_by="insufficient_knee_bend",
            )

        if (balance.is_reliable and balance.value < self.BALANCE_THRESHOLD
                and counters.get(IssueType.POOR_BALANCE, 0) >= min_occurrences):
            return Cue(
                kind=CueType.BALANCE_RECOVERY,
                text=self.rng.choice(BALANCE_CUES),
                confidence=balance.confidence,
                triggered_by="poor_balance",
            )
        return None

    def tactical_cue(self, opponent: OpponentInfo) -> Optional[str]:
        """
        Pure mapping from opponent position to a tactical sentence.

        No history and no rate limit; callers decide when to surface it.
        """
        if not opponent.is_visible or opponent.confidence < self.SPEAKING_CONFIDENCE:
            return None

        if opponent.depth_position == DepthPosition.DEEP:
            return "Opponent is staying deep, use depth."
        if opponent.depth_position == DepthPosition.SHALLOW:
            return {
                LateralBias.FOREHAND: "They're cheating forehand, go backhand.",
                LateralBias.BACKHAND: "Open court on the forehand side.",
                LateralBias.CENTER: "They're at net, consider a lob.",
            }.get(opponent.lateral_bias)
        return None

    def _record(self, kind: CueType):
        self.history.append(kind)

    def reset(self):
        self.history.clear()
