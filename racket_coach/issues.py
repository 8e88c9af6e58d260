"""
Issue Tracker Module

Aggregates per-frame metric deficiencies into session-level issues.

Each issue kind keeps a monotonic occurrence counter and a short
confidence history. At session end the counters are finalized into
a ranked list of at most three SessionIssues.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional
from enum import Enum
import logging
import time

from .pose_metrics import ConfidenceValue, PoseMetrics

logger = logging.getLogger(__name__)


class IssueType(Enum):
    """Recurring deficiencies, in declaration order (used for tie-breaks)."""
    INSUFFICIENT_KNEE_BEND = "Knee Bend"
    LATE_PREPARATION = "Late Preparation"
    POOR_BALANCE = "Balance"
    TIGHT_SPACING = "Spacing"
    SLOW_RECOVERY = "Recovery"
    LIMITED_ROTATION = "Rotation"

    @property
    def order(self) -> int:
        return list(IssueType).index(self)


class Severity(Enum):
    """How often an issue showed up."""
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class SessionIssue:
    """A finalized issue, created only when the session ends."""
    kind: IssueType
    severity: Severity
    occurrences: int
    average_confidence: float
    timestamp: float

    @property
    def display_name(self) -> str:
        return self.kind.value

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind.name.lower(),
            "name": self.display_name,
            "severity": self.severity.label,
            "occurrences": self.occurrences,
            "average_confidence": round(self.average_confidence, 3),
        }


class IssueTracker:
    """
    Counts threshold-crossing metrics across a session.

    Only reliable frames are counted, and within them only individually
    reliable metrics. Late preparation is derived: movement without
    enough space in the same frame.
    """

    ISSUE_THRESHOLD = 0.4          # Below this = issue
    LATE_PREP_MOVEMENT = 0.3       # Moving faster than this...
    MIN_OCCURRENCES = 3            # ...and seen at least this often
    MAX_CONFIDENCE_HISTORY = 20
    MEDIUM_SEVERITY_AT = 5
    HIGH_SEVERITY_AT = 10
    MAX_ISSUES = 3

    # Recovery: a burst of movement followed by a stall while rallying
    RECOVERY_BURST = 0.5
    RECOVERY_STALL = 0.2

    def __init__(self):
        self._counters: Dict[IssueType, int] = {}
        self._confidences: Dict[IssueType, Deque[float]] = {}
        self._previous: Optional[PoseMetrics] = None

    def record(self, metrics: PoseMetrics, in_rally: bool = False) -> List[IssueType]:
        """
        Count issues in one frame.

        Returns the issue kinds that were incremented.
        """
        if not metrics.is_reliable:
            return []

        hits = []
        checks = (
            (IssueType.INSUFFICIENT_KNEE_BEND, metrics.knee_bend),
            (IssueType.LIMITED_ROTATION, metrics.torso_rotation),
            (IssueType.TIGHT_SPACING, metrics.spacing),
            (IssueType.POOR_BALANCE, metrics.balance),
        )
        for kind, value in checks:
            if self._below_threshold(value):
                self._increment(kind, value.confidence)
                hits.append(kind)

        movement = metrics.movement_intensity
        if (movement.is_reliable and movement.value > self.LATE_PREP_MOVEMENT
                and self._below_threshold(metrics.spacing)):
            self._increment(IssueType.LATE_PREPARATION, metrics.spacing.confidence)
            hits.append(IssueType.LATE_PREPARATION)

        if in_rally and self._is_slow_recovery(metrics):
            self._increment(IssueType.SLOW_RECOVERY, metrics.movement_intensity.confidence)
            hits.append(IssueType.SLOW_RECOVERY)

        self._previous = metrics
        return hits

    def _below_threshold(self, value: ConfidenceValue) -> bool:
        return value.is_reliable and value.value < self.ISSUE_THRESHOLD

    def _is_slow_recovery(self, metrics: PoseMetrics) -> bool:
        if self._previous is None:
            return False
        before = self._previous.movement_intensity
        after = metrics.movement_intensity
        return (before.is_reliable and before.value > self.RECOVERY_BURST
                and after.is_reliable and after.value < self.RECOVERY_STALL)

    def _increment(self, kind: IssueType, confidence: float):
        self._counters[kind] = self._counters.get(kind, 0) + 1
        history = self._confidences.setdefault(
            kind, deque(maxlen=self.MAX_CONFIDENCE_HISTORY)
        )
        history.append(confidence)

    def occurrences(self, kind: IssueType) -> int:
        return self._counters.get(kind, 0)

    def counters(self) -> Dict[IssueType, int]:
        """Raw counts, including issues that never make the review."""
        return dict(self._counters)

    def average_confidence(self, kind: IssueType) -> float:
        history = self._confidences.get(kind)
        if not history:
            return 0.0
        return sum(history) / len(history)

    @classmethod
    def severity_for(cls, occurrences: int) -> Severity:
        if occurrences >= cls.HIGH_SEVERITY_AT:
            return Severity.HIGH
        if occurrences >= cls.MEDIUM_SEVERITY_AT:
            return Severity.MEDIUM
        return Severity.LOW

    def finalize(self, timestamp: Optional[float] = None) -> List[SessionIssue]:
        """
        Turn counters into the ranked review list.

        Ranking: severity, then occurrences, then declaration order.
        """
        timestamp = time.monotonic() if timestamp is None else timestamp
        issues = [
            SessionIssue(
                kind=kind,
                severity=self.severity_for(count),
                occurrences=count,
                average_confidence=self.average_confidence(kind),
                timestamp=timestamp,
            )
            for kind, count in self._counters.items()
            if count >= self.MIN_OCCURRENCES
        ]
        issues.sort(key=lambda i: (-i.severity.value, -i.occurrences, i.kind.order))

        if len(issues) > self.MAX_ISSUES:
            dropped = [i.display_name for i in issues[self.MAX_ISSUES:]]
            logger.debug("Dropping lower-ranked issues from review: %s", dropped)
        return issues[:self.MAX_ISSUES]

    def reset(self):
        self._counters.clear()
        self._confidences.clear()
        self._previous = None
