"""
Tests for Issue Tracking

Occurrence threshold, severity boundaries and ranking.
Run with: pytest tests/test_issues.py -v
"""

import pytest
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from racket_coach.issues import IssueTracker, IssueType, Severity
from pose_fixtures import HEALTHY, make_metrics


def knee_frame(value=0.2, confidence=0.8):
    return make_metrics(knee=(value, confidence), **HEALTHY)


class TestIssueCounting:
    """Test per-frame issue detection."""

    def setup_method(self):
        self.tracker = IssueTracker()

    def test_counts_low_knee_bend(self):
        hits = self.tracker.record(knee_frame())

        assert hits == [IssueType.INSUFFICIENT_KNEE_BEND]
        assert self.tracker.occurrences(IssueType.INSUFFICIENT_KNEE_BEND) == 1

    def test_ignores_unreliable_frames(self):
        # Only the knee is reliable, so the frame as a whole is not
        self.tracker.record(make_metrics(knee=(0.2, 0.8)))
        assert self.tracker.counters() == {}

    def test_ignores_unreliable_field(self):
        self.tracker.record(make_metrics(knee=(0.2, 0.45), **HEALTHY))
        assert self.tracker.occurrences(IssueType.INSUFFICIENT_KNEE_BEND) == 0

    def test_threshold_is_strict(self):
        self.tracker.record(knee_frame(value=0.4))
        assert self.tracker.occurrences(IssueType.INSUFFICIENT_KNEE_BEND) == 0

    def test_late_preparation(self):
        metrics = make_metrics(
            movement=(0.6, 0.8), knee=(0.8, 0.8), rotation=(0.8, 0.8),
            spacing=(0.2, 0.7), balance=(0.9, 0.8),
        )
        hits = self.tracker.record(metrics)

        assert IssueType.TIGHT_SPACING in hits
        assert IssueType.LATE_PREPARATION in hits
        assert self.tracker.average_confidence(IssueType.LATE_PREPARATION) == pytest.approx(0.7)

    def test_no_late_preparation_when_still(self):
        metrics = make_metrics(
            movement=(0.1, 0.8), rotation=(0.8, 0.8), spacing=(0.2, 0.7), balance=(0.9, 0.8),
        )
        assert IssueType.LATE_PREPARATION not in self.tracker.record(metrics)

    def test_slow_recovery_mid_rally(self):
        burst = make_metrics(movement=(0.8, 0.8), **HEALTHY)
        stall = make_metrics(movement=(0.1, 0.8), **HEALTHY)

        self.tracker.record(burst, in_rally=True)
        hits = self.tracker.record(stall, in_rally=True)

        assert hits == [IssueType.SLOW_RECOVERY]

    def test_no_slow_recovery_outside_rally(self):
        burst = make_metrics(movement=(0.8, 0.8), **HEALTHY)
        stall = make_metrics(movement=(0.1, 0.8), **HEALTHY)

        self.tracker.record(burst)
        assert self.tracker.record(stall) == []

    def test_confidence_history_bounded(self):
        for i in range(25):
            self.tracker.record(knee_frame(confidence=0.5 if i < 5 else 0.9))

        assert self.tracker.occurrences(IssueType.INSUFFICIENT_KNEE_BEND) == 25
        # Only the last 20 confidences are kept, all 0.9
        assert self.tracker.average_confidence(IssueType.INSUFFICIENT_KNEE_BEND) == pytest.approx(0.9)


class TestFinalize:
    """Test the review list built at session end."""

    def setup_method(self):
        self.tracker = IssueTracker()

    def record_knee(self, times):
        for _ in range(times):
            self.tracker.record(knee_frame())

    def test_needs_three_occurrences(self):
        self.record_knee(2)
        assert self.tracker.finalize() == []

        self.record_knee(1)
        issues = self.tracker.finalize()
        assert len(issues) == 1
        assert issues[0].kind == IssueType.INSUFFICIENT_KNEE_BEND
        assert issues[0].severity == Severity.LOW

    def test_severity_boundaries(self):
        assert IssueTracker.severity_for(4) == Severity.LOW
        assert IssueTracker.severity_for(5) == Severity.MEDIUM
        assert IssueTracker.severity_for(9) == Severity.MEDIUM
        assert IssueTracker.severity_for(10) == Severity.HIGH

    def test_ranking_and_cap(self):
        every_issue = make_metrics(
            movement=(0.6, 0.8), knee=(0.1, 0.8), rotation=(0.1, 0.8),
            spacing=(0.1, 0.8), balance=(0.1, 0.8),
        )
        for _ in range(4):
            self.tracker.record(every_issue)
        # Push rotation to medium
        for _ in range(2):
            self.tracker.record(make_metrics(rotation=(0.1, 0.8), spacing=(0.9, 0.8), balance=(0.9, 0.8)))

        issues = self.tracker.finalize(timestamp=42.0)

        assert len(issues) == 3
        assert issues[0].kind == IssueType.LIMITED_ROTATION
        assert issues[0].severity == Severity.MEDIUM
        # Ties at 4 low-severity occurrences fall back to declaration order
        assert [i.kind for i in issues[1:]] == [
            IssueType.INSUFFICIENT_KNEE_BEND,
            IssueType.LATE_PREPARATION,
        ]
        assert issues[0].timestamp == 42.0

    def test_raw_counters_keep_dropped_issues(self):
        self.record_knee(2)
        self.tracker.finalize()
        assert self.tracker.counters() == {IssueType.INSUFFICIENT_KNEE_BEND: 2}

    def test_reset(self):
        self.record_knee(5)
        self.tracker.reset()
        assert self.tracker.counters() == {}
        assert self.tracker.finalize() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
