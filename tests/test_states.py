"""
Tests for the Session State Machine

Lifecycle, clock-driven transitions, mute and the cue cadence gate.
Run with: pytest tests/test_states.py -v
"""

import pytest
import random
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from racket_coach.coaching_policy import CoachingPolicy, CueType
from racket_coach.issues import IssueType
from racket_coach.pose_metrics import DepthPosition, LateralBias, OpponentInfo
from racket_coach.states import Focus, SessionManager, SessionState
from pose_fixtures import HEALTHY, make_metrics


def spacing_frame():
    return make_metrics(knee=(0.8, 0.8), rotation=(0.8, 0.8), spacing=(0.2, 0.8), balance=(0.9, 0.8))


class TestLifecycle:
    """Test start/end and wrong-state no-ops."""

    def setup_method(self):
        self.session = SessionManager(policy=CoachingPolicy(rng=random.Random(1)))

    def test_start_enters_warmup(self):
        assert self.session.start(Focus.FOREHAND, now=0.0)
        assert self.session.state == SessionState.WARMUP
        assert self.session.is_active
        assert self.session.focus == Focus.FOREHAND

    def test_start_while_active_is_noop(self):
        self.session.start(now=0.0)
        self.session.tick(now=30.0)
        assert not self.session.start(Focus.SERVE, now=31.0)
        assert self.session.focus == Focus.GENERAL
        assert self.session.duration == pytest.approx(30.0)

    def test_end_while_idle_is_noop(self):
        assert not self.session.end(now=1.0)
        assert self.session.state == SessionState.IDLE

    def test_end_freezes_session(self):
        self.session.start(now=0.0)
        assert self.session.end(now=90.0)

        assert self.session.state == SessionState.REVIEW_READY
        assert not self.session.is_active
        assert self.session.duration == pytest.approx(90.0)
        assert self.session.tick(now=200.0) is None
        assert not self.session.set_focus(Focus.SERVE)

    def test_issues_stamped_with_session_clock(self):
        self.session.start(now=0.0)
        for _ in range(3):
            self.session.process_metrics(spacing_frame())
        self.session.end(now=90.0)

        assert self.session.detected_issues
        assert all(issue.timestamp == 90.0 for issue in self.session.detected_issues)

    def test_restart_discards_previous(self):
        self.session.start(now=0.0)
        for _ in range(4):
            self.session.process_metrics(spacing_frame())
        self.session.end(now=10.0)

        self.session.start(now=100.0)
        assert self.session.issue_tracker.counters() == {}
        assert self.session.detected_issues == []
        assert self.session.cue_count == 0


class TestClock:
    """Test duration-driven state changes."""

    def setup_method(self):
        self.session = SessionManager()

    def test_warmup_then_rally(self):
        self.session.start(now=0.0)
        assert self.session.tick(now=59.0) is None

        transition = self.session.tick(now=61.0)
        assert transition.from_state == SessionState.WARMUP
        assert transition.to_state == SessionState.RALLY

    def test_serve_focus_goes_to_serve_block(self):
        self.session.start(Focus.SERVE, now=0.0)
        self.session.tick(now=61.0)
        assert self.session.state == SessionState.SERVE_BLOCK

    def test_cooldown_after_thirty_minutes(self):
        self.session.start(now=0.0)
        self.session.tick(now=1800.0)
        assert self.session.state == SessionState.RALLY
        self.session.tick(now=1801.0)
        assert self.session.state == SessionState.COOLDOWN

    def test_callbacks_fire_on_entry(self):
        entered = []
        self.session.register_callback(SessionState.RALLY, lambda t: entered.append(t.to_state))
        self.session.start(now=0.0)
        self.session.tick(now=61.0)
        assert entered == [SessionState.RALLY]

    def test_callback_errors_are_contained(self):
        def broken(transition):
            raise ValueError("listener bug")

        self.session.register_callback(SessionState.WARMUP, broken)
        assert self.session.start(now=0.0)
        assert self.session.state == SessionState.WARMUP


class TestDataIntake:
    """Test what gets counted and when."""

    def setup_method(self):
        self.session = SessionManager()

    def test_nothing_counted_while_idle(self):
        assert self.session.process_metrics(spacing_frame()) == []
        assert len(self.session.metrics_history) == 0

    def test_unreliable_frames_kept_in_history_only(self):
        self.session.start(now=0.0)
        self.session.process_metrics(make_metrics(spacing=(0.2, 0.8)))

        assert len(self.session.metrics_history) == 1
        assert self.session.issue_tracker.counters() == {}

    def test_history_bounded(self):
        self.session.start(now=0.0)
        for _ in range(120):
            self.session.process_metrics(make_metrics(**HEALTHY))
        assert len(self.session.metrics_history) == 100

    def test_opponent_notes(self):
        self.session.start(now=0.0)
        deep = OpponentInfo(True, DepthPosition.DEEP, LateralBias.CENTER, 0.8)
        for _ in range(3):
            self.session.process_opponent_info(deep)
        assert len(self.session.opponent_notes) == 1


class TestCadenceGate:
    """At most one cue per 20 seconds, never while muted."""

    def setup_method(self):
        self.session = SessionManager(policy=CoachingPolicy(rng=random.Random(7)))
        self.session.start(now=0.0)
        for _ in range(3):
            self.session.process_metrics(spacing_frame())

    def test_first_cue_allowed(self):
        cue = self.session.next_cue(spacing_frame(), now=1.0)
        assert cue.kind == CueType.FOOTWORK_SPACING
        assert self.session.cue_count == 1
        assert self.session.last_cue_time == 1.0

    def test_no_cue_within_twenty_seconds(self):
        self.session.next_cue(spacing_frame(), now=1.0)
        for t in (2.0, 10.0, 20.9):
            assert self.session.next_cue(spacing_frame(), now=t) is None
        assert self.session.next_cue(spacing_frame(), now=21.0) is not None

    def test_mute_blocks_cues_but_not_counting(self):
        self.session.mute()
        assert self.session.next_cue(spacing_frame(), now=1.0) is None

        self.session.process_metrics(spacing_frame())
        assert self.session.issue_tracker.occurrences(IssueType.TIGHT_SPACING) == 4

        self.session.unmute()
        assert self.session.next_cue(spacing_frame(), now=2.0) is not None

    def test_silence_does_not_start_cooldown(self):
        healthy = make_metrics(**HEALTHY)
        assert self.session.next_cue(healthy, now=1.0) is None
        assert self.session.last_cue_time is None
        assert self.session.next_cue(spacing_frame(), now=2.0) is not None

    def test_no_cue_without_smoothed_metrics(self):
        assert self.session.next_cue(None, now=1.0) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
