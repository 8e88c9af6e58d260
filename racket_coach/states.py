"""
Session State Module

Owns one coaching session: lifecycle state, clock, mute flag, cue
cadence gate, issue counters and opponent notes.

State flow:
IDLE → WARMUP → RALLY / SERVE_BLOCK → COOLDOWN → REVIEW_READY

Wrong-state calls (start while active, end while inactive) are no-ops.
Once REVIEW_READY the session is frozen until the next start.
"""

from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional
from enum import Enum
import logging
import time

from .coaching_policy import CoachingPolicy, Cue
from .issues import IssueTracker, IssueType, SessionIssue
from .opponent import OpponentAnalyzer
from .pose_metrics import OpponentInfo, PoseMetrics
from .review import SessionReview, build_review

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle of a session; values are display names."""
    IDLE = "Idle"
    WARMUP = "Warm-up"
    RALLY = "Rally"
    SERVE_BLOCK = "Serve Practice"
    COOLDOWN = "Cool-down"
    REVIEW_READY = "Review Ready"


class Focus(Enum):
    """What the player asked to work on."""
    MOVEMENT = "Movement"
    FOREHAND = "Forehand"
    BACKHAND = "Backhand"
    SERVE = "Serve"
    GENERAL = "General"


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: SessionState
    to_state: SessionState
    timestamp: float
    trigger: str

    def to_dict(self) -> Dict:
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "timestamp": self.timestamp,
            "trigger": self.trigger,
        }


class SessionManager:
    """
    Single owner of session aggregates.

    Key rules:
    1. Only one session at a time; start resets everything
    2. Issues are only counted from reliable frames in an active session
    3. Muting stops cues but not data collection
    4. At most one cue per cadence window; a blocked cue is dropped
    """

    WARMUP_SECONDS = 60.0
    COOLDOWN_AFTER_SECONDS = 1800.0
    MAX_HISTORY = 100
    MIN_OCCURRENCES = 3

    def __init__(
        self,
        policy: Optional[CoachingPolicy] = None,
        min_cue_interval: float = 20.0,
    ):
        self.policy = policy or CoachingPolicy()
        self.min_cue_interval = min_cue_interval

        self.is_active = False
        self.state = SessionState.IDLE
        self.focus = Focus.GENERAL
        self.is_muted = False
        self.start_time: Optional[float] = None
        self.duration = 0.0
        self.last_cue_time: Optional[float] = None
        self.cue_count = 0

        self.issue_tracker = IssueTracker()
        self.opponent_analyzer = OpponentAnalyzer()
        self.metrics_history: Deque[PoseMetrics] = deque(maxlen=self.MAX_HISTORY)
        self.detected_issues: List[SessionIssue] = []
        self.transition_history: List[StateTransition] = []

        self._state_callbacks: Dict[SessionState, List[Callable[[StateTransition], None]]] = {
            state: [] for state in SessionState
        }

    # -- Session control ----------------------------------------------------

    def start(self, focus: Focus = Focus.GENERAL, now: Optional[float] = None) -> bool:
        """Start a fresh session. Returns False if one is already running."""
        if self.is_active:
            return False
        now = time.monotonic() if now is None else now

        self.focus = focus
        self.is_active = True
        self.start_time = now
        self.duration = 0.0
        self.cue_count = 0
        self.last_cue_time = None
        self.detected_issues = []
        self.metrics_history.clear()
        self.issue_tracker.reset()
        self.opponent_analyzer.reset()
        self.policy.reset()

        self.state = SessionState.IDLE
        self._transition(SessionState.WARMUP, now, "session_start")
        logger.info("Session started with focus: %s", focus.value)
        return True

    def end(self, now: Optional[float] = None) -> bool:
        """Finalize issues and freeze. Returns False if nothing was running."""
        if not self.is_active:
            return False
        now = time.monotonic() if now is None else now

        self.tick(now)
        self.detected_issues = self.issue_tracker.finalize(now)
        self._transition(SessionState.REVIEW_READY, now, "session_end")
        self.is_active = False

        logger.info(
            "Session ended. Duration: %.0fs, Cues: %d, Issues: %d",
            self.duration, self.cue_count, len(self.detected_issues)
        )
        return True

    def mute(self):
        self.is_muted = True
        logger.info("Muted")

    def unmute(self):
        self.is_muted = False
        logger.info("Unmuted")

    def set_focus(self, focus: Focus) -> bool:
        if self.state == SessionState.REVIEW_READY:
            return False
        self.focus = focus
        logger.info("Focus changed to: %s", focus.value)
        return True

    # -- Clock ----------------------------------------------------------------

    def tick(self, now: Optional[float] = None) -> Optional[StateTransition]:
        """Advance the session clock; call about once per second."""
        if not self.is_active or self.state == SessionState.REVIEW_READY:
            return None
        now = time.monotonic() if now is None else now

        self.duration = max(0.0, now - self.start_time)
        target = self._target_state()
        if target == self.state:
            return None
        return self._transition(target, now, "duration")

    def _target_state(self) -> SessionState:
        if self.duration < self.WARMUP_SECONDS:
            return SessionState.WARMUP
        if self.duration > self.COOLDOWN_AFTER_SECONDS:
            return SessionState.COOLDOWN
        if self.focus == Focus.SERVE:
            return SessionState.SERVE_BLOCK
        return SessionState.RALLY

    def register_callback(
        self,
        state: SessionState,
        callback: Callable[[StateTransition], None]
    ):
        """Register a callback to be called when entering a state."""
        self._state_callbacks[state].append(callback)

    def _transition(self, to_state: SessionState, now: float, trigger: str) -> StateTransition:
        transition = StateTransition(
            from_state=self.state,
            to_state=to_state,
            timestamp=now,
            trigger=trigger,
        )
        self.state = to_state
        self.transition_history.append(transition)
        logger.debug("State %s -> %s (%s)", transition.from_state.value, to_state.value, trigger)

        for callback in self._state_callbacks[to_state]:
            try:
                callback(transition)
            except Exception as e:
                logger.error("State callback error: %s", e)

        return transition

    # -- Data intake --------------------------------------------------------

    @property
    def is_collecting(self) -> bool:
        return self.is_active and self.state not in (SessionState.IDLE, SessionState.REVIEW_READY)

    def process_metrics(self, metrics: PoseMetrics) -> List[IssueType]:
        """Record one frame's metrics; returns the issues it counted."""
        if not self.is_collecting:
            return []

        self.metrics_history.append(metrics)
        if not metrics.is_reliable:
            return []

        return self.issue_tracker.record(metrics, in_rally=self.state == SessionState.RALLY)

    def process_opponent_info(self, info: OpponentInfo) -> Optional[str]:
        if not self.is_collecting:
            return None
        return self.opponent_analyzer.process(info)

    @property
    def opponent_notes(self) -> List[str]:
        return list(self.opponent_analyzer.notes)

    # -- Cues ---------------------------------------------------------------

    def should_generate_cue(self, now: Optional[float] = None) -> bool:
        """Cadence gate: active, not muted, and the last cue is old enough."""
        if not self.is_active or self.is_muted:
            return False
        if self.last_cue_time is None:
            return True
        now = time.monotonic() if now is None else now
        return now - self.last_cue_time >= self.min_cue_interval

    def next_cue(
        self,
        smoothed: Optional[PoseMetrics],
        now: Optional[float] = None,
    ) -> Optional[Cue]:
        """Ask the policy for a cue if the gate allows one right now."""
        now = time.monotonic() if now is None else now
        if not self.should_generate_cue(now) or smoothed is None:
            return None

        cue = self.policy.select(
            smoothed,
            self.issue_tracker.counters(),
            self.MIN_OCCURRENCES,
        )
        if cue is not None:
            self.last_cue_time = now
            self.cue_count += 1
            logger.info("Cue #%d: %s", self.cue_count, cue.text)
        return cue

    # -- Review -------------------------------------------------------------

    def generate_review(self, pose_success_rate: float, total_frames: int) -> SessionReview:
        return build_review(
            duration=self.duration,
            focus=self.focus.value,
            issues=self.detected_issues,
            opponent_notes=self.opponent_notes,
            cue_count=self.cue_count,
            pose_success_rate=pose_success_rate,
            total_frames=total_frames,
        )

    def to_dict(self) -> Dict:
        return {
            "is_active": self.is_active,
            "state": self.state.value,
            "focus": self.focus.value,
            "is_muted": self.is_muted,
            "duration": round(self.duration, 1),
            "cue_count": self.cue_count,
            "opponent_notes": self.opponent_notes,
            "issue_counters": {
                kind.name.lower(): count
                for kind, count in self.issue_tracker.counters().items()
            },
        }
