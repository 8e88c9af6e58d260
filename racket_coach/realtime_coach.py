"""
Real-Time Racket Coach Coordinator

The orchestrator that ties the coaching layers together:
1. Pose analyzer (metrics + opponent per frame)
2. Session manager (state, issue counters, cadence gate)
3. Coaching policy (what to say)
4. Review builder (what happened)

This is the single integration point for the service and the voice
layer. Frames are throttled to one per frame_interval; frames arriving
early are dropped, never queued. A lock serializes frames, commands and
clock ticks so only one caller touches session aggregates at a time.

The voice layer pulls from a single pending-cue slot. A newer cue
overwrites an unread older one.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional
import logging
import random
import threading
import time

from .coaching_policy import CoachingPolicy, Cue
from .commands import Command, CommandType, parse_command
from .issues import IssueType
from .pose_analyzer import PoseAnalyzer
from .pose_metrics import OpponentInfo, PoseDetector, PoseMetrics, Skeleton
from .review import SessionReview
from .states import Focus, SessionManager, SessionState, StateTransition

logger = logging.getLogger(__name__)


FOCUS_QUESTION = "What would you like to focus on today: movement, forehand, backhand, or serve?"
NEED_MORE_DATA = "Keep playing, I need more data to give specific feedback."

Listener = Callable[[str, Dict[str, Any]], None]


@dataclass
class CoachingUpdate:
    """Result of processing one accepted frame."""
    timestamp: float
    frame_number: int
    state: SessionState
    metrics: PoseMetrics
    opponent: OpponentInfo
    issues_counted: List[IssueType] = field(default_factory=list)
    tactical_note: Optional[str] = None
    cue: Optional[Cue] = None
    state_transition: Optional[StateTransition] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "frame_number": self.frame_number,
            "state": self.state.value,
            "metrics": self.metrics.to_dict(),
            "opponent": self.opponent.to_dict(),
            "issues_counted": [kind.name.lower() for kind in self.issues_counted],
            "tactical_note": self.tactical_note,
            "cue": self.cue.to_dict() if self.cue else None,
            "state_changed": self.state_transition is not None,
        }


class RacketCoach:
    """
    Real-time coaching coordinator.

    Feed it frames (or pre-detected skeletons), call tick() about once
    per second, and drain consume_pending_cue() from the voice layer.
    """

    MAX_LOGS = 50

    def __init__(
        self,
        frame_interval: float = 1.0,
        min_cue_interval: float = 20.0,
        window_size: int = 5,
        rng: Optional[random.Random] = None,
    ):
        self.frame_interval = frame_interval

        self.analyzer = PoseAnalyzer(window_size=window_size)
        self.policy = CoachingPolicy(rng=rng)
        self.session = SessionManager(policy=self.policy, min_cue_interval=min_cue_interval)

        self.pending_cue: Optional[str] = None
        self.last_cue: Optional[str] = None
        self.last_review: Optional[SessionReview] = None
        self.recent_logs: Deque[str] = deque(maxlen=self.MAX_LOGS)

        self._last_frame_time: Optional[float] = None
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

        for state in SessionState:
            self.session.register_callback(state, self._on_state_change)

    # -- Listeners ----------------------------------------------------------

    def register_listener(self, callback: Listener):
        """Register a callback(event, payload) for push updates."""
        self._listeners.append(callback)

    def _notify(self, event: str, payload: Dict[str, Any]):
        for callback in self._listeners:
            try:
                callback(event, payload)
            except Exception as e:
                logger.error("Listener error on %s: %s", event, e)

    def _on_state_change(self, transition: StateTransition):
        self._log(f"State: {transition.from_state.value} -> {transition.to_state.value}")
        self._notify("state_changed", transition.to_dict())

    # -- Session control ----------------------------------------------------

    @property
    def is_session_active(self) -> bool:
        return self.session.is_active

    def start_session(self, focus: Focus = Focus.GENERAL, now: Optional[float] = None) -> bool:
        with self._lock:
            if not self.session.start(focus, now):
                self._log("Session already active")
                return False

            self.analyzer.reset()
            self._last_frame_time = None
            self.last_cue = None
            self.last_review = None

            self._log(f"Session started with focus: {focus.value}")
            self.queue_cue(FOCUS_QUESTION)
            return True

    def end_session(self, now: Optional[float] = None) -> Optional[SessionReview]:
        """End the session and queue its spoken summary."""
        with self._lock:
            if not self.session.end(now):
                return None

            review = self.session.generate_review(
                pose_success_rate=self.analyzer.pose_success_rate,
                total_frames=self.analyzer.frame_count,
            )
            self.last_review = review
            self._log("Session ended. Generating review...")
            self.queue_cue(review.spoken_summary)
            self._notify("review_ready", review.to_dict())
            return review

    def set_focus(self, focus: Focus) -> bool:
        with self._lock:
            if not self.session.set_focus(focus):
                return False
            self.queue_cue(f"Focusing on {focus.value.lower()}. Let's go.")
            return True

    def mute(self):
        with self._lock:
            self.session.mute()
            self._log("Coaching muted")

    def unmute(self):
        with self._lock:
            self.session.unmute()
            self._log("Coaching unmuted")

    def tick(self, now: Optional[float] = None) -> Optional[StateTransition]:
        """Advance the session clock; the service calls this every second."""
        with self._lock:
            return self.session.tick(now)

    def dismiss_review(self):
        with self._lock:
            self.last_review = None

    # -- Frame processing ---------------------------------------------------

    def process_frame(
        self,
        image: Any,
        detector: PoseDetector,
        now: Optional[float] = None,
    ) -> Optional[CoachingUpdate]:
        """
        Run detection on an image and update the session.

        Returns None when no session is active or the frame arrived
        before frame_interval elapsed.
        """
        now = time.monotonic() if now is None else now
        with self._lock:
            if not self._accept_frame(now):
                return None
            metrics, opponent = self.analyzer.analyze_frame(image, detector, now)
            return self._after_analysis(metrics, opponent, now)

    def process_detections(
        self,
        skeletons: List[Skeleton],
        now: Optional[float] = None,
    ) -> Optional[CoachingUpdate]:
        """Same as process_frame for skeletons detected upstream."""
        now = time.monotonic() if now is None else now
        with self._lock:
            if not self._accept_frame(now):
                return None
            metrics, opponent = self.analyzer.analyze_detections(skeletons, now)
            return self._after_analysis(metrics, opponent, now)

    def _accept_frame(self, now: float) -> bool:
        if not self.session.is_active:
            return False
        if self._last_frame_time is not None and now - self._last_frame_time < self.frame_interval:
            return False
        self._last_frame_time = now
        return True

    def _after_analysis(
        self,
        metrics: PoseMetrics,
        opponent: OpponentInfo,
        now: float,
    ) -> CoachingUpdate:
        transition = self.session.tick(now)

        issues_counted: List[IssueType] = []
        if metrics.is_reliable:
            issues_counted = self.session.process_metrics(metrics)

        note = None
        if opponent.is_visible:
            note = self.session.process_opponent_info(opponent)
            if note:
                self._log(f"Tactical note: {note}")

        cue = self.session.next_cue(self.analyzer.get_smoothed_metrics(now), now)
        if cue is not None:
            self._emit(cue)

        return CoachingUpdate(
            timestamp=now,
            frame_number=self.analyzer.frame_count,
            state=self.session.state,
            metrics=metrics,
            opponent=opponent,
            issues_counted=issues_counted,
            tactical_note=note,
            cue=cue,
            state_transition=transition,
        )

    # -- Cues ---------------------------------------------------------------

    def request_cue(self, now: Optional[float] = None) -> str:
        """
        Answer "what should I fix?".

        Goes through the same cadence gate as frame-driven cues; when
        nothing can be said the fallback sentence is queued instead.
        """
        now = time.monotonic() if now is None else now
        with self._lock:
            cue = None
            if self.session.is_active:
                cue = self.session.next_cue(self.analyzer.get_smoothed_metrics(now), now)
            if cue is not None:
                self._emit(cue)
                return cue.text
            self.queue_cue(NEED_MORE_DATA)
            return NEED_MORE_DATA

    def tactical_cue(self) -> Optional[str]:
        """Tactical sentence for the latest opponent sighting, if any."""
        with self._lock:
            return self.policy.tactical_cue(self.analyzer.opponent_info)

    def _emit(self, cue: Cue):
        self.last_cue = cue.text
        self.queue_cue(cue.text)
        self._notify("cue", cue.to_dict())

    def queue_cue(self, text: str):
        """Put text in the pending slot, replacing anything unread."""
        with self._lock:
            self.pending_cue = text
            self._log(f"Cue queued: {text}")

    def consume_pending_cue(self) -> Optional[str]:
        with self._lock:
            cue = self.pending_cue
            self.pending_cue = None
            return cue

    # -- Voice commands -----------------------------------------------------

    def handle_command(self, transcript: str, now: Optional[float] = None) -> Optional[Command]:
        """Route a voice transcript; returns the command that matched."""
        command = parse_command(transcript)
        if command is None:
            logger.debug("No command in transcript: %r", transcript)
            return None

        with self._lock:
            kind = command.command_type
            if kind == CommandType.START_SESSION:
                if not self.session.is_active:
                    self.start_session(now=now)
            elif kind == CommandType.END_SESSION:
                if self.session.is_active:
                    self.end_session(now)
            elif kind == CommandType.MUTE:
                self.mute()
            elif kind == CommandType.UNMUTE:
                self.unmute()
            elif kind == CommandType.REQUEST_CUE:
                self.request_cue(now)
            elif kind == CommandType.SET_FOCUS:
                self.set_focus(command.focus)

        return command

    # -- Projections --------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        """Read-only snapshot for the presentation layer."""
        with self._lock:
            return {
                "is_active": self.session.is_active,
                "state": self.session.state.value,
                "focus": self.session.focus.value,
                "duration": round(self.session.duration, 1),
                "is_muted": self.session.is_muted,
                "frame_count": self.analyzer.frame_count,
                "pose_success_rate": round(self.analyzer.pose_success_rate, 3),
                "cue_count": self.session.cue_count,
                "last_cue": self.last_cue,
                "has_pending_cue": self.pending_cue is not None,
                "review_ready": self.last_review is not None,
            }

    def get_recent_logs(self) -> List[str]:
        with self._lock:
            return list(self.recent_logs)

    def _log(self, message: str):
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.recent_logs.append(f"[{timestamp}] {message}")
        logger.info(message)


# Convenience function for single-instance usage
_global_coach: Optional[RacketCoach] = None


def get_racket_coach(
    frame_interval: float = 1.0,
    min_cue_interval: float = 20.0,
) -> RacketCoach:
    """Get or create the global coach instance."""
    global _global_coach
    if _global_coach is None:
        _global_coach = RacketCoach(
            frame_interval=frame_interval,
            min_cue_interval=min_cue_interval,
        )
    return _global_coach
