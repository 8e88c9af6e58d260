"""
Racket Coach - Real-Time Pose-Based Coaching for Racket Sports

Turns a sparse, low-confidence stream of body keypoints into short
spoken cues and an end-of-session review. Never infers anything about
the racket itself.

Layers:
1. Geometry/Metrics (confidence-tagged biomechanics) - pose_metrics.py, pose_analyzer.py
2. Smoothing (short window over reliable frames) - smoother.py
3. Issue Tracking (counts and severity) - issues.py
4. Opponent Analysis (tactical notes) - opponent.py
5. Session State (lifecycle, cadence gate) - states.py
6. Coaching Policy (what to say) - coaching_policy.py
7. Review Builder (what happened) - review.py

Integration:
8. Voice Commands - commands.py
9. Voice Layer Prompt - voice_prompt.py
10. Real-Time Coach (orchestrator) - realtime_coach.py
"""

from .pose_metrics import (
    ConfidenceValue,
    PoseMetrics,
    OpponentInfo,
    DepthPosition,
    LateralBias,
    Joint,
    Skeleton,
    PoseDetector,
    JOINT_NAMES,
    compute_metrics,
    compute_opponent_info,
)

from .pose_analyzer import PoseAnalyzer

from .smoother import MetricsSmoother

from .issues import (
    IssueTracker,
    IssueType,
    Severity,
    SessionIssue,
)

from .opponent import (
    OpponentAnalyzer,
    tactical_note_for,
)

from .states import (
    SessionManager,
    SessionState,
    Focus,
    StateTransition,
)

from .coaching_policy import (
    CoachingPolicy,
    Cue,
    CueType,
)

from .review import (
    SessionReview,
    build_review,
)

from .commands import (
    Command,
    CommandType,
    parse_command,
)

from .voice_prompt import build_system_instruction

from .realtime_coach import (
    RacketCoach,
    CoachingUpdate,
    get_racket_coach,
)

__version__ = "0.1.0"
__all__ = [
    # Metrics
    "ConfidenceValue",
    "PoseMetrics",
    "OpponentInfo",
    "DepthPosition",
    "LateralBias",
    "Joint",
    "Skeleton",
    "PoseDetector",
    "JOINT_NAMES",
    "compute_metrics",
    "compute_opponent_info",
    "PoseAnalyzer",
    # Smoothing
    "MetricsSmoother",
    # Issues
    "IssueTracker",
    "IssueType",
    "Severity",
    "SessionIssue",
    # Opponent
    "OpponentAnalyzer",
    "tactical_note_for",
    # States
    "SessionManager",
    "SessionState",
    "Focus",
    "StateTransition",
    # Policy
    "CoachingPolicy",
    "Cue",
    "CueType",
    # Review
    "SessionReview",
    "build_review",
    # Voice
    "Command",
    "CommandType",
    "parse_command",
    "build_system_instruction",
    # Coordinator
    "RacketCoach",
    "CoachingUpdate",
    "get_racket_coach",
]
