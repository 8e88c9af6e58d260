"""
Coach API Models

Pydantic request/response schemas for the coaching service.
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class JointModel(BaseModel):
    x: float
    y: float
    confidence: float = Field(ge=0.0, le=1.0)


class SkeletonModel(BaseModel):
    """One detected person; joint names follow racket_coach.JOINT_NAMES."""
    confidence: float = Field(ge=0.0, le=1.0)
    joints: Dict[str, JointModel] = {}


class FrameRequest(BaseModel):
    """API request body for one pre-detected frame."""
    skeletons: List[SkeletonModel] = []


class StartSessionRequest(BaseModel):
    focus: str = "general"  # movement, forehand, backhand, serve, general


class FocusRequest(BaseModel):
    focus: str


class CommandRequest(BaseModel):
    transcript: str


class StatusResponse(BaseModel):
    is_active: bool
    state: str
    focus: str
    duration: float
    is_muted: bool
    frame_count: int
    pose_success_rate: float
    cue_count: int
    last_cue: Optional[str] = None
    has_pending_cue: bool = False
    review_ready: bool = False


class FrameResponse(BaseModel):
    """API response after frame processing."""
    accepted: bool
    state: Optional[str] = None
    frame_number: Optional[int] = None
    reliable: bool = False
    issues_counted: List[str] = []
    tactical_note: Optional[str] = None
    cue: Optional[str] = None


class CueResponse(BaseModel):
    cue: Optional[str] = None


class CommandResponse(BaseModel):
    matched: bool
    command: Optional[str] = None
    focus: Optional[str] = None
    cue: Optional[str] = None


class IssueModel(BaseModel):
    kind: str
    name: str
    severity: str
    occurrences: int
    average_confidence: float


class ReviewResponse(BaseModel):
    duration: float
    duration_formatted: str
    focus: str
    issues: List[IssueModel] = []
    opponent_notes: List[str] = []
    drills: List[str] = []
    cue_count: int = 0
    pose_success_rate: float = 0.0
    total_frames: int = 0
    summary_text: str
    spoken_summary: str


class SystemInstructionResponse(BaseModel):
    coach_mode: bool
    instruction: str


class EndSessionResponse(BaseModel):
    """Status after an end request; review is None when nothing was running."""
    status: StatusResponse
    review: Optional[ReviewResponse] = None
