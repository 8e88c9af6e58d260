"""
Pose Metrics Module

Turns one detected skeleton into five confidence-tagged body metrics:
knee bend, torso rotation, spacing, balance and movement intensity.

Input is sparse (about one frame per second) and noisy, so every metric
carries its own confidence and degrades to "unknown" instead of failing.
Nothing here looks at the racket. Pure Python geometry, no numpy needed.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Any
from enum import Enum
import math
import time


# Joints the engine understands. Anything else the detector returns is ignored.
JOINT_NAMES = (
    "nose", "neck",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
    "root",
)

MIN_JOINT_CONFIDENCE = 0.3
MIN_OPPONENT_CONFIDENCE = 0.4
RELIABLE_CONFIDENCE = 0.5
HIGH_CONFIDENCE = 0.7

# Placeholder for movement when there is no usable previous frame
MOVEMENT_PLACEHOLDER_CONFIDENCE = 0.3
MAX_MOVEMENT_GAP_SECONDS = 2.0
MOVEMENT_FULL_SCALE = 0.5  # units/sec mapped to intensity 1.0

DEFAULT_BODY_SCALE = 0.15
MIN_FEET_WIDTH = 0.05


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ConfidenceValue:
    """A value in [0, 1] paired with how much it can be trusted."""
    value: float
    confidence: float

    def __post_init__(self):
        object.__setattr__(self, "value", _clamp(float(self.value)))
        object.__setattr__(self, "confidence", _clamp(float(self.confidence)))

    @classmethod
    def unknown(cls) -> "ConfidenceValue":
        return cls(0.0, 0.0)

    @property
    def is_known(self) -> bool:
        return self.confidence > 0

    @property
    def is_reliable(self) -> bool:
        return self.confidence >= RELIABLE_CONFIDENCE

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence >= HIGH_CONFIDENCE

    def to_dict(self) -> Dict:
        return {
            "value": round(self.value, 3) if self.is_known else None,
            "confidence": round(self.confidence, 3),
        }


@dataclass(frozen=True)
class PoseMetrics:
    """Five confidence-tagged metrics for a single analyzed frame."""
    movement_intensity: ConfidenceValue
    knee_bend: ConfidenceValue
    torso_rotation: ConfidenceValue
    spacing: ConfidenceValue
    balance: ConfidenceValue
    timestamp: float = 0.0

    FIELDS = ("movement_intensity", "knee_bend", "torso_rotation", "spacing", "balance")

    @classmethod
    def unknown(cls, timestamp: float = 0.0) -> "PoseMetrics":
        return cls(
            movement_intensity=ConfidenceValue.unknown(),
            knee_bend=ConfidenceValue.unknown(),
            torso_rotation=ConfidenceValue.unknown(),
            spacing=ConfidenceValue.unknown(),
            balance=ConfidenceValue.unknown(),
            timestamp=timestamp,
        )

    def values(self) -> List[ConfidenceValue]:
        return [getattr(self, name) for name in self.FIELDS]

    @property
    def reliable_count(self) -> int:
        return sum(1 for v in self.values() if v.is_reliable)

    @property
    def is_reliable(self) -> bool:
        """At least 3 of the 5 metrics must be individually reliable."""
        return self.reliable_count >= 3

    def to_dict(self) -> Dict:
        data = {name: getattr(self, name).to_dict() for name in self.FIELDS}
        data["timestamp"] = self.timestamp
        data["is_reliable"] = self.is_reliable
        return data


class DepthPosition(Enum):
    """Where the opponent stands front-to-back in the frame."""
    DEEP = "deep"
    MID = "mid"
    SHALLOW = "shallow"
    UNKNOWN = "unknown"


class LateralBias(Enum):
    """Which side of the frame the opponent favors."""
    FOREHAND = "forehand"
    CENTER = "center"
    BACKHAND = "backhand"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class OpponentInfo:
    """Positional read on the second skeleton in a frame."""
    is_visible: bool
    depth_position: DepthPosition = DepthPosition.UNKNOWN
    lateral_bias: LateralBias = LateralBias.UNKNOWN
    confidence: float = 0.0

    @classmethod
    def not_visible(cls) -> "OpponentInfo":
        return cls(is_visible=False)

    def to_dict(self) -> Dict:
        return {
            "is_visible": self.is_visible,
            "depth_position": self.depth_position.value,
            "lateral_bias": self.lateral_bias.value,
            "confidence": round(self.confidence, 3),
        }


@dataclass(frozen=True)
class Joint:
    """A single detected joint in unit image coordinates."""
    x: float
    y: float
    confidence: float


@dataclass
class Skeleton:
    """One detected person: named joints plus an overall confidence."""
    joints: Dict[str, Joint] = field(default_factory=dict)
    confidence: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Skeleton":
        """
        Build from detector-style JSON:
        {"confidence": 0.8, "joints": {"root": {"x": .5, "y": .5, "confidence": .9}}}
        """
        joints = {}
        for name, raw in (data.get("joints") or {}).items():
            if name not in JOINT_NAMES:
                continue
            joints[name] = Joint(
                x=float(raw["x"]),
                y=float(raw["y"]),
                confidence=float(raw.get("confidence", 0.0)),
            )
        return cls(joints=joints, confidence=float(data.get("confidence", 0.0)))

    def joint(self, name: str) -> Optional[Joint]:
        return self.joints.get(name)


JointMap = Dict[str, Joint]

# A detector takes an image and returns zero or more skeletons
PoseDetector = Callable[[Any], List[Skeleton]]


def extract_joints(skeleton: Skeleton, min_confidence: float = MIN_JOINT_CONFIDENCE) -> JointMap:
    """Keep only known joints that clear the confidence floor."""
    return {
        name: joint
        for name, joint in skeleton.joints.items()
        if name in JOINT_NAMES and joint.confidence >= min_confidence
    }


# -- Geometry helpers --------------------------------------------------------

def distance(a: Joint, b: Joint) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def joint_angle(p1: Joint, vertex: Joint, p2: Joint) -> float:
    """Interior angle at vertex in degrees (0-180)."""
    v1 = (p1.x - vertex.x, p1.y - vertex.y)
    v2 = (p2.x - vertex.x, p2.y - vertex.y)
    dot = v1[0] * v2[0] + v1[1] * v2[1]
    cross = v1[0] * v2[1] - v1[1] * v2[0]
    return abs(math.degrees(math.atan2(cross, dot)))


def _require(joints: JointMap, *names: str) -> Optional[List[Joint]]:
    found = [joints.get(name) for name in names]
    if any(j is None for j in found):
        return None
    return found


def _min_confidence(points: List[Joint]) -> float:
    return min(p.confidence for p in points)


# -- Metrics -----------------------------------------------------------------

def compute_knee_bend(joints: JointMap) -> ConfidenceValue:
    """180° (straight legs) -> 0, 90° (deep bend) -> 1."""
    points = _require(
        joints,
        "left_hip", "left_knee", "left_ankle",
        "right_hip", "right_knee", "right_ankle",
    )
    if points is None:
        return ConfidenceValue.unknown()

    l_hip, l_knee, l_ankle, r_hip, r_knee, r_ankle = points
    avg_angle = (joint_angle(l_hip, l_knee, l_ankle) + joint_angle(r_hip, r_knee, r_ankle)) / 2
    return ConfidenceValue(
        value=_clamp((180 - avg_angle) / 90),
        confidence=_min_confidence(points),
    )


def compute_torso_rotation(joints: JointMap) -> ConfidenceValue:
    """Shoulder line vs hip line; 45° of separation or more scores 1."""
    points = _require(joints, "left_shoulder", "right_shoulder", "left_hip", "right_hip")
    if points is None:
        return ConfidenceValue.unknown()

    l_sh, r_sh, l_hip, r_hip = points
    shoulder_heading = math.atan2(r_sh.y - l_sh.y, r_sh.x - l_sh.x)
    hip_heading = math.atan2(r_hip.y - l_hip.y, r_hip.x - l_hip.x)

    diff = abs(shoulder_heading - hip_heading)
    if diff > math.pi:
        diff = 2 * math.pi - diff

    return ConfidenceValue(
        value=min(1.0, diff / (math.pi / 4)),
        confidence=_min_confidence(points),
    )


def compute_spacing(joints: JointMap) -> ConfidenceValue:
    """How far the hands sit from the body center, in shoulder widths."""
    points = _require(joints, "root", "left_wrist", "right_wrist")
    if points is None:
        return ConfidenceValue.unknown()

    root, l_wrist, r_wrist = points
    avg_dist = (distance(root, l_wrist) + distance(root, r_wrist)) / 2

    body_scale = DEFAULT_BODY_SCALE
    shoulders = _require(joints, "left_shoulder", "right_shoulder")
    if shoulders is not None:
        width = distance(*shoulders)
        if width > 0:
            body_scale = width

    return ConfidenceValue(
        value=min(1.0, avg_dist / (body_scale * 2)),
        confidence=_min_confidence(points),
    )


def compute_balance(joints: JointMap) -> ConfidenceValue:
    """1.0 when the root sits directly above the midpoint of the feet."""
    points = _require(joints, "root", "left_ankle", "right_ankle")
    if points is None:
        return ConfidenceValue.unknown()

    root, l_ankle, r_ankle = points
    feet_center_x = (l_ankle.x + r_ankle.x) / 2
    offset = abs(root.x - feet_center_x)
    feet_width = max(abs(l_ankle.x - r_ankle.x), MIN_FEET_WIDTH)

    return ConfidenceValue(
        value=_clamp(1 - offset / feet_width),
        confidence=_min_confidence(points),
    )


def compute_movement_intensity(
    joints: JointMap,
    previous_root: Optional[Joint],
    previous_time: Optional[float],
    now: float,
) -> ConfidenceValue:
    """
    Root velocity between this frame and the previous one.

    Without a usable previous frame this returns a deliberate
    low-confidence zero rather than unknown.
    """
    placeholder = ConfidenceValue(0.0, MOVEMENT_PLACEHOLDER_CONFIDENCE)

    if previous_root is None or previous_time is None:
        return placeholder

    elapsed = now - previous_time
    if elapsed <= 0 or elapsed >= MAX_MOVEMENT_GAP_SECONDS:
        return placeholder

    root = joints.get("root")
    if root is None or previous_root.confidence < MIN_JOINT_CONFIDENCE:
        return placeholder

    velocity = distance(root, previous_root) / elapsed
    return ConfidenceValue(
        value=min(1.0, velocity / MOVEMENT_FULL_SCALE),
        confidence=min(root.confidence, previous_root.confidence),
    )


def compute_metrics(
    skeleton: Skeleton,
    previous_root: Optional[Joint] = None,
    previous_time: Optional[float] = None,
    now: Optional[float] = None,
) -> PoseMetrics:
    """Compute all five metrics for the player skeleton."""
    now = time.monotonic() if now is None else now
    joints = extract_joints(skeleton)

    return PoseMetrics(
        movement_intensity=compute_movement_intensity(joints, previous_root, previous_time, now),
        knee_bend=compute_knee_bend(joints),
        torso_rotation=compute_torso_rotation(joints),
        spacing=compute_spacing(joints),
        balance=compute_balance(joints),
        timestamp=now,
    )


def compute_opponent_info(skeleton: Optional[Skeleton]) -> OpponentInfo:
    """
    Classify the opponent's zone from the root joint alone.

    Thresholds are relative to a fixed, uncalibrated frame, not the
    actual court.
    """
    if skeleton is None or skeleton.confidence < MIN_OPPONENT_CONFIDENCE:
        return OpponentInfo.not_visible()

    root = skeleton.joint("root")
    if root is None or root.confidence < MIN_JOINT_CONFIDENCE:
        return OpponentInfo.not_visible()

    if root.y < 0.3:
        depth = DepthPosition.DEEP
    elif root.y < 0.5:
        depth = DepthPosition.MID
    else:
        depth = DepthPosition.SHALLOW

    if root.x < 0.35:
        lateral = LateralBias.BACKHAND
    elif root.x > 0.65:
        lateral = LateralBias.FOREHAND
    else:
        lateral = LateralBias.CENTER

    return OpponentInfo(
        is_visible=True,
        depth_position=depth,
        lateral_bias=lateral,
        confidence=skeleton.confidence,
    )
