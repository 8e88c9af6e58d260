"""
Synthetic skeletons for tests.

make_skeleton() places joints so each metric lands near a chosen value:
- shoulders 0.2 apart, hips level, legs bent to the requested knee angle
- wrists either side of the root at the requested spacing
- root shifted off the feet midpoint for the requested balance
"""

import math
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from racket_coach.pose_metrics import (
    ConfidenceValue,
    Joint,
    PoseMetrics,
    Skeleton,
)

SHOULDER_WIDTH = 0.2
SHIN = 0.2


def make_skeleton(
    knee: float = 0.0,
    rotation: float = 0.0,
    spacing: float = 0.9,
    balance: float = 1.0,
    confidence: float = 0.8,
    overall: float = 0.9,
    omit=(),
) -> Skeleton:
    """Player skeleton whose metrics come out close to the arguments."""
    # Knee angle at the vertex: 180 straight, 90 deep
    theta = math.radians(180 - 90 * knee)
    ankle_dx = SHIN * math.sin(theta)
    ankle_dy = -SHIN * math.cos(theta)

    l_hip = (0.45, 0.5)
    r_hip = (0.55, 0.5)
    l_knee = (0.45, 0.7)
    r_knee = (0.55, 0.7)
    l_ankle = (0.45 - ankle_dx, 0.7 + ankle_dy)
    r_ankle = (0.55 + ankle_dx, 0.7 + ankle_dy)

    feet_width = max(abs(l_ankle[0] - r_ankle[0]), 0.05)
    root_x = 0.5 + (1 - balance) * feet_width
    root = (root_x, 0.5)

    phi = rotation * math.pi / 4
    half = SHOULDER_WIDTH / 2
    l_shoulder = (0.5 - half * math.cos(phi), 0.3 - half * math.sin(phi))
    r_shoulder = (0.5 + half * math.cos(phi), 0.3 + half * math.sin(phi))

    reach = spacing * 2 * SHOULDER_WIDTH
    l_wrist = (root_x - reach, 0.5)
    r_wrist = (root_x + reach, 0.5)

    positions = {
        "nose": (0.5, 0.15),
        "neck": (0.5, 0.25),
        "left_shoulder": l_shoulder,
        "right_shoulder": r_shoulder,
        "left_elbow": (0.35, 0.4),
        "right_elbow": (0.65, 0.4),
        "left_wrist": l_wrist,
        "right_wrist": r_wrist,
        "left_hip": l_hip,
        "right_hip": r_hip,
        "left_knee": l_knee,
        "right_knee": r_knee,
        "left_ankle": l_ankle,
        "right_ankle": r_ankle,
        "root": root,
    }
    joints = {
        name: Joint(x=x, y=y, confidence=confidence)
        for name, (x, y) in positions.items()
        if name not in omit
    }
    return Skeleton(joints=joints, confidence=overall)


def make_opponent(x: float, y: float, confidence: float = 0.8) -> Skeleton:
    """Opponent skeleton; only the root matters for zone classification."""
    return Skeleton(joints={"root": Joint(x=x, y=y, confidence=0.9)}, confidence=confidence)


def skeleton_json(skeleton: Skeleton) -> dict:
    return {
        "confidence": skeleton.confidence,
        "joints": {
            name: {"x": j.x, "y": j.y, "confidence": j.confidence}
            for name, j in skeleton.joints.items()
        },
    }


def cv(value: float, confidence: float) -> ConfidenceValue:
    return ConfidenceValue(value, confidence)


def make_metrics(
    movement=(0.0, 0.0),
    knee=(0.0, 0.0),
    rotation=(0.0, 0.0),
    spacing=(0.0, 0.0),
    balance=(0.0, 0.0),
    timestamp: float = 0.0,
) -> PoseMetrics:
    """PoseMetrics from (value, confidence) pairs."""
    return PoseMetrics(
        movement_intensity=cv(*movement),
        knee_bend=cv(*knee),
        torso_rotation=cv(*rotation),
        spacing=cv(*spacing),
        balance=cv(*balance),
        timestamp=timestamp,
    )


HEALTHY = dict(rotation=(0.8, 0.8), spacing=(0.9, 0.8), balance=(0.9, 0.8))
