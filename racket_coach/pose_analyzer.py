"""
Pose Analyzer

Stateful front end to the metric functions in pose_metrics.
Picks player and opponent out of each detection list, remembers the
previous player root for movement intensity, feeds the smoothing window
and keeps frame statistics for the detection success rate.
"""

from typing import Any, List, Optional, Tuple
import logging
import time

from .pose_metrics import (
    Joint,
    OpponentInfo,
    PoseDetector,
    PoseMetrics,
    Skeleton,
    compute_metrics,
    compute_opponent_info,
)
from .smoother import MetricsSmoother

logger = logging.getLogger(__name__)


class PoseAnalyzer:
    """
    Analyzes one frame at a time.

    A frame always counts toward frame_count; it only counts as
    successful when at least one skeleton came back.
    """

    def __init__(self, window_size: int = 5):
        self.smoother = MetricsSmoother(window_size=window_size)
        self.last_metrics: PoseMetrics = PoseMetrics.unknown()
        self.opponent_info: OpponentInfo = OpponentInfo.not_visible()
        self.frame_count = 0
        self.successful_pose_count = 0
        self.last_analysis_time: Optional[float] = None

        self._previous_root: Optional[Joint] = None
        self._previous_time: Optional[float] = None

    def analyze_frame(
        self,
        image: Any,
        detector: PoseDetector,
        now: Optional[float] = None,
    ) -> Tuple[PoseMetrics, OpponentInfo]:
        """Run the detector on an image and analyze the result."""
        now = time.monotonic() if now is None else now
        try:
            skeletons = detector(image)
        except Exception as e:
            self.frame_count += 1
            self.last_metrics = PoseMetrics.unknown(now)
            self.opponent_info = OpponentInfo.not_visible()
            logger.warning("Frame %d: detector error: %s", self.frame_count, e)
            return self.last_metrics, self.opponent_info

        return self.analyze_detections(skeletons or [], now)

    def analyze_detections(
        self,
        skeletons: List[Skeleton],
        now: Optional[float] = None,
    ) -> Tuple[PoseMetrics, OpponentInfo]:
        """Analyze skeletons that were already detected upstream."""
        now = time.monotonic() if now is None else now
        self.frame_count += 1

        if not skeletons:
            self.last_metrics = PoseMetrics.unknown(now)
            self.opponent_info = OpponentInfo.not_visible()
            logger.debug("Frame %d: no pose detected", self.frame_count)
            return self.last_metrics, self.opponent_info

        # Most confident skeleton is the player, the runner-up the opponent
        ranked = sorted(skeletons, key=lambda s: s.confidence, reverse=True)
        player = ranked[0]
        opponent = ranked[1] if len(ranked) > 1 else None

        metrics = compute_metrics(player, self._previous_root, self._previous_time, now)
        opponent_info = compute_opponent_info(opponent)

        self.successful_pose_count += 1
        self.last_metrics = metrics
        self.opponent_info = opponent_info
        self.last_analysis_time = now
        self._previous_root = player.joint("root")
        self._previous_time = now

        self.smoother.add(metrics)

        logger.debug(
            "Frame %d: pose OK (knee=%.2f@%.2f, rotation=%.2f@%.2f)",
            self.frame_count,
            metrics.knee_bend.value, metrics.knee_bend.confidence,
            metrics.torso_rotation.value, metrics.torso_rotation.confidence,
        )
        return metrics, opponent_info

    def get_smoothed_metrics(self, now: Optional[float] = None) -> Optional[PoseMetrics]:
        return self.smoother.get_smoothed(now)

    @property
    def pose_success_rate(self) -> float:
        if self.frame_count == 0:
            return 0.0
        return self.successful_pose_count / self.frame_count

    def reset(self):
        """Forget everything; called at session start."""
        self.smoother.reset()
        self.last_metrics = PoseMetrics.unknown()
        self.opponent_info = OpponentInfo.not_visible()
        self.frame_count = 0
        self.successful_pose_count = 0
        self.last_analysis_time = None
        self._previous_root = None
        self._previous_time = None
