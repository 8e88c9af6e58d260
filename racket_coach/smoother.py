"""
Metrics Smoother

Keeps the last few PoseMetrics and averages them on demand.

Two-level filtering:
1. Frame level - only frames that are reliable overall take part
2. Field level - inside those, only components with confidence > 0.3

One weak field can't veto an otherwise good average, and noisy
frames can't leak into it.
"""

from collections import deque
from typing import Deque, List, Optional
import time

from .pose_metrics import ConfidenceValue, PoseMetrics


class MetricsSmoother:
    """Rolling window of recent metrics with a confidence-filtered mean."""

    MIN_WINDOW = 3
    MIN_RELIABLE = 2
    FIELD_CONFIDENCE_FLOOR = 0.3

    def __init__(self, window_size: int = 5):
        self.window: Deque[PoseMetrics] = deque(maxlen=window_size)

    def add(self, metrics: PoseMetrics):
        self.window.append(metrics)

    def __len__(self) -> int:
        return len(self.window)

    def get_smoothed(self, now: Optional[float] = None) -> Optional[PoseMetrics]:
        """
        Average of the reliable frames in the window.

        Returns None with fewer than 3 frames, or fewer than 2 reliable ones.
        """
        if len(self.window) < self.MIN_WINDOW:
            return None

        reliable = [m for m in self.window if m.is_reliable]
        if len(reliable) < self.MIN_RELIABLE:
            return None

        averaged = {
            name: self._average([getattr(m, name) for m in reliable])
            for name in PoseMetrics.FIELDS
        }
        return PoseMetrics(
            timestamp=time.monotonic() if now is None else now,
            **averaged
        )

    def _average(self, values: List[ConfidenceValue]) -> ConfidenceValue:
        usable = [v for v in values if v.confidence > self.FIELD_CONFIDENCE_FLOOR]
        if not usable:
            return ConfidenceValue.unknown()

        avg_value = sum(v.value for v in usable) / len(usable)
        avg_conf = sum(v.confidence for v in usable) / len(usable)
        return ConfidenceValue(avg_value, avg_conf)

    def reset(self):
        self.window.clear()
