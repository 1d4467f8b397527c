"""Head gesture classification from a rolling pose history.

Each accepted sample is evaluated on its own: "does this instant look like
part of a fast, deliberate turn?" There is no gesture-in-progress state;
everything the decision needs is read back from the shared history.

Decision order per sample (at most one Signal):
1. Warm-up: at least ``min_history`` records and the last gap within
   ``max_delta``.
2. Yaw: ``|yaw rate| >= yaw_threshold`` with a consistent lead-in
   -> LeftColumn (positive) / RightColumn (negative).
3. Pitch: rate above ``pitch_positive_threshold`` or below
   ``pitch_negative_threshold`` with a consistent lead-in
   -> Down (positive) / Up (negative).
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

import numpy as np

from headnav.config import ClassifierConfig
from headnav.history import HistoryRecord, PoseHistory
from headnav.pose import PoseSample


class Signal(Enum):
    LEFT_COLUMN = "left_column"
    RIGHT_COLUMN = "right_column"
    UP = "up"
    DOWN = "down"
    LEFT_MONITOR = "left_monitor"
    RIGHT_MONITOR = "right_monitor"
    NOP = "nop"


class GestureClassifier:
    """Turns PoseSamples into directional Signals.

    Owns its PoseHistory exclusively; not thread-safe, meant to be driven
    by a single consumer thread.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()
        self.history = PoseHistory(self.config)

    def process(self, sample: PoseSample) -> Signal:
        """Record a sample and classify the resulting history."""
        if self.history.push(sample) is None:
            return Signal.NOP
        return self.classify()

    def classify(self) -> Signal:
        """Classify the newest record in history."""
        cfg = self.config
        current = self.history.latest
        if current is None or len(self.history) < cfg.min_history:
            return Signal.NOP
        if current.delta > cfg.max_delta:
            return Signal.NOP

        yaw = current.velocity.yaw
        if self.yaw_moving(yaw) and self.lead_in_consistent(current, "yaw", self.yaw_moving):
            if cfg.monitor_yaw_threshold is not None and abs(yaw) >= cfg.monitor_yaw_threshold:
                return Signal.LEFT_MONITOR if yaw > 0 else Signal.RIGHT_MONITOR
            return Signal.LEFT_COLUMN if yaw > 0 else Signal.RIGHT_COLUMN

        pitch = current.velocity.pitch
        if self.pitch_moving(pitch) and self.lead_in_consistent(current, "pitch", self.pitch_moving):
            return Signal.DOWN if pitch > 0 else Signal.UP

        return Signal.NOP

    def yaw_moving(self, rate: float) -> bool:
        return abs(rate) >= self.config.yaw_threshold

    def pitch_moving(self, rate: float) -> bool:
        return (
            rate > self.config.pitch_positive_threshold
            or rate < self.config.pitch_negative_threshold
        )

    def lead_in_consistent(
        self,
        current: HistoryRecord,
        axis: str,
        moving: Callable[[float], bool],
    ) -> bool:
        """Check the recent past is idle or already turning the same way.

        Every record younger than ``idle_window`` (the current one
        excluded) must either be below the gesture threshold on ``axis``
        or share the current rate's sign. A turn preceded by a turn the
        other way is rejected.
        """
        direction = np.sign(getattr(current.velocity, axis))
        for record in self.history.within(self.config.idle_window, now=current.instant):
            rate = getattr(record.velocity, axis)
            if moving(rate) and np.sign(rate) != direction:
                return False
        return True

    def reset(self):
        """Forget all history; classification resumes after warm-up."""
        self.history.clear()
