"""Velocity and acceleration estimation from a noisy pose stream.

Samples arrive a few milliseconds apart, so a frame-to-frame derivative
turns small tracking noise into large rate spikes. Rates are instead
taken against a record ``lag`` slots back in history (two by default,
skipping one intermediate sample), which doubles the time base.
Acceleration is the same derivative applied to the already-smoothed
velocity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import numpy as np

from headnav.pose import Pose, VelocityEstimate


class _Timed(Protocol):
    pose: Pose
    velocity: VelocityEstimate
    instant: float


@dataclass(frozen=True)
class Kinematics:
    velocity: VelocityEstimate
    acceleration: VelocityEstimate


ZERO = Pose()


def rate_of_change(current: np.ndarray, older: np.ndarray, elapsed: float) -> np.ndarray:
    """Per-field difference divided by elapsed seconds."""
    return (current - older) / elapsed


class KinematicsEstimator:
    """Computes de-jittered rates for a new sample against existing history.

    Args:
        lag: How many records back the reference sample sits, counted from
            the new sample (2 = skip one intermediate sample).
        min_elapsed: Elapsed times below this carry no information; the
            estimate is refused rather than producing inf/NaN.
    """

    def __init__(self, lag: int = 2, min_elapsed: float = 1e-6):
        self.lag = lag
        self.min_elapsed = min_elapsed

    def reference(self, history: Sequence[_Timed]) -> Optional[_Timed]:
        """Pick the reference record from newest-first history.

        Falls back to the adjacent sample while history is still shallower
        than the lag (warm-up).
        """
        if not history:
            return None
        return history[min(self.lag, len(history)) - 1]

    def estimate(self, pose: Pose, instant: float, history: Sequence[_Timed]) -> Optional[Kinematics]:
        """Estimate velocity and acceleration of ``pose`` at ``instant``.

        Returns zero rates for the very first sample and None when the
        elapsed time to the reference is too small to divide by.
        """
        ref = self.reference(history)
        if ref is None:
            return Kinematics(velocity=ZERO, acceleration=ZERO)

        elapsed = instant - ref.instant
        if elapsed < self.min_elapsed:
            return None

        velocity = rate_of_change(pose.as_array(), ref.pose.as_array(), elapsed)
        acceleration = rate_of_change(velocity, ref.velocity.as_array(), elapsed)
        if not (np.isfinite(velocity).all() and np.isfinite(acceleration).all()):
            return None

        return Kinematics(
            velocity=Pose.from_array(velocity),
            acceleration=Pose.from_array(acceleration),
        )
