"""Bounded, most-recent-first history of pose records."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from headnav.config import ClassifierConfig
from headnav.kinematics import ZERO, Kinematics, KinematicsEstimator
from headnav.pose import Pose, PoseSample, VelocityEstimate

logger = logging.getLogger("headnav.history")


@dataclass(frozen=True)
class HistoryRecord:
    """One accepted sample with its estimated rates."""
    pose: Pose
    velocity: VelocityEstimate
    acceleration: VelocityEstimate
    instant: float
    delta: float  # seconds since the previous record


class PoseHistory:
    """Ring buffer of HistoryRecords, newest at index 0.

    The oldest records fall off the back once ``capacity`` is exceeded.
    A timing discontinuity (gap above ``max_delta``, or time running
    backwards) starts a fresh tracking session: everything except the
    just-inserted record is discarded.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()
        self._records: deque[HistoryRecord] = deque(maxlen=self.config.capacity)
        self._estimator = KinematicsEstimator(
            lag=self.config.velocity_lag,
            min_elapsed=self.config.min_elapsed,
        )
        self.resets = 0

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[HistoryRecord]:
        return iter(self._records)

    def __getitem__(self, index: int) -> HistoryRecord:
        return self._records[index]

    @property
    def latest(self) -> Optional[HistoryRecord]:
        return self._records[0] if self._records else None

    def push(self, sample: PoseSample) -> Optional[HistoryRecord]:
        """Insert a sample at the front and return its record.

        Returns None when the sample carries no usable information (a
        non-finite pose, or a timestamp duplicating the newest record);
        history is unchanged.
        """
        if not np.isfinite(sample.pose.as_array()).all():
            logger.debug("Skipping non-finite pose at %.6f", sample.instant)
            return None

        previous = self.latest
        delta = sample.instant - previous.instant if previous is not None else 0.0

        if previous is not None and 0.0 <= delta < self.config.min_elapsed:
            logger.debug("Skipping sample with duplicate timestamp %.6f", sample.instant)
            return None

        if self._is_discontinuity(delta):
            kinematics = Kinematics(velocity=ZERO, acceleration=ZERO)
        else:
            kinematics = self._estimator.estimate(sample.pose, sample.instant, self._records)
            if kinematics is None:
                logger.debug("Skipping sample at %.6f: elapsed time too small", sample.instant)
                return None

        record = HistoryRecord(
            pose=sample.pose,
            velocity=kinematics.velocity,
            acceleration=kinematics.acceleration,
            instant=sample.instant,
            delta=delta,
        )
        self._records.appendleft(record)
        self.reset_on_discontinuity(delta)
        return record

    def reset_on_discontinuity(self, delta: float) -> bool:
        """Drop everything but the newest record if ``delta`` is a stall.

        Returns True when history was reset.
        """
        if not self._is_discontinuity(delta):
            return False
        logger.warning("Delta too large: %.3fs, resetting history", delta)
        newest = self._records[0] if self._records else None
        self._records.clear()
        if newest is not None:
            self._records.append(newest)
        self.resets += 1
        return True

    def within(self, window: float, now: Optional[float] = None) -> Iterator[HistoryRecord]:
        """Yield records younger than ``window`` seconds, newest record excluded."""
        if not self._records:
            return
        if now is None:
            now = self._records[0].instant
        for i, record in enumerate(self._records):
            if i == 0:
                continue
            if now - record.instant >= window:
                break
            yield record

    def clear(self):
        self._records.clear()

    def _is_discontinuity(self, delta: float) -> bool:
        return delta > self.config.max_delta or delta < 0.0
