"""Pose stream recording and replay.

Record real head-tracking sessions for:
- Tuning thresholds offline against the same motion
- Reproducible tests without a tracker
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from headnav.pose import FIELDS, Pose, PoseSample

FORMAT_VERSION = 1


@dataclass
class RecordedSample:
    """One sample, timestamped in seconds from recording start."""
    timestamp: float
    pose: list[float]  # x, y, z, yaw, pitch, roll


class PoseRecorder:
    """Records PoseSamples to a file.

    Usage:
        recorder = PoseRecorder()
        recorder.start()
        recorder.add(sample)
        recorder.save("session.json")
    """

    def __init__(self):
        self._samples: list[RecordedSample] = []
        self._origin: Optional[float] = None
        self._recording = False

    def start(self):
        self._samples = []
        self._origin = None
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of samples captured."""
        self._recording = False
        return len(self._samples)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    @property
    def duration(self) -> float:
        if not self._samples:
            return 0.0
        return self._samples[-1].timestamp

    def add(self, sample: PoseSample):
        if not self._recording:
            return
        if self._origin is None:
            self._origin = sample.instant
        self._samples.append(RecordedSample(
            timestamp=sample.instant - self._origin,
            pose=sample.pose.as_array().tolist(),
        ))

    def save(self, path: str | Path) -> Path:
        """Save to JSON, or compact npz when the suffix is ``.npz``."""
        path = Path(path)
        if path.suffix == ".npz":
            return self.save_compact(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": FORMAT_VERSION,
            "fields": list(FIELDS),
            "sample_count": len(self._samples),
            "duration": self.duration,
            "samples": [asdict(s) for s in self._samples],
        }
        with open(path, "w") as f:
            json.dump(data, f)
        return path

    def save_compact(self, path: str | Path) -> Path:
        path = Path(path).with_suffix(".npz")
        path.parent.mkdir(parents=True, exist_ok=True)

        timestamps = np.array([s.timestamp for s in self._samples], dtype=np.float64)
        poses = np.array([s.pose for s in self._samples], dtype=np.float64).reshape(-1, len(FIELDS))
        np.savez_compressed(path, timestamps=timestamps, poses=poses)
        return path


class PosePlayer:
    """Replays a recorded session as PoseSamples.

    Usage:
        player = PosePlayer.load("session.json")
        for sample in player.play():
            classifier.process(sample)
    """

    def __init__(self, samples: list[RecordedSample]):
        self._samples = samples

    @classmethod
    def load(cls, path: str | Path) -> PosePlayer:
        path = Path(path)
        if path.suffix == ".npz":
            return cls._load_compact(path)

        with open(path) as f:
            data = json.load(f)

        version = data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ValueError(f"unsupported recording version: {version}")

        return cls([
            RecordedSample(timestamp=float(s["timestamp"]), pose=[float(v) for v in s["pose"]])
            for s in data["samples"]
        ])

    @classmethod
    def _load_compact(cls, path: Path) -> PosePlayer:
        with np.load(path, allow_pickle=False) as data:
            timestamps = data["timestamps"]
            poses = data["poses"]
        return cls([
            RecordedSample(timestamp=float(t), pose=poses[i].tolist())
            for i, t in enumerate(timestamps)
        ])

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    @property
    def duration(self) -> float:
        if not self._samples:
            return 0.0
        return self._samples[-1].timestamp

    def play(self, origin: float = 0.0) -> Iterator[PoseSample]:
        """Yield all samples instantly, stamped ``origin + timestamp``."""
        for s in self._samples:
            yield PoseSample(pose=Pose.from_array(np.asarray(s.pose)), instant=origin + s.timestamp)

    def play_realtime(self, speed: float = 1.0) -> Iterator[PoseSample]:
        """Replay at original timing (scaled by ``speed``), stamped with the live clock."""
        if not self._samples:
            return

        start = time.monotonic()
        for s in self._samples:
            target = s.timestamp / speed
            elapsed = time.monotonic() - start
            if target > elapsed:
                time.sleep(target - elapsed)
            yield PoseSample(pose=Pose.from_array(np.asarray(s.pose)), instant=time.monotonic())
