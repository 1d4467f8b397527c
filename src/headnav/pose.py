"""Head pose values and the sensor datagram codec.

The tracker (opentrack's "UDP over network" output) sends one datagram per
frame: six little-endian float64 values in the order
x, y, z, yaw, pitch, roll.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

PACKET_SIZE = 48
FIELDS = ("x", "y", "z", "yaw", "pitch", "roll")

_WIRE_DTYPE = np.dtype("<f8")


class InvalidPacket(ValueError):
    """Raised when a datagram cannot be turned into a Pose."""

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


@dataclass(frozen=True)
class Pose:
    """Position (sensor units) and orientation (degrees) at one instant."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z, self.yaw, self.pitch, self.roll], dtype=np.float64)

    @classmethod
    def from_array(cls, values: np.ndarray) -> Pose:
        x, y, z, yaw, pitch, roll = (float(v) for v in values)
        return cls(x=x, y=y, z=z, yaw=yaw, pitch=pitch, roll=roll)


# Rates of change share the Pose layout, in units per second.
VelocityEstimate = Pose


@dataclass(frozen=True)
class PoseSample:
    """A Pose stamped with the monotonic time (seconds) it was received."""
    pose: Pose
    instant: float


def decode_packet(data: bytes) -> Pose:
    """Decode one sensor datagram.

    Raises:
        InvalidPacket: wrong length, or a NaN or infinity in any field.
    """
    if len(data) != PACKET_SIZE:
        raise InvalidPacket(
            "length", f"received {len(data)} bytes, expected {PACKET_SIZE}"
        )
    values = np.frombuffer(data, dtype=_WIRE_DTYPE)
    if np.isnan(values).any():
        bad = [name for name, v in zip(FIELDS, values) if np.isnan(v)]
        raise InvalidPacket("nan", f"NaN in field(s): {', '.join(bad)}")
    if not np.isfinite(values).all():
        bad = [name for name, v in zip(FIELDS, values) if not np.isfinite(v)]
        raise InvalidPacket("nonfinite", f"infinite value in field(s): {', '.join(bad)}")
    return Pose.from_array(values)


def encode_pose(pose: Pose) -> bytes:
    """Encode a Pose as the 48-byte datagram the tracker sends."""
    return pose.as_array().astype(_WIRE_DTYPE).tobytes()
