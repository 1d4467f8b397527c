#!/usr/bin/env python3
"""Send synthetic head-turn datagrams to a running headnav instance.

Plays a scripted sequence of idle periods and fast turns at the tracker's
frame rate, so the pipeline can be exercised without a camera.

Usage:
    python examples/synthetic_sender.py --port 4242
    python examples/synthetic_sender.py --port 4242 --script left,right,down,up
"""

from __future__ import annotations

import argparse
import socket
import sys
import time
from pathlib import Path

import numpy as np

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from headnav.pose import Pose, encode_pose

# axis, rate in deg/s
TURNS = {
    "left": ("yaw", 60.0),
    "right": ("yaw", -60.0),
    "down": ("pitch", 70.0),
    "up": ("pitch", -50.0),
}


def generate_script(script: list[str], rate_hz: float, idle: float, turn: float, noise: float) -> list[Pose]:
    """Build the pose sequence: idle, turn, idle, turn, ..., idle."""
    rng = np.random.default_rng(0)
    dt = 1.0 / rate_hz
    state = {"yaw": 0.0, "pitch": 0.0}
    poses = []

    def emit(n: int, axis: str | None = None, rate: float = 0.0):
        for _ in range(n):
            if axis:
                state[axis] += rate * dt
            poses.append(Pose(
                x=float(rng.normal(0, noise)),
                y=float(rng.normal(0, noise)),
                z=float(rng.normal(0, noise)),
                yaw=state["yaw"] + float(rng.normal(0, noise)),
                pitch=state["pitch"] + float(rng.normal(0, noise)),
            ))

    emit(int(idle * rate_hz))
    for name in script:
        axis, rate = TURNS[name]
        emit(int(turn * rate_hz), axis, rate)
        emit(int(idle * rate_hz))
    return poses


def main():
    parser = argparse.ArgumentParser(description="headnav synthetic sender")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, required=True)
    parser.add_argument("--rate", type=float, default=100.0, help="Frames per second")
    parser.add_argument("--script", default="left,right,down,up", help="Comma-separated turns")
    parser.add_argument("--idle", type=float, default=1.0, help="Idle seconds between turns")
    parser.add_argument("--turn", type=float, default=0.4, help="Seconds per turn")
    parser.add_argument("--noise", type=float, default=0.01, help="Pose noise (std dev)")
    args = parser.parse_args()

    script = [s.strip() for s in args.script.split(",") if s.strip()]
    unknown = [s for s in script if s not in TURNS]
    if unknown:
        parser.error(f"unknown turn(s): {', '.join(unknown)}; choose from {', '.join(TURNS)}")

    poses = generate_script(script, args.rate, args.idle, args.turn, args.noise)
    print(f"Sending {len(poses)} frames to {args.host}:{args.port} ({len(poses) / args.rate:.1f}s)")

    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    start = time.monotonic()
    for i, pose in enumerate(poses):
        target = i / args.rate
        elapsed = time.monotonic() - start
        if target > elapsed:
            time.sleep(target - elapsed)
        sock.sendto(encode_pose(pose), (args.host, args.port))
    sock.close()
    print("Done.")


if __name__ == "__main__":
    main()
