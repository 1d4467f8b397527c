#!/usr/bin/env python3
"""headnav Benchmark — per-sample classification latency and throughput.

Feeds a synthetic 100 Hz head-tracking stream with periodic fast turns
through the classifier. No tracker required.

Usage:
    python examples/benchmark.py
    python examples/benchmark.py --iterations 50000
"""

from __future__ import annotations

import argparse
import gc
import os
import sys
import time
from pathlib import Path

import numpy as np

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from headnav.classifier import GestureClassifier, Signal
from headnav.pose import Pose, PoseSample


def generate_stream(n: int, rate_hz: float = 100.0) -> list[PoseSample]:
    """Synthetic stream: 1s idle / 0.4s turn cycles, alternating direction."""
    rng = np.random.default_rng(42)
    dt = 1.0 / rate_hz
    yaw = 0.0
    samples = []
    for i in range(n):
        phase = (i * dt) % 1.4
        cycle = int((i * dt) // 1.4)
        if phase >= 1.0:
            yaw += (60.0 if cycle % 2 == 0 else -60.0) * dt
        pose = Pose(yaw=yaw + float(rng.normal(0, 0.02)), pitch=float(rng.normal(0, 0.02)))
        samples.append(PoseSample(pose=pose, instant=i * dt))
    return samples


def benchmark_classifier(samples: list[PoseSample]) -> dict:
    classifier = GestureClassifier()
    gc.collect()
    times = []
    signals: dict[str, int] = {}

    for s in samples:
        t0 = time.perf_counter()
        signal = classifier.process(s)
        times.append(time.perf_counter() - t0)
        if signal is not Signal.NOP:
            signals[signal.value] = signals.get(signal.value, 0) + 1

    times_ms = np.array(times) * 1000
    return {
        "mean_ms": float(np.mean(times_ms)),
        "median_ms": float(np.median(times_ms)),
        "p95_ms": float(np.percentile(times_ms, 95)),
        "p99_ms": float(np.percentile(times_ms, 99)),
        "max_ms": float(np.max(times_ms)),
        "throughput": 1000.0 / float(np.mean(times_ms)),
        "signals": signals,
    }


def print_table(title: str, rows: list[tuple[str, str]]):
    """Print a formatted table."""
    max_key = max(len(r[0]) for r in rows)
    max_val = max(len(r[1]) for r in rows)
    width = max_key + max_val + 7

    print()
    print(f"  ╭{'─' * width}╮")
    print(f"  │ {title:<{width-2}} │")
    print(f"  ├{'─' * width}┤")
    for key, val in rows:
        print(f"  │ {key:<{max_key}}   {val:>{max_val}} │")
    print(f"  ╰{'─' * width}╯")


def main():
    parser = argparse.ArgumentParser(description="headnav Benchmark")
    parser.add_argument("-n", "--iterations", type=int, default=20000, help="Number of samples")
    args = parser.parse_args()

    print(f"  Generating {args.iterations} synthetic samples...")
    samples = generate_stream(args.iterations)

    print("  Running classifier benchmark...")
    r = benchmark_classifier(samples)

    print_table("Gesture Classification", [
        ("Mean latency", f"{r['mean_ms']:.4f} ms"),
        ("Median latency", f"{r['median_ms']:.4f} ms"),
        ("P95 latency", f"{r['p95_ms']:.4f} ms"),
        ("P99 latency", f"{r['p99_ms']:.4f} ms"),
        ("Max latency", f"{r['max_ms']:.4f} ms"),
        ("Throughput", f"{r['throughput']:.0f} samples/sec"),
    ])

    print_table("Signals", [(k, str(v)) for k, v in sorted(r["signals"].items())] or [("none", "0")])

    print_table("System", [
        ("Samples", f"{args.iterations:,}"),
        ("Platform", f"{sys.platform} / {os.uname().machine}"),
        ("Python", f"{sys.version.split()[0]}"),
        ("NumPy", f"{np.__version__}"),
    ])
    print()


if __name__ == "__main__":
    main()
