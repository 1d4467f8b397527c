"""Pipeline counters in Prometheus text exposition format.

Tracked metrics:
- headnav_packets_total (counter)
- headnav_packets_rejected_total (counter, by reason)
- headnav_samples_dropped_total (counter)
- headnav_history_resets_total (counter)
- headnav_signals_total (counter, by signal)
- headnav_commands_total (counter, by command and result)
- headnav_commands_suppressed_total (counter)
- headnav_classify_latency_seconds (histogram)
"""

from __future__ import annotations

import threading
import time
from collections import Counter
from pathlib import Path


class _Histogram:
    """Simple histogram with configurable buckets."""

    def __init__(self, buckets: list[float]):
        self.buckets = sorted(buckets)
        self.bucket_counts = [0] * len(self.buckets)
        self.count = 0
        self.sum = 0.0
        self._lock = threading.Lock()

    def observe(self, value: float):
        with self._lock:
            self.count += 1
            self.sum += value
            for i, b in enumerate(self.buckets):
                if value <= b:
                    self.bucket_counts[i] += 1
                    break

    def render(self, name: str, help_text: str) -> str:
        lines = [
            f"# HELP {name} {help_text}",
            f"# TYPE {name} histogram",
        ]
        with self._lock:
            cumulative = 0
            for i, b in enumerate(self.buckets):
                cumulative += self.bucket_counts[i]
                lines.append(f'{name}_bucket{{le="{b}"}} {cumulative}')
            lines.append(f'{name}_bucket{{le="+Inf"}} {self.count}')
            lines.append(f"{name}_sum {self.sum:.6f}")
            lines.append(f"{name}_count {self.count}")
        return "\n".join(lines)


class MetricsCollector:
    """Thread-safe counters shared by the pipeline stages."""

    def __init__(self):
        self._rejected: Counter = Counter()
        self._signals: Counter = Counter()
        self._commands: Counter = Counter()
        self._packets_total = 0
        self._dropped_total = 0
        self._resets_total = 0
        self._suppressed_total = 0
        self._lock = threading.Lock()

        # 10us .. 10ms
        self._latency = _Histogram(
            [0.00001, 0.00005, 0.0001, 0.0005, 0.001, 0.005, 0.010]
        )
        self._start_time = time.time()

    def record_packet(self):
        with self._lock:
            self._packets_total += 1

    def record_rejected(self, reason: str):
        with self._lock:
            self._rejected[reason] += 1

    def record_dropped(self):
        with self._lock:
            self._dropped_total += 1

    def record_history_reset(self):
        with self._lock:
            self._resets_total += 1

    def record_signal(self, name: str):
        with self._lock:
            self._signals[name] += 1

    def record_command(self, command: str, ok: bool):
        with self._lock:
            self._commands[(command, "ok" if ok else "error")] += 1

    def record_suppressed(self):
        with self._lock:
            self._suppressed_total += 1

    def observe_latency(self, seconds: float):
        self._latency.observe(seconds)

    def render(self) -> str:
        """Render all metrics in Prometheus text exposition format."""
        lines: list[str] = []

        uptime = time.time() - self._start_time
        lines.append("# HELP headnav_uptime_seconds Time since start")
        lines.append("# TYPE headnav_uptime_seconds gauge")
        lines.append(f"headnav_uptime_seconds {uptime:.1f}")
        lines.append("")

        with self._lock:
            lines.append("# HELP headnav_packets_total Datagrams received")
            lines.append("# TYPE headnav_packets_total counter")
            lines.append(f"headnav_packets_total {self._packets_total}")
            lines.append("")

            lines.append("# HELP headnav_packets_rejected_total Datagrams discarded as malformed")
            lines.append("# TYPE headnav_packets_rejected_total counter")
            for reason, count in sorted(self._rejected.items()):
                lines.append(f'headnav_packets_rejected_total{{reason="{reason}"}} {count}')
            lines.append("")

            lines.append("# HELP headnav_samples_dropped_total Samples dropped because the classifier was busy")
            lines.append("# TYPE headnav_samples_dropped_total counter")
            lines.append(f"headnav_samples_dropped_total {self._dropped_total}")
            lines.append("")

            lines.append("# HELP headnav_history_resets_total History resets after a timing gap")
            lines.append("# TYPE headnav_history_resets_total counter")
            lines.append(f"headnav_history_resets_total {self._resets_total}")
            lines.append("")

            lines.append("# HELP headnav_signals_total Signals emitted by the classifier")
            lines.append("# TYPE headnav_signals_total counter")
            for name, count in sorted(self._signals.items()):
                lines.append(f'headnav_signals_total{{signal="{name}"}} {count}')
            lines.append("")

            lines.append("# HELP headnav_commands_total Focus commands issued")
            lines.append("# TYPE headnav_commands_total counter")
            for (command, result), count in sorted(self._commands.items()):
                lines.append(
                    f'headnav_commands_total{{command="{command}",result="{result}"}} {count}'
                )
            lines.append("")

            lines.append("# HELP headnav_commands_suppressed_total Signals suppressed by debounce")
            lines.append("# TYPE headnav_commands_suppressed_total counter")
            lines.append(f"headnav_commands_suppressed_total {self._suppressed_total}")
            lines.append("")

        lines.append(self._latency.render(
            "headnav_classify_latency_seconds",
            "Per-sample classification latency in seconds",
        ))
        lines.append("")

        return "\n".join(lines) + "\n"

    def write(self, path: str | Path):
        Path(path).write_text(self.render())

    @property
    def signal_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._signals)

    @property
    def rejected_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._rejected)

    def summary(self) -> dict:
        with self._lock:
            return {
                "packets": self._packets_total,
                "rejected": sum(self._rejected.values()),
                "dropped": self._dropped_total,
                "history_resets": self._resets_total,
                "signals": sum(self._signals.values()),
                "commands": sum(c for (_, r), c in self._commands.items() if r == "ok"),
                "suppressed": self._suppressed_total,
            }
