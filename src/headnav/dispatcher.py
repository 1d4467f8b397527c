"""Signal dispatch: debounce, map to focus commands, issue them."""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, Optional

from headnav.actuators import Actuator, ActuatorError
from headnav.classifier import Signal
from headnav.config import DispatcherConfig
from headnav.metrics import MetricsCollector

logger = logging.getLogger("headnav.dispatcher")

COMMANDS: dict[Signal, str] = {
    Signal.LEFT_COLUMN: "focus-column-left",
    Signal.RIGHT_COLUMN: "focus-column-right",
    Signal.UP: "focus-window-or-workspace-up",
    Signal.DOWN: "focus-window-or-workspace-down",
    Signal.LEFT_MONITOR: "focus-monitor-left",
    Signal.RIGHT_MONITOR: "focus-monitor-right",
}


def command_for(signal: Signal) -> Optional[str]:
    """The focus command for ``signal``, or None for Nop."""
    return COMMANDS.get(signal)


class Debouncer:
    """Protects the actuator from command floods.

    A signal is let through only if ``min_interval`` has passed since the
    last issued command, and ``repeat_interval`` has passed when it repeats
    that command's signal. Suppressed signals do not move the clock.
    """

    def __init__(self, min_interval: float = 0.3, repeat_interval: float = 0.8):
        self.min_interval = min_interval
        self.repeat_interval = repeat_interval
        self._last: Optional[tuple[Signal, float]] = None

    def allow(self, signal: Signal, now: float) -> bool:
        if self._last is not None:
            last_signal, last_time = self._last
            elapsed = now - last_time
            if elapsed < self.min_interval:
                return False
            if signal == last_signal and elapsed < self.repeat_interval:
                return False
        self._last = (signal, now)
        return True

    def reset(self):
        self._last = None


class SignalDispatcher:
    """Consumes Signals in order and issues the mapped focus commands."""

    def __init__(
        self,
        actuator: Actuator,
        config: Optional[DispatcherConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or DispatcherConfig()
        self.actuator = actuator
        self.metrics = metrics or MetricsCollector()
        self.debouncer = Debouncer(self.config.min_interval, self.config.repeat_interval)
        self._clock = clock

    def dispatch(self, signal: Signal, now: Optional[float] = None) -> bool:
        """Issue the command for ``signal``. Returns True if it was sent."""
        command = command_for(signal)
        if command is None:
            return False

        now = self._clock() if now is None else now
        if not self.debouncer.allow(signal, now):
            logger.debug("Suppressed %s (debounce)", signal.value)
            self.metrics.record_suppressed()
            return False

        try:
            self.actuator.issue(command)
        except ActuatorError as e:
            logger.error("Command %s failed: %s", command, e)
            self.metrics.record_command(command, ok=False)
            return False

        logger.info("%s -> %s", signal.value, command)
        self.metrics.record_command(command, ok=True)
        return True

    def run(self, signals: queue.Queue, stop: threading.Event, poll: float = 0.1):
        """Dispatch signals from ``signals`` until ``stop`` is set."""
        while not stop.is_set():
            try:
                signal = signals.get(timeout=poll)
            except queue.Empty:
                continue
            self.dispatch(signal)
