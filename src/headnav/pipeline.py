"""Three-stage pipeline: receiver -> classifier -> dispatcher.

Each stage runs on its own thread and owns its state; they only share
the two single-slot hand-off queues. If any stage dies, the shared stop
event is set and the others wind down, since the pipeline cannot make
progress without every stage.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from headnav.actuators import Actuator, build_actuator
from headnav.classifier import GestureClassifier, Signal
from headnav.config import AppConfig, ClassifierConfig, DispatcherConfig, resolve_port
from headnav.dispatcher import Debouncer, SignalDispatcher
from headnav.metrics import MetricsCollector
from headnav.pose import PoseSample
from headnav.receiver import PoseReceiver

logger = logging.getLogger("headnav.pipeline")


class PipelineStopped(RuntimeError):
    """A pipeline stage terminated unexpectedly."""


class HeadGesturePipeline:
    """Wires the receiver, classifier and dispatcher together.

    Usage:
        pipeline = HeadGesturePipeline(config)
        pipeline.run()  # blocks until stop() or a stage failure
    """

    def __init__(
        self,
        config: AppConfig,
        actuator: Optional[Actuator] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config
        self.port = resolve_port(config.port)
        self.metrics = metrics or MetricsCollector()
        self.actuator = actuator or build_actuator(
            config.dispatcher.actuator, timeout=config.dispatcher.command_timeout
        )

        self._samples: queue.Queue[PoseSample] = queue.Queue(maxsize=1)
        self._signals: queue.Queue[Signal] = queue.Queue(maxsize=1)
        self._stop = threading.Event()
        self._failed: Optional[str] = None

        self.receiver = PoseReceiver(self._samples, self.metrics)
        self.classifier = GestureClassifier(config.classifier)
        self.dispatcher = SignalDispatcher(self.actuator, config.dispatcher, self.metrics)
        self._threads: list[threading.Thread] = []
        self.address: Optional[tuple[str, int]] = None

    def start(self) -> tuple[str, int]:
        """Bind the socket and start all stages in background threads."""
        self.address = self.receiver.bind(self.config.host, self.port)
        for name, target in (
            ("classifier", self._classify_loop),
            ("dispatcher", lambda: self.dispatcher.run(self._signals, self._stop)),
            ("receiver", lambda: self.receiver.serve(self._stop)),
        ):
            t = threading.Thread(target=self._run_stage, args=(name, target), name=name, daemon=True)
            t.start()
            self._threads.append(t)
        return self.address

    def run(self):
        """Start and block until stopped.

        Raises:
            PipelineStopped: a stage failed.
        """
        self.start()
        try:
            while not self._stop.wait(0.5):
                pass
        finally:
            self.stop()
        if self._failed:
            raise PipelineStopped(f"{self._failed} stage stopped")

    def stop(self, timeout: float = 2.0):
        self._stop.set()
        for t in self._threads:
            if t is not threading.current_thread():
                t.join(timeout)
        self.receiver.close()
        self.actuator.close()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _run_stage(self, name: str, target: Callable[[], None]):
        try:
            target()
        except Exception:
            logger.exception("%s stage crashed", name)
            self._failed = name
        finally:
            if not self._stop.is_set():
                logger.info("%s stage exited, shutting down", name)
            self._stop.set()

    def _classify_loop(self):
        while not self._stop.is_set():
            try:
                sample = self._samples.get(timeout=0.1)
            except queue.Empty:
                continue

            resets = self.classifier.history.resets
            t0 = time.perf_counter()
            signal = self.classifier.process(sample)
            self.metrics.observe_latency(time.perf_counter() - t0)
            if self.classifier.history.resets != resets:
                self.metrics.record_history_reset()

            if signal is Signal.NOP:
                continue
            self.metrics.record_signal(signal.value)
            self._send_signal(signal)

    def _send_signal(self, signal: Signal):
        # Blocking hand-off; signals are rare so waiting on the dispatcher is fine.
        while not self._stop.is_set():
            try:
                self._signals.put(signal, timeout=0.1)
                return
            except queue.Full:
                continue


@dataclass
class ReplayedSignal:
    signal: Signal
    instant: float
    issued: bool


def replay_signals(
    samples: Iterable[PoseSample],
    classifier_config: Optional[ClassifierConfig] = None,
    dispatcher_config: Optional[DispatcherConfig] = None,
) -> list[ReplayedSignal]:
    """Run samples through the classifier and debouncer offline.

    Uses the samples' own timestamps for both stages, so results are
    deterministic. Every non-Nop signal is returned; ``issued`` tells
    whether the dispatcher would have sent its command.
    """
    dispatcher_config = dispatcher_config or DispatcherConfig(actuator="log")
    classifier = GestureClassifier(classifier_config)
    debouncer = Debouncer(dispatcher_config.min_interval, dispatcher_config.repeat_interval)

    results = []
    for sample in samples:
        signal = classifier.process(sample)
        if signal is Signal.NOP:
            continue
        issued = debouncer.allow(signal, sample.instant)
        results.append(ReplayedSignal(signal=signal, instant=sample.instant, issued=issued))
    return results
