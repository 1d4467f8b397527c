"""UDP ingestion: datagrams in, validated PoseSamples out.

The hand-off to the classifier is a single-slot queue filled without
blocking. When the classifier has not taken the previous sample yet, the
new one is dropped: a stale frame costs less than added latency.
"""

from __future__ import annotations

import logging
import queue
import socket
import threading
import time
from typing import Callable, Optional

from headnav.metrics import MetricsCollector
from headnav.pose import InvalidPacket, PoseSample, decode_packet

logger = logging.getLogger("headnav.receiver")

RECV_BUFFER = 1024


class PoseReceiver:
    """Receives tracker datagrams and forwards PoseSamples.

    Args:
        samples: Queue feeding the classifier (normally ``maxsize=1``).
        metrics: Shared counters.
        clock: Monotonic time source used to stamp samples.
    """

    def __init__(
        self,
        samples: queue.Queue,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.samples = samples
        self.metrics = metrics or MetricsCollector()
        self._clock = clock
        self._socket: Optional[socket.socket] = None

    def bind(self, host: str, port: int, timeout: float = 0.2) -> tuple[str, int]:
        """Open the UDP socket. Returns the bound address."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind((host, port))
        sock.settimeout(timeout)
        self._socket = sock
        address = sock.getsockname()
        logger.info("Listening for pose datagrams on %s:%d", address[0], address[1])
        return address

    def handle_datagram(self, data: bytes) -> bool:
        """Decode one datagram and hand it to the classifier.

        Returns True if a sample was queued.
        """
        self.metrics.record_packet()
        try:
            pose = decode_packet(data)
        except InvalidPacket as e:
            logger.warning("Discarding packet: %s", e)
            self.metrics.record_rejected(e.reason)
            return False

        sample = PoseSample(pose=pose, instant=self._clock())
        try:
            self.samples.put_nowait(sample)
        except queue.Full:
            logger.debug("Dropped a frame")
            self.metrics.record_dropped()
            return False
        return True

    def serve(self, stop: threading.Event):
        """Receive until ``stop`` is set. Requires ``bind()`` first."""
        if self._socket is None:
            raise RuntimeError("receiver is not bound")
        while not stop.is_set():
            try:
                data, _addr = self._socket.recvfrom(RECV_BUFFER)
            except socket.timeout:
                continue
            self.handle_datagram(data)

    def close(self):
        if self._socket is not None:
            self._socket.close()
            self._socket = None
