"""End-to-end tests: UDP datagrams in, focus commands out."""

import socket
import threading
import time

import pytest

from headnav.actuators import LogActuator
from headnav.config import AppConfig, ConfigError, DispatcherConfig
from headnav.pipeline import HeadGesturePipeline, PipelineStopped
from headnav.pose import Pose, encode_pose


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def make_pipeline(actuator=None):
    config = AppConfig(
        port=free_port(),
        host="127.0.0.1",
        dispatcher=DispatcherConfig(actuator="log"),
    )
    return HeadGesturePipeline(config, actuator=actuator or LogActuator())


def send_turn(address, yaw_rate=80.0, idle=0.6, turn=0.3, dt=0.01):
    """Send an idle lead-in followed by a yaw turn, paced at roughly 100 Hz."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        yaw = 0.0
        last = time.monotonic()
        for i in range(round((idle + turn) / dt)):
            if i >= round(idle / dt):
                now = time.monotonic()
                yaw += yaw_rate * (now - last)
                last = now
            else:
                last = time.monotonic()
            s.sendto(encode_pose(Pose(yaw=yaw)), address)
            time.sleep(dt)


def wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestPipeline:
    def test_requires_port(self):
        with pytest.raises(ConfigError, match="PORT"):
            HeadGesturePipeline(AppConfig(dispatcher=DispatcherConfig(actuator="log")))

    def test_turn_over_udp_focuses_left(self):
        actuator = LogActuator()
        pipeline = make_pipeline(actuator)
        address = pipeline.start()
        try:
            send_turn(address)
            assert wait_for(lambda: actuator.issued)
            assert wait_for(lambda: pipeline.metrics.summary()["packets"] == 90)
        finally:
            pipeline.stop()
        assert actuator.issued == ["focus-column-left"]
        assert pipeline.metrics.summary()["commands"] == 1

    def test_malformed_datagrams_do_not_stop_pipeline(self):
        pipeline = make_pipeline()
        address = pipeline.start()
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
                s.sendto(b"short", address)
                s.sendto(b"\x00" * 48, address)
            assert wait_for(lambda: pipeline.metrics.summary()["packets"] == 2)
            assert not pipeline.stopped
        finally:
            pipeline.stop()
        assert pipeline.metrics.rejected_counts == {"length": 1}

    def test_stage_failure_stops_pipeline(self, monkeypatch):
        pipeline = make_pipeline()

        def explode(sample):
            raise RuntimeError("boom")

        monkeypatch.setattr(pipeline.classifier, "process", explode)

        def poke():
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
                s.sendto(encode_pose(Pose()), ("127.0.0.1", pipeline.port))

        timer = threading.Timer(0.2, poke)
        timer.start()
        try:
            with pytest.raises(PipelineStopped, match="classifier"):
                pipeline.run()
        finally:
            timer.cancel()
        assert pipeline.stopped
