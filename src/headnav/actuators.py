"""Focus-change actuators for the niri compositor.

Commands use niri's action names (``focus-column-left`` and so on):
- NiriSocketActuator: JSON request over the IPC socket at $NIRI_SOCKET
- NiriMsgActuator: runs ``niri msg action <command>``
- LogActuator: logs the command only (dry run)
"""

from __future__ import annotations

import json
import logging
import os
import socket
import subprocess
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger("headnav.actuators")


class ActuatorError(RuntimeError):
    """The compositor could not be reached or rejected a command."""


def action_name(command: str) -> str:
    """Map a kebab-case command to niri's IPC action name.

    >>> action_name("focus-window-or-workspace-up")
    'FocusWindowOrWorkspaceUp'
    """
    return "".join(part.capitalize() for part in command.split("-"))


class Actuator(ABC):
    """Issues one named focus command."""

    name: str = "actuator"

    @abstractmethod
    def issue(self, command: str) -> None:
        """Issue ``command``. Raises ActuatorError on failure."""

    def close(self):
        pass


class NiriSocketActuator(Actuator):
    """Sends actions over niri's IPC socket, one connection per command."""

    name = "niri"

    def __init__(self, socket_path: Optional[str] = None, timeout: float = 2.0):
        self.socket_path = socket_path or os.environ.get("NIRI_SOCKET")
        self.timeout = timeout

    def request(self, command: str) -> dict:
        return {"Action": {action_name(command): {}}}

    def issue(self, command: str) -> None:
        if not self.socket_path:
            raise ActuatorError("NIRI_SOCKET is not set")

        payload = json.dumps(self.request(command)).encode() + b"\n"
        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
                sock.settimeout(self.timeout)
                sock.connect(self.socket_path)
                sock.sendall(payload)
                sock.shutdown(socket.SHUT_WR)
                reply = sock.makefile("rb").readline()
        except OSError as e:
            raise ActuatorError(f"niri IPC failed: {e}") from e

        if not reply:
            raise ActuatorError("niri closed the connection without a reply")
        try:
            data = json.loads(reply)
        except ValueError as e:
            raise ActuatorError(f"invalid reply from niri: {reply!r}") from e
        if isinstance(data, dict) and "Err" in data:
            raise ActuatorError(f"niri rejected {command}: {data['Err']}")


class NiriMsgActuator(Actuator):
    """Runs the ``niri msg`` CLI for each command."""

    name = "niri-msg"

    def __init__(self, executable: str = "niri", timeout: float = 2.0):
        self.executable = executable
        self.timeout = timeout

    def issue(self, command: str) -> None:
        try:
            proc = subprocess.run(
                [self.executable, "msg", "action", command],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ActuatorError(f"niri msg failed: {e}") from e
        if proc.returncode != 0:
            stderr = proc.stderr.decode(errors="replace").strip()
            raise ActuatorError(f"niri msg exited with {proc.returncode}: {stderr}")


class LogActuator(Actuator):
    """Records commands instead of sending them."""

    name = "log"

    def __init__(self):
        self.issued: list[str] = []

    def issue(self, command: str) -> None:
        logger.info("Dry run: %s", command)
        self.issued.append(command)


def build_actuator(kind: str, timeout: float = 2.0) -> Actuator:
    if kind == "niri":
        return NiriSocketActuator(timeout=timeout)
    if kind == "niri-msg":
        return NiriMsgActuator(timeout=timeout)
    if kind == "log":
        return LogActuator()
    raise ValueError(f"unknown actuator: {kind}")
