"""Runtime configuration: classifier thresholds, dispatcher timing, port.

Configuration can be loaded from YAML:

    host: 0.0.0.0
    classifier:
      yaw_threshold: 36.0
      idle_window: 0.5
    dispatcher:
      min_interval: 0.3
      actuator: niri
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

ACTUATOR_KINDS = ("niri", "niri-msg", "log")


class ConfigError(ValueError):
    """Invalid or missing configuration. Fatal at startup."""


@dataclass
class ClassifierConfig:
    """Thresholds and window sizes used by the gesture classifier.

    Angular rates are in degrees per second, durations in seconds.
    """
    yaw_threshold: float = 36.0
    pitch_positive_threshold: float = 50.0   # pitch rate above this -> Down
    pitch_negative_threshold: float = -32.0  # pitch rate below this -> Up
    idle_window: float = 0.5
    capacity: int = 4000
    min_history: int = 16
    max_delta: float = 1.0
    velocity_lag: int = 2
    min_elapsed: float = 1e-6
    monitor_yaw_threshold: Optional[float] = None

    def __post_init__(self):
        if self.yaw_threshold <= 0:
            raise ConfigError("yaw_threshold must be positive")
        if self.pitch_positive_threshold <= 0:
            raise ConfigError("pitch_positive_threshold must be positive")
        if self.pitch_negative_threshold >= 0:
            raise ConfigError("pitch_negative_threshold must be negative")
        if self.idle_window < 0:
            raise ConfigError("idle_window must not be negative")
        if self.min_history < 1:
            raise ConfigError("min_history must be at least 1")
        if self.capacity < self.min_history:
            raise ConfigError("capacity must be at least min_history")
        if self.velocity_lag < 1:
            raise ConfigError("velocity_lag must be at least 1")
        if self.max_delta <= 0 or self.min_elapsed <= 0:
            raise ConfigError("max_delta and min_elapsed must be positive")
        if self.monitor_yaw_threshold is not None and self.monitor_yaw_threshold < self.yaw_threshold:
            raise ConfigError("monitor_yaw_threshold must not be below yaw_threshold")


@dataclass
class DispatcherConfig:
    """Command pacing and actuator selection."""
    min_interval: float = 0.3     # between any two commands
    repeat_interval: float = 0.8  # before repeating the last command
    actuator: str = "niri"
    command_timeout: float = 2.0

    def __post_init__(self):
        if self.min_interval < 0 or self.repeat_interval < 0:
            raise ConfigError("dispatcher intervals must not be negative")
        if self.actuator not in ACTUATOR_KINDS:
            raise ConfigError(
                f"unknown actuator {self.actuator!r}, expected one of {', '.join(ACTUATOR_KINDS)}"
            )


@dataclass
class AppConfig:
    port: Optional[int] = None
    host: str = "0.0.0.0"
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    dispatcher: DispatcherConfig = field(default_factory=DispatcherConfig)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> AppConfig:
        data = dict(data or {})
        _reject_unknown(cls, data, "top level")
        classifier = data.pop("classifier", None) or {}
        dispatcher = data.pop("dispatcher", None) or {}
        _reject_unknown(ClassifierConfig, classifier, "classifier")
        _reject_unknown(DispatcherConfig, dispatcher, "dispatcher")
        try:
            config = cls(
                classifier=ClassifierConfig(**classifier),
                dispatcher=DispatcherConfig(**dispatcher),
                **data,
            )
        except TypeError as e:
            raise ConfigError(str(e)) from e
        if config.port is not None:
            config.port = resolve_port(config.port)
        return config


def _reject_unknown(cls: type, data: Any, section: str):
    if not isinstance(data, dict):
        raise ConfigError(f"{section} section must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown {section} key(s): {', '.join(unknown)}")


def load_config(path: Optional[str | Path] = None) -> AppConfig:
    """Load an AppConfig from a YAML file, or defaults when path is None."""
    if path is None:
        return AppConfig()
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e
    return AppConfig.from_dict(data or {})


def save_config(config: AppConfig, path: str | Path):
    with open(path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)


def resolve_port(value: Any) -> int:
    """Validate the listening port.

    Raises:
        ConfigError: value is missing, not an integer, or out of range.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigError("PORT is not set")
    if isinstance(value, bool):
        raise ConfigError(f"failed to parse PORT: {value!r}")
    try:
        port = int(str(value).strip())
    except ValueError:
        raise ConfigError(f"failed to parse PORT: {value!r}") from None
    if not 1 <= port <= 65535:
        raise ConfigError(f"PORT out of range: {port}")
    return port
