from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Mapping, Type, TypeVar

__all__ = [
    "ConfigError",
    "HorizonConfig",
    "DetectorConfig",
    "ProcessingConfig",
]

T = TypeVar("T")


class ConfigError(ValueError):
    """Raised when a configuration section holds unknown keys or invalid values."""


def _from_mapping(cls: Type[T], data: Mapping[str, Any] | None, section: str) -> T:
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"{section} must be a mapping, got {type(data).__name__}")
    known = {f.name: f.type for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigError(f"Unknown {section} option(s): {', '.join(unknown)}")
    kwargs = {}
    for name, value in data.items():
        # Field annotations are strings under postponed evaluation.
        if known[name] == "int":
            kwargs[name] = _to_int(value, f"{section}.{name}")
        else:
            kwargs[name] = _to_float(value, f"{section}.{name}")
    return cls(**kwargs)


def _to_float(value: Any, where: str, kind: str = "float") -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{where}: expected {kind}, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{where}: expected {kind}, got {value!r}") from exc


def _to_int(value: Any, where: str) -> int:
    number = _to_float(value, where, kind="int")
    # 5.0 is accepted, 5.9 is not
    if not math.isfinite(number) or not number.is_integer():
        raise ConfigError(f"{where}: expected int, got {value!r}")
    return int(number)


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def _require_int_fields(obj: Any) -> None:
    for f in fields(obj):
        value = getattr(obj, f.name)
        if f.type == "int" and (isinstance(value, bool) or not isinstance(value, int)):
            raise ConfigError(f"{f.name}: expected int, got {value!r}")


@dataclass(frozen=True)
class HorizonConfig:
    """Options consumed by the horizon estimator."""

    max_horizon_angle: float = 45.0  # max deviation from horizontal, degrees
    wall_angle_tolerance: float = 15.0  # max deviation from vertical for walls, degrees
    cluster_angle_tolerance: float = 8.0  # parallel-segment grouping, degrees
    min_cluster_segments: int = 1
    smooth_frames: int = 5  # median filter depth
    max_walls: int = 10

    def __post_init__(self) -> None:
        _require_int_fields(self)
        _require(0.0 < self.max_horizon_angle <= 90.0, "max_horizon_angle must be in (0, 90]")
        _require(0.0 <= self.wall_angle_tolerance <= 90.0, "wall_angle_tolerance must be in [0, 90]")
        _require(self.cluster_angle_tolerance > 0.0, "cluster_angle_tolerance must be positive")
        _require(self.min_cluster_segments >= 1, "min_cluster_segments must be >= 1")
        _require(self.smooth_frames >= 1, "smooth_frames must be >= 1")
        _require(self.max_walls >= 0, "max_walls must be >= 0")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "HorizonConfig":
        return _from_mapping(cls, data, "horizon")


@dataclass(frozen=True)
class DetectorConfig:
    """Edge and line detector thresholds before resolution scaling."""

    canny_low: float = 50.0
    canny_high: float = 150.0
    hough_threshold: float = 50.0
    hough_min_length: float = 50.0
    hough_max_gap: float = 10.0
    blur_kernel: int = 5

    def __post_init__(self) -> None:
        _require_int_fields(self)
        _require(0.0 < self.canny_low <= self.canny_high, "expected 0 < canny_low <= canny_high")
        _require(self.hough_threshold > 0, "hough_threshold must be positive")
        _require(self.hough_min_length > 0, "hough_min_length must be positive")
        _require(self.hough_max_gap >= 0, "hough_max_gap must be >= 0")
        _require(self.blur_kernel >= 1 and self.blur_kernel % 2 == 1, "blur_kernel must be a positive odd number")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "DetectorConfig":
        return _from_mapping(cls, data, "detector")


@dataclass(frozen=True)
class ProcessingConfig:
    """Processing resolution and caller-side cadence."""

    process_width: int = 640
    process_height: int = 480
    process_interval_ms: float = 100.0

    def __post_init__(self) -> None:
        _require_int_fields(self)
        _require(self.process_width > 0 and self.process_height > 0, "processing size must be positive")
        _require(self.process_interval_ms >= 0, "process_interval_ms must be >= 0")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ProcessingConfig":
        return _from_mapping(cls, data, "processing")

    @property
    def size(self) -> tuple[int, int]:
        return self.process_width, self.process_height
