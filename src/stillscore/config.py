"""Scoring configuration.

Every tunable constant used by the engine lives here, grouped into frozen
section dataclasses. Nothing numeric is hardcoded in the scoring path.

Example:
    >>> cfg = ScoringConfig()
    >>> cfg = cfg.override(blink={"eye_closed_threshold": 0.25})
    >>> cfg.blink.eye_closed_threshold
    0.25
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple


class ConfigError(ValueError):
    """Raised for invalid configuration overrides."""


@dataclass(frozen=True)
class CalibrationConfig:
    """Calibration window and dead-zone estimation.

    Attributes:
        total_duration_ms: Length of the calibration window (default: 3000).
        discard_first_ms: Settle period dropped from the window start (default: 500).
        min_frames: Usable frames required for a personal baseline (default: 30).
        dead_zone_multiplier: Std multiplier for dead zones (default: 1.5).
        min_dead_zone_degrees: Lower clamp for angle dead zones (default: 0.3).
        max_dead_zone_degrees: Upper clamp for angle dead zones (default: 1.5).
        fallback_angle_dead_zone: Angle dead zone when calibration falls back.
        fallback_position_dead_zone: Face-position dead zone on fallback.
    """

    total_duration_ms: float = 3000.0
    discard_first_ms: float = 500.0
    min_frames: int = 30
    dead_zone_multiplier: float = 1.5
    min_dead_zone_degrees: float = 0.3
    max_dead_zone_degrees: float = 1.5
    fallback_angle_dead_zone: float = 1.5
    fallback_position_dead_zone: float = 10.0


@dataclass(frozen=True)
class SmoothingConfig:
    """Pose smoothing and face-loss tolerance."""

    euler_ema_alpha: float = 0.3
    live_ema_alpha: float = 0.3       # fast display EMA
    face_lost_max_ms: float = 2000.0  # hold window for brief detection loss
    presence_gap_max_ms: float = 2000.0  # larger gaps don't count as face time


@dataclass(frozen=True)
class MovementConfig:
    """Frame-to-frame movement scoring.

    Stillness maps linearly from 100 at zero movement down to
    ``min_frame_stillness`` at ``movement_ceiling_degrees``.
    """

    yaw_weight: float = 1.0
    pitch_weight: float = 1.0
    roll_weight: float = 0.7
    dead_zone_fraction: float = 0.15
    movement_ceiling_degrees: float = 2.0
    min_frame_stillness: float = 25.0


@dataclass(frozen=True)
class BlinkConfig:
    """Blink state machine thresholds and blink-rate scoring range."""

    eye_closed_threshold: float = 0.3
    eye_open_threshold: float = 0.5
    min_closed_frames: int = 1
    min_floor: float = 0.0     # blinks/min scoring 100
    max_ceiling: float = 35.0  # blinks/min scoring 0


@dataclass(frozen=True)
class AggregationConfig:
    """Session-level stillness aggregation."""

    trim_fraction: float = 0.1
    stillness_floor: float = 25.0
    floor_min_presence_percent: float = 50.0
    min_duration_minutes: float = 0.01


@dataclass(frozen=True)
class DurationConfig:
    """Log-curve duration score: base + log_multiplier * ln(minutes + 1)."""

    base_score: float = 0.0
    log_multiplier: float = 25.0
    max_score: float = 100.0


@dataclass(frozen=True)
class CompositeConfig:
    """Composite score weights (should sum to 1.0)."""

    stillness_weight: float = 0.55
    blink_weight: float = 0.25
    duration_weight: float = 0.20


@dataclass(frozen=True)
class GradeEntry:
    """One row of the grade table."""

    min_score: float
    grade: str
    label: str
    color: str


DEFAULT_GRADES: Tuple[GradeEntry, ...] = (
    GradeEntry(90.0, "S", "TRANSCENDENT", "#8E44AD"),
    GradeEntry(80.0, "A", "FOCUSED", "#27AE60"),
    GradeEntry(65.0, "B", "SOLID", "#2980B9"),
    GradeEntry(50.0, "C", "BUILDING", "#F39C12"),
    GradeEntry(30.0, "D", "RESTLESS", "#E67E22"),
    GradeEntry(0.0, "F", "DISTRACTED", "#E74C3C"),
)


@dataclass(frozen=True)
class ScoringConfig:
    """Complete engine configuration.

    Sections are immutable; use :meth:`override` to derive a modified copy.
    ``grades`` must be ordered by descending ``min_score``; the last entry is
    the catch-all.
    """

    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    movement: MovementConfig = field(default_factory=MovementConfig)
    blink: BlinkConfig = field(default_factory=BlinkConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    duration: DurationConfig = field(default_factory=DurationConfig)
    composite: CompositeConfig = field(default_factory=CompositeConfig)
    grades: Tuple[GradeEntry, ...] = DEFAULT_GRADES

    def __post_init__(self):
        grades = tuple(self.grades)
        if not grades:
            raise ConfigError("Grade table must not be empty")
        object.__setattr__(self, "grades", grades)

    def override(self, **sections: Any) -> "ScoringConfig":
        """Return a copy with per-section field overrides merged in.

        Each keyword names a section and maps to a dict of field changes, or
        to a replacement section instance. ``grades`` takes a sequence of
        :class:`GradeEntry`.

        Raises:
            ConfigError: Unknown section name or empty grade table.
            TypeError: Unknown field inside a section.
        """
        changes = {}
        for name, value in sections.items():
            if name not in _SECTION_NAMES:
                raise ConfigError(f"Unknown config section: {name!r}")
            if value is None:
                continue
            if name == "grades":
                changes[name] = tuple(value)
                continue
            current = getattr(self, name)
            if isinstance(value, type(current)):
                changes[name] = value
            elif isinstance(value, Mapping):
                changes[name] = dataclasses.replace(current, **value)
            else:
                raise ConfigError(
                    f"Override for {name!r} must be a mapping or "
                    f"{type(current).__name__}, got {type(value).__name__}"
                )
        return dataclasses.replace(self, **changes)


_SECTION_NAMES = frozenset(f.name for f in dataclasses.fields(ScoringConfig))


def resolve_config(
    config: Optional[ScoringConfig] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ScoringConfig:
    """Merge optional section overrides over ``config`` (or the defaults)."""
    cfg = config or ScoringConfig()
    if overrides:
        cfg = cfg.override(**overrides)
    return cfg


__all__ = [
    "ConfigError",
    "CalibrationConfig",
    "SmoothingConfig",
    "MovementConfig",
    "BlinkConfig",
    "AggregationConfig",
    "DurationConfig",
    "CompositeConfig",
    "GradeEntry",
    "DEFAULT_GRADES",
    "ScoringConfig",
    "resolve_config",
]
