"""Per-session calibration.

Buffers the first seconds of a session and derives a personal baseline pose
(per-axis median) and adaptive dead zones (per-axis std x multiplier).
When too few usable frames arrive the session falls back to a fixed
conservative dead zone instead of failing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from stillscore.config import CalibrationConfig
from stillscore.types import Baseline, CalibrationFrame, DeadZone, Pose

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationResult:
    """Outcome of a calibration pass.

    Attributes:
        baseline: Per-axis median pose.
        dead_zone: Per-axis noise tolerance.
        usable_frames: Frames left after the settle period was discarded.
        used_fallback: True when the fixed defaults were applied.
        seed_pose: Pose of the last usable frame, used to seed smoothing.
            None on fallback.
    """

    baseline: Baseline
    dead_zone: DeadZone
    usable_frames: int
    used_fallback: bool
    seed_pose: Optional[Pose] = None


def fallback_calibration(config: CalibrationConfig, usable_frames: int = 0) -> CalibrationResult:
    """Fixed safe baseline and conservative dead zone."""
    angle = config.fallback_angle_dead_zone
    position = config.fallback_position_dead_zone
    return CalibrationResult(
        baseline=Baseline(),
        dead_zone=DeadZone(
            yaw=angle, pitch=angle, roll=angle,
            face_x=position, face_y=position,
        ),
        usable_frames=usable_frames,
        used_fallback=True,
    )


def _sample_std(values: np.ndarray) -> float:
    if values.size < 2:
        return 0.0
    return float(np.std(values, ddof=1))


def calibrate(
    frames: Sequence[CalibrationFrame],
    config: Optional[CalibrationConfig] = None,
) -> CalibrationResult:
    """Estimate baseline and dead zones from a calibration window.

    Frames within ``discard_first_ms`` of the earliest timestamp are dropped
    to skip face-acquisition noise. The remainder is ordered by timestamp.

    Args:
        frames: Frames gathered during the calibration window.
        config: Calibration settings (default: CalibrationConfig()).

    Returns:
        CalibrationResult. Never raises for short or empty input.
    """
    cfg = config or CalibrationConfig()
    if not frames:
        logger.warning("No calibration frames, using safe defaults")
        return fallback_calibration(cfg)

    start = min(f.timestamp for f in frames)
    discard_before = start + cfg.discard_first_ms
    usable = sorted(
        (f for f in frames if f.timestamp >= discard_before),
        key=lambda f: f.timestamp,
    )

    if len(usable) < cfg.min_frames:
        logger.warning(
            "Only %d usable calibration frames (need %d), using safe defaults",
            len(usable), cfg.min_frames,
        )
        return fallback_calibration(cfg, usable_frames=len(usable))

    # columns: yaw, pitch, roll, face_x, face_y
    samples = np.array(
        [(f.yaw, f.pitch, f.roll, f.face_x, f.face_y) for f in usable],
        dtype=np.float64,
    )
    medians = np.median(samples, axis=0)
    mult = cfg.dead_zone_multiplier

    def angle_zone(col: int) -> float:
        zone = _sample_std(samples[:, col]) * mult
        return min(max(zone, cfg.min_dead_zone_degrees), cfg.max_dead_zone_degrees)

    baseline = Baseline(
        yaw=float(medians[0]),
        pitch=float(medians[1]),
        roll=float(medians[2]),
        face_x=float(medians[3]),
        face_y=float(medians[4]),
    )
    dead_zone = DeadZone(
        yaw=angle_zone(0),
        pitch=angle_zone(1),
        roll=angle_zone(2),
        face_x=_sample_std(samples[:, 3]) * mult,
        face_y=_sample_std(samples[:, 4]) * mult,
    )
    last = usable[-1]

    logger.info(
        "Calibrated from %d frames: baseline=(y=%.2f p=%.2f r=%.2f) "
        "dead_zone=(y=%.2f p=%.2f r=%.2f)",
        len(usable), baseline.yaw, baseline.pitch, baseline.roll,
        dead_zone.yaw, dead_zone.pitch, dead_zone.roll,
    )
    return CalibrationResult(
        baseline=baseline,
        dead_zone=dead_zone,
        usable_frames=len(usable),
        used_fallback=False,
        seed_pose=Pose(yaw=last.yaw, pitch=last.pitch, roll=last.roll),
    )


class CalibrationWindow:
    """Collects calibration frames until the window duration has elapsed.

    The window opens at the first added frame's timestamp and closes once a
    frame arrives at or beyond ``total_duration_ms`` later.

    Example:
        >>> window = CalibrationWindow(CalibrationConfig())
        >>> for frame in frames:
        ...     if window.add(frame):
        ...         result = calibrate(window.frames)
        ...         break
    """

    def __init__(self, config: Optional[CalibrationConfig] = None):
        self.config = config or CalibrationConfig()
        self._frames: List[CalibrationFrame] = []
        self._start_ms: Optional[float] = None
        self._last_ms: Optional[float] = None

    @property
    def frames(self) -> List[CalibrationFrame]:
        return list(self._frames)

    @property
    def started(self) -> bool:
        return self._start_ms is not None

    @property
    def complete(self) -> bool:
        if self._start_ms is None or self._last_ms is None:
            return False
        return self._last_ms - self._start_ms >= self.config.total_duration_ms

    def add(self, frame: CalibrationFrame) -> bool:
        """Buffer a frame. Returns True once the window is complete."""
        if self._start_ms is None:
            self._start_ms = frame.timestamp
        self._last_ms = frame.timestamp
        if not self.complete:
            self._frames.append(frame)
        return self.complete

    def tick(self, timestamp: float) -> bool:
        """Advance the clock without a frame (e.g. face not detected)."""
        if self._start_ms is not None:
            self._last_ms = max(self._last_ms or timestamp, timestamp)
        return self.complete

    def progress(self) -> float:
        """Calibration progress in percent (0-100)."""
        if self._start_ms is None or self._last_ms is None:
            return 0.0
        total = self.config.total_duration_ms
        if total <= 0:
            return 100.0
        return min(100.0, (self._last_ms - self._start_ms) / total * 100.0)

    def clear(self) -> None:
        self._frames.clear()
        self._start_ms = None
        self._last_ms = None


__all__ = [
    "CalibrationResult",
    "CalibrationWindow",
    "calibrate",
    "fallback_calibration",
]
