"""Data types shared across the scoring engine."""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


# Eye-open probability reported when the detector could not classify an eye.
EYE_UNAVAILABLE = -1.0


def round_half_up(value: float, ndigits: int = 0):
    """Round with halves going up (``2.5 -> 3``, ``0.125 -> 0.13`` at 2 digits).

    Published scores use this instead of ``round()``, which rounds halves
    to even. Returns an int when ``ndigits`` is 0.
    """
    if ndigits == 0:
        return int(math.floor(value + 0.5))
    scale = 10.0 ** ndigits
    return math.floor(value * scale + 0.5) / scale


@dataclass(frozen=True)
class CalibrationFrame:
    """Raw pose sample collected during the calibration window."""

    timestamp: float  # ms
    yaw: float
    pitch: float
    roll: float
    face_x: float
    face_y: float


@dataclass(frozen=True)
class FaceFrameInput:
    """One detector observation for a camera frame.

    Pose angles are in degrees, face center in detector coordinates,
    eye probabilities in [0, 1] or negative when unavailable.
    """

    yaw: Optional[float]
    pitch: Optional[float]
    roll: Optional[float]
    face_x: float = 0.0
    face_y: float = 0.0
    left_eye_open_probability: float = EYE_UNAVAILABLE
    right_eye_open_probability: float = EYE_UNAVAILABLE
    timestamp: float = 0.0  # ms

    @property
    def has_valid_pose(self) -> bool:
        """True when all three angles are present and not NaN."""
        for angle in (self.yaw, self.pitch, self.roll):
            if angle is None or math.isnan(angle):
                return False
        return True

    @property
    def has_eye_data(self) -> bool:
        return (
            self.left_eye_open_probability >= 0
            and self.right_eye_open_probability >= 0
        )

    def to_calibration_frame(self) -> CalibrationFrame:
        return CalibrationFrame(
            timestamp=self.timestamp,
            yaw=float(self.yaw),
            pitch=float(self.pitch),
            roll=float(self.roll),
            face_x=self.face_x,
            face_y=self.face_y,
        )


@dataclass(frozen=True)
class Pose:
    """Head orientation in degrees."""

    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0


@dataclass(frozen=True)
class Baseline:
    """Per-axis median pose established during calibration."""

    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0
    face_x: float = 0.0
    face_y: float = 0.0


@dataclass(frozen=True)
class DeadZone:
    """Per-axis noise tolerance derived from calibration spread."""

    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0
    face_x: float = 0.0
    face_y: float = 0.0


@dataclass(frozen=True)
class FrameResult:
    """Live output for one processed frame.

    Attributes:
        frame_score: Stillness of this frame normalized to [0, 1].
        current_stillness: Running average stillness [0, 100].
        live_stillness: Fast EMA of stillness [0, 100] for display.
        blink_count: Blinks counted so far.
        is_calibrating: Whether the engine is still calibrating.
    """

    frame_score: float = 1.0
    current_stillness: float = 100.0
    live_stillness: float = 100.0
    blink_count: int = 0
    is_calibrating: bool = True


NEUTRAL_RESULT = FrameResult()


@dataclass(frozen=True)
class SessionResults:
    """Final composite result for a completed session.

    All sub-scores are in [0, 100]. ``verified_seconds`` is the time the face
    was continuously tracked, excluding detection gaps.
    """

    composite_score: float
    stillness_score: float
    blink_score: float
    duration_score: float
    grade: str
    label: str
    color: str
    blinks_per_minute: float
    stillness_percent: int
    face_presence_percent: int
    verified_seconds: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


__all__ = [
    "EYE_UNAVAILABLE",
    "round_half_up",
    "CalibrationFrame",
    "FaceFrameInput",
    "Pose",
    "Baseline",
    "DeadZone",
    "FrameResult",
    "NEUTRAL_RESULT",
    "SessionResults",
]
