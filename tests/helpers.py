"""Synthetic frame factories for stillscore tests."""

from typing import List, Optional

from stillscore.types import CalibrationFrame, FaceFrameInput

FPS6_MS = 1000.0 / 6.0


def make_frame(
    t: float,
    yaw: Optional[float] = 0.0,
    pitch: Optional[float] = 0.0,
    roll: Optional[float] = 0.0,
    left: float = 0.9,
    right: float = 0.9,
) -> FaceFrameInput:
    return FaceFrameInput(
        yaw=yaw,
        pitch=pitch,
        roll=roll,
        face_x=200.0,
        face_y=300.0,
        left_eye_open_probability=left,
        right_eye_open_probability=right,
        timestamp=t,
    )


def make_calibration_frames(
    usable: int = 40,
    interval_ms: float = 50.0,
    yaw: float = 0.0,
    pitch: float = 0.0,
    roll: float = 0.0,
) -> List[CalibrationFrame]:
    """One settle-period frame at t=0, then ``usable`` frames from t=500ms."""
    frames = [CalibrationFrame(0.0, yaw + 30.0, pitch - 30.0, roll, 0.0, 0.0)]
    for i in range(usable):
        frames.append(CalibrationFrame(
            timestamp=500.0 + i * interval_ms,
            yaw=yaw, pitch=pitch, roll=roll,
            face_x=200.0, face_y=300.0,
        ))
    return frames
