"""Per-frame stillness scoring.

Pure transition functions over an immutable :class:`EngineState`:

    step = process_frame(state, frame, config, now_ms)
    state = step.state

Movement is measured frame-to-frame on EMA-smoothed angles, not against the
calibration baseline, so slow posture drift is not punished while sudden
motion is. Each frame maps linearly into [min_frame_stillness, 100].

The per-frame score history is not part of the state; the step returns the
score to record (``step.score``) and the caller appends it.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Optional

from stillscore.blink import BlinkState, step_blink
from stillscore.calibration import CalibrationResult
from stillscore.config import ScoringConfig
from stillscore.types import (
    NEUTRAL_RESULT,
    Baseline,
    DeadZone,
    FaceFrameInput,
    FrameResult,
    Pose,
    round_half_up,
)

# FrameStep.event values
EVENT_CALIBRATING = "calibrating"
EVENT_MALFORMED = "malformed"
EVENT_HELD = "held"
EVENT_FACE_LOST = "face_lost"
EVENT_SCORED = "scored"


@dataclass(frozen=True)
class EngineState:
    """Complete mutable-by-replacement state of one scoring session."""

    calibrating: bool = True
    baseline: Optional[Baseline] = None
    dead_zone: Optional[DeadZone] = None

    smoothed: Optional[Pose] = None
    previous: Optional[Pose] = None
    blink: BlinkState = field(default_factory=BlinkState)

    last_known: Optional[FaceFrameInput] = None
    last_face_ts: Optional[float] = None

    total_frames: int = 0
    frames_with_face: int = 0
    score_count: int = 0
    score_sum: float = 0.0
    face_seconds: float = 0.0

    live_stillness: float = 100.0
    last_result: FrameResult = NEUTRAL_RESULT

    @property
    def blink_count(self) -> int:
        return self.blink.count


@dataclass(frozen=True)
class FrameStep:
    """Result of one transition.

    Attributes:
        state: Next engine state.
        result: Output to publish for this frame.
        event: What happened (one of the EVENT_* constants).
        score: Normalized frame score to append to the history, or None.
        movement: Adjusted movement in degree-equivalents (scored frames).
    """

    state: EngineState
    result: FrameResult
    event: str
    score: Optional[float] = None
    movement: float = 0.0


def apply_calibration(state: EngineState, calibration: CalibrationResult) -> EngineState:
    """Install baseline and dead zones and leave the calibrating phase.

    Calibration is write-once: an already calibrated state is returned as is.
    Smoothing and previous-pose trackers are seeded with the last calibration
    pose so the first scored delta starts from a real reference point.
    """
    if not state.calibrating:
        return state
    return dataclasses.replace(
        state,
        calibrating=False,
        baseline=calibration.baseline,
        dead_zone=calibration.dead_zone,
        smoothed=calibration.seed_pose,
        previous=calibration.seed_pose,
        last_result=dataclasses.replace(
            NEUTRAL_RESULT,
            blink_count=state.blink_count,
            is_calibrating=False,
        ),
    )


def smooth_pose(previous: Optional[Pose], yaw: float, pitch: float, roll: float, alpha: float) -> Pose:
    """EMA-smooth raw angles. The first sample seeds the filter directly."""
    if previous is None:
        return Pose(yaw=yaw, pitch=pitch, roll=roll)
    keep = 1.0 - alpha
    return Pose(
        yaw=alpha * yaw + keep * previous.yaw,
        pitch=alpha * pitch + keep * previous.pitch,
        roll=alpha * roll + keep * previous.roll,
    )


def movement_magnitude(current: Pose, previous: Pose, config: ScoringConfig) -> float:
    """Weighted Euclidean pose delta between two smoothed poses."""
    mv = config.movement
    d_yaw = current.yaw - previous.yaw
    d_pitch = current.pitch - previous.pitch
    d_roll = current.roll - previous.roll
    return math.sqrt(
        mv.yaw_weight * d_yaw * d_yaw
        + mv.pitch_weight * d_pitch * d_pitch
        + mv.roll_weight * d_roll * d_roll
    )


def adjusted_movement(movement: float, dead_zone: Optional[DeadZone], config: ScoringConfig) -> float:
    """Subtract the adaptive dead-zone offset, floored at 0."""
    if dead_zone is None:
        return movement
    offset = min(dead_zone.yaw, dead_zone.pitch) * config.movement.dead_zone_fraction
    return max(0.0, movement - offset)


def frame_stillness(adjusted: float, config: ScoringConfig) -> float:
    """Map adjusted movement linearly into [min_frame_stillness, 100]."""
    mv = config.movement
    if mv.movement_ceiling_degrees <= 0:
        raw = 100.0 if adjusted <= 0 else mv.min_frame_stillness
    else:
        raw = 100.0 * (1.0 - adjusted / mv.movement_ceiling_degrees)
    return max(mv.min_frame_stillness, min(100.0, raw))


def _hold(state: EngineState, event: str, **changes) -> FrameStep:
    result = dataclasses.replace(state.last_result, blink_count=state.blink_count)
    return FrameStep(
        state=dataclasses.replace(state, last_result=result, **changes),
        result=result,
        event=event,
    )


def process_frame(
    state: EngineState,
    frame: Optional[FaceFrameInput],
    config: ScoringConfig,
    now_ms: Optional[float] = None,
) -> FrameStep:
    """Score one frame.

    Args:
        state: Current engine state.
        frame: Detector output, or None when no face was detected.
        config: Engine configuration.
        now_ms: Timestamp used for face-absent frames. Ignored when a frame
            is given (its own timestamp is used).

    Returns:
        FrameStep with the next state and the result to publish.
    """
    if frame is not None and not frame.has_valid_pose:
        return _hold(state, EVENT_MALFORMED)

    if state.calibrating:
        result = dataclasses.replace(NEUTRAL_RESULT, blink_count=state.blink_count)
        return FrameStep(state=state, result=result, event=EVENT_CALIBRATING)

    now = frame.timestamp if frame is not None else (now_ms or 0.0)
    total_frames = state.total_frames + 1

    if frame is None:
        return _face_absent(state, config, now, total_frames)
    return _face_present(state, frame, config, now, total_frames)


def _face_absent(state: EngineState, config: ScoringConfig, now: float, total_frames: int) -> FrameStep:
    sm = config.smoothing
    if (
        state.last_known is not None
        and state.last_face_ts is not None
        and now - state.last_face_ts <= sm.face_lost_max_ms
    ):
        return _hold(state, EVENT_HELD, total_frames=total_frames)

    live = (1.0 - sm.live_ema_alpha) * state.live_stillness
    result = FrameResult(
        frame_score=0.0,
        current_stillness=0,
        live_stillness=round_half_up(live),
        blink_count=state.blink_count,
        is_calibrating=False,
    )
    next_state = dataclasses.replace(
        state,
        total_frames=total_frames,
        score_count=state.score_count + 1,
        live_stillness=live,
        last_result=result,
    )
    return FrameStep(state=next_state, result=result, event=EVENT_FACE_LOST, score=0.0)


def _face_present(
    state: EngineState,
    frame: FaceFrameInput,
    config: ScoringConfig,
    now: float,
    total_frames: int,
) -> FrameStep:
    sm = config.smoothing

    # Presence time: gaps longer than the tolerance are not counted.
    face_seconds = state.face_seconds
    if state.last_face_ts is not None:
        gap_ms = now - state.last_face_ts
        if 0 <= gap_ms < sm.presence_gap_max_ms:
            face_seconds += gap_ms / 1000.0

    blink = state.blink
    if frame.has_eye_data:
        blink = step_blink(
            blink,
            frame.left_eye_open_probability,
            frame.right_eye_open_probability,
            config.blink,
        )

    smoothed = smooth_pose(
        state.smoothed, float(frame.yaw), float(frame.pitch), float(frame.roll),
        sm.euler_ema_alpha,
    )

    if state.previous is None:
        adjusted = 0.0
        stillness = 100.0
    else:
        movement = movement_magnitude(smoothed, state.previous, config)
        adjusted = adjusted_movement(movement, state.dead_zone, config)
        stillness = frame_stillness(adjusted, config)

    score = stillness / 100.0
    score_count = state.score_count + 1
    score_sum = state.score_sum + score
    live = sm.live_ema_alpha * stillness + (1.0 - sm.live_ema_alpha) * state.live_stillness

    result = FrameResult(
        frame_score=score,
        current_stillness=round_half_up(score_sum / score_count * 100.0),
        live_stillness=round_half_up(live),
        blink_count=blink.count,
        is_calibrating=False,
    )
    next_state = dataclasses.replace(
        state,
        smoothed=smoothed,
        previous=smoothed,
        blink=blink,
        last_known=frame,
        last_face_ts=now,
        total_frames=total_frames,
        frames_with_face=state.frames_with_face + 1,
        score_count=score_count,
        score_sum=score_sum,
        face_seconds=face_seconds,
        live_stillness=live,
        last_result=result,
    )
    return FrameStep(
        state=next_state,
        result=result,
        event=EVENT_SCORED,
        score=score,
        movement=adjusted,
    )


__all__ = [
    "EVENT_CALIBRATING",
    "EVENT_MALFORMED",
    "EVENT_HELD",
    "EVENT_FACE_LOST",
    "EVENT_SCORED",
    "EngineState",
    "FrameStep",
    "apply_calibration",
    "smooth_pose",
    "movement_magnitude",
    "adjusted_movement",
    "frame_stillness",
    "process_frame",
]
