"""Blink state machine.

Two states, ``open`` and ``closed``. A blink is counted on the
closed -> open transition, so a closure of any length counts once.
Frames where either eye probability is unavailable leave the state as is.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from stillscore.config import BlinkConfig


class EyeState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class BlinkState:
    """Blink tracker state.

    Attributes:
        eye_state: Current eye state.
        closed_frames: Consecutive closed frames seen while open.
        count: Total completed blinks (never decreases).
    """

    eye_state: EyeState = EyeState.OPEN
    closed_frames: int = 0
    count: int = 0


def step_blink(
    state: BlinkState,
    left_eye: float,
    right_eye: float,
    config: Optional[BlinkConfig] = None,
) -> BlinkState:
    """Advance the blink state machine by one frame.

    Args:
        state: Current state.
        left_eye: Left eye open probability, negative if unavailable.
        right_eye: Right eye open probability, negative if unavailable.
        config: Thresholds (default: BlinkConfig()).

    Returns:
        The next state; ``state`` itself when nothing changes.
    """
    cfg = config or BlinkConfig()
    if left_eye < 0 or right_eye < 0:
        return state

    if state.eye_state is EyeState.OPEN:
        closed = left_eye < cfg.eye_closed_threshold and right_eye < cfg.eye_closed_threshold
        if not closed:
            if state.closed_frames == 0:
                return state
            return BlinkState(EyeState.OPEN, 0, state.count)
        closed_frames = state.closed_frames + 1
        if closed_frames >= cfg.min_closed_frames:
            return BlinkState(EyeState.CLOSED, closed_frames, state.count)
        return BlinkState(EyeState.OPEN, closed_frames, state.count)

    opened = left_eye > cfg.eye_open_threshold and right_eye > cfg.eye_open_threshold
    if opened:
        return BlinkState(EyeState.OPEN, 0, state.count + 1)
    return state


__all__ = ["EyeState", "BlinkState", "step_blink"]
