"""Session aggregation: trimmed-mean stillness, blink rate, duration curve,
weighted composite and grade lookup.

Invoked once at session end with the full per-frame score history.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from stillscore.config import (
    AggregationConfig,
    BlinkConfig,
    CompositeConfig,
    DurationConfig,
    GradeEntry,
    ScoringConfig,
)
from stillscore.types import SessionResults, round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionTotals:
    """Counters accumulated over a session, independent of the score history."""

    total_frames: int = 0
    frames_with_face: int = 0
    total_blinks: int = 0
    face_seconds: float = 0.0


def _clamp(low: float, high: float, value: float) -> float:
    return max(low, min(high, value))


def trimmed_mean(scores: Sequence[float], trim_fraction: float) -> float:
    """Mean after dropping the lowest ``floor(n * trim_fraction)`` values."""
    if len(scores) == 0:
        return 0.0
    ordered = np.sort(np.asarray(scores, dtype=np.float64))
    trim = int(math.floor(ordered.size * trim_fraction))
    kept = ordered[trim:]
    if kept.size == 0:
        return 0.0
    return float(kept.mean())


def face_presence_ratio(totals: SessionTotals) -> float:
    """Unrounded share of frames with a face, in percent."""
    if totals.total_frames <= 0:
        return 0.0
    return totals.frames_with_face / totals.total_frames * 100.0


def face_presence_percent(totals: SessionTotals) -> int:
    return round_half_up(face_presence_ratio(totals))


def stillness_score(
    scores: Sequence[float],
    presence_percent: float,
    config: Optional[AggregationConfig] = None,
) -> float:
    """Trimmed-mean stillness in [0, 100] with the well-tracked floor rule.

    ``presence_percent`` is the unrounded ratio from :func:`face_presence_ratio`.
    """
    cfg = config or AggregationConfig()
    score = trimmed_mean(scores, cfg.trim_fraction) * 100.0
    if score < cfg.stillness_floor and presence_percent > cfg.floor_min_presence_percent:
        score = cfg.stillness_floor
    return _clamp(0.0, 100.0, score)


def blink_score(blinks_per_minute: float, config: Optional[BlinkConfig] = None) -> float:
    """Inverse linear map of blink rate: fewer blinks, higher score."""
    cfg = config or BlinkConfig()
    span = cfg.max_ceiling - cfg.min_floor
    if span <= 0:
        return 100.0
    return _clamp(0.0, 100.0, 100.0 * (1.0 - (blinks_per_minute - cfg.min_floor) / span))


def completion_ratio(actual_seconds: float, committed_seconds: Optional[float]) -> float:
    """Fraction of the committed duration actually sat, capped at 1."""
    if committed_seconds is None or committed_seconds <= 0:
        return 1.0
    return min(1.0, actual_seconds / committed_seconds)


def duration_score(
    minutes: float,
    ratio: float = 1.0,
    config: Optional[DurationConfig] = None,
) -> float:
    """Log-curve duration score scaled by completion ratio, capped at max."""
    cfg = config or DurationConfig()
    raw = cfg.base_score + cfg.log_multiplier * math.log(minutes + 1.0)
    return min(cfg.max_score, raw * ratio)


def composite_score(
    stillness: float,
    blink: float,
    duration: float,
    config: Optional[CompositeConfig] = None,
) -> float:
    cfg = config or CompositeConfig()
    total = (
        stillness * cfg.stillness_weight
        + blink * cfg.blink_weight
        + duration * cfg.duration_weight
    )
    return _clamp(0.0, 100.0, total)


def lookup_grade(score: float, grades: Sequence[GradeEntry]) -> GradeEntry:
    """First entry whose minimum is met; the last entry is the catch-all."""
    for entry in grades:
        if score >= entry.min_score:
            return entry
    return grades[-1]


def aggregate_session(
    scores: Sequence[float],
    totals: SessionTotals,
    duration_minutes: float,
    committed_duration_seconds: Optional[float] = None,
    config: Optional[ScoringConfig] = None,
) -> SessionResults:
    """Compute the final session result.

    Args:
        scores: Per-frame normalized scores in [0, 1].
        totals: Frame, face, blink and presence-time counters.
        duration_minutes: Elapsed session length.
        committed_duration_seconds: Length the user committed to, if known.
        config: Engine configuration (default: ScoringConfig()).

    Returns:
        SessionResults with rounded sub-scores.
    """
    cfg = config or ScoringConfig()
    minutes = max(duration_minutes, cfg.aggregation.min_duration_minutes)
    actual_seconds = minutes * 60.0

    presence = face_presence_percent(totals)
    stillness = stillness_score(scores, face_presence_ratio(totals), cfg.aggregation)

    bpm = totals.total_blinks / minutes
    blink = blink_score(bpm, cfg.blink)

    ratio = completion_ratio(actual_seconds, committed_duration_seconds)
    duration = duration_score(minutes, ratio, cfg.duration)

    composite = composite_score(stillness, blink, duration, cfg.composite)
    entry = lookup_grade(composite, cfg.grades)

    logger.debug(
        "Session aggregate: frames=%d presence=%d%% ratio=%.2f "
        "stillness=%.1f blink=%.1f duration=%.1f",
        len(scores), presence, ratio, stillness, blink, duration,
    )

    return SessionResults(
        composite_score=round_half_up(composite, 1),
        stillness_score=round_half_up(stillness, 1),
        blink_score=round_half_up(blink, 1),
        duration_score=round_half_up(duration, 1),
        grade=entry.grade,
        label=entry.label,
        color=entry.color,
        blinks_per_minute=round_half_up(bpm, 1),
        stillness_percent=round_half_up(stillness),
        face_presence_percent=presence,
        verified_seconds=round_half_up(totals.face_seconds),
    )


__all__ = [
    "SessionTotals",
    "trimmed_mean",
    "face_presence_ratio",
    "face_presence_percent",
    "stillness_score",
    "blink_score",
    "completion_ratio",
    "duration_score",
    "composite_score",
    "lookup_grade",
    "aggregate_session",
]
