"""Scoring engine facade.

Owns one session's :class:`EngineState`, its per-frame score history and the
calibration window, and drives the pure transitions in
:mod:`stillscore.stillness`. One engine serves one session at a time; call
:meth:`ScoringEngine.reset` to reuse it.

Example:
    >>> engine = ScoringEngine()
    >>> for frame in detector_frames:      # FaceFrameInput or None
    ...     result = engine.observe(frame)
    ...     show(result.live_stillness)
    >>> final = engine.get_session_results(duration_minutes=5.0,
    ...                                    committed_duration_seconds=300)
    >>> print(final.grade, final.composite_score)
"""

from __future__ import annotations

import dataclasses
import logging
import time
from typing import Any, Callable, List, Mapping, Optional, Sequence

import numpy as np

from stillscore.aggregate import SessionTotals, aggregate_session
from stillscore.calibration import CalibrationResult, CalibrationWindow, calibrate
from stillscore.config import ScoringConfig, resolve_config
from stillscore.observability import (
    CalibrationRecord,
    FaceLostRecord,
    FrameScoreRecord,
    ObservabilityHub,
    SessionSummaryRecord,
    TraceLevel,
)
from stillscore.stillness import (
    EVENT_FACE_LOST,
    EVENT_SCORED,
    EngineState,
    FrameStep,
    apply_calibration,
    process_frame,
)
from stillscore.types import CalibrationFrame, FaceFrameInput, FrameResult, SessionResults

logger = logging.getLogger(__name__)


def _wall_clock_ms() -> float:
    return time.time() * 1000.0


class ScoringEngine:
    """Real-time stillness/blink scoring for a single session.

    Args:
        config: Engine configuration (default: ScoringConfig()).
        overrides: Per-section overrides merged over ``config``,
            e.g. ``{"blink": {"eye_closed_threshold": 0.25}}``.
        hub: Optional observability hub receiving trace records.
        clock: Millisecond clock used to timestamp face-absent frames when
            the caller does not pass one (default: wall clock).
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        hub: Optional[ObservabilityHub] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._config = resolve_config(config, overrides)
        self._hub = hub
        self._clock = clock or _wall_clock_ms
        self._state = EngineState()
        self._scores: List[float] = []
        self._calibration: Optional[CalibrationResult] = None
        self._window = CalibrationWindow(self._config.calibration)

    # ------------------------------------------------------------------
    # Accessors

    @property
    def config(self) -> ScoringConfig:
        return self._config

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_calibrating(self) -> bool:
        return self._state.calibrating

    @property
    def blink_count(self) -> int:
        return self._state.blink_count

    @property
    def calibration(self) -> Optional[CalibrationResult]:
        return self._calibration

    @property
    def frame_scores(self) -> List[float]:
        return list(self._scores)

    def calibration_progress(self) -> float:
        """Progress of the automatic calibration window (0-100)."""
        if not self.is_calibrating:
            return 100.0
        return self._window.progress()

    # ------------------------------------------------------------------
    # Calibration

    def calibrate(self, frames: Sequence[CalibrationFrame]) -> CalibrationResult:
        """Calibrate from a buffered window and start scoring.

        Calibration happens once per session; later calls are ignored and
        return the existing result.
        """
        if self._calibration is not None:
            logger.warning("Engine already calibrated, ignoring %d frames", len(frames))
            return self._calibration

        result = calibrate(frames, self._config.calibration)
        self._calibration = result
        self._state = apply_calibration(self._state, result)
        self._window.clear()

        if self._tracing(TraceLevel.MINIMAL):
            self._hub.emit(CalibrationRecord(
                usable_frames=result.usable_frames,
                used_fallback=result.used_fallback,
                baseline=dataclasses.asdict(result.baseline),
                dead_zone=dataclasses.asdict(result.dead_zone),
            ))
        return result

    # ------------------------------------------------------------------
    # Per-frame

    def observe(self, frame: Optional[FaceFrameInput], timestamp: Optional[float] = None) -> FrameResult:
        """Feed a frame, calibrating automatically from the first window.

        While calibrating, valid face frames are buffered and a neutral
        result is returned. Once the calibration window has elapsed the
        engine calibrates and subsequent frames are scored.
        """
        if not self.is_calibrating:
            return self.process_frame(frame, timestamp)

        now = frame.timestamp if frame is not None else self._now(timestamp)
        if frame is not None and frame.has_valid_pose:
            done = self._window.add(frame.to_calibration_frame())
        else:
            done = self._window.tick(now)
        if done:
            self.calibrate(self._window.frames)
        return dataclasses.replace(self._state.last_result, blink_count=self.blink_count)

    def process_frame(self, frame: Optional[FaceFrameInput], timestamp: Optional[float] = None) -> FrameResult:
        """Score one frame. ``frame=None`` means no face was detected.

        Never raises for malformed input; the previous result is repeated.
        """
        now = None if frame is not None else self._now(timestamp)
        prev_face_ts = self._state.last_face_ts
        step = process_frame(self._state, frame, self._config, now)
        self._state = step.state
        if step.score is not None:
            self._scores.append(step.score)
        self._trace_frame(step, frame, now, prev_face_ts)
        return step.result

    def _now(self, timestamp: Optional[float]) -> float:
        return timestamp if timestamp is not None else self._clock()

    # ------------------------------------------------------------------
    # Session end

    def get_session_results(
        self,
        duration_minutes: float,
        committed_duration_seconds: Optional[float] = None,
    ) -> SessionResults:
        """Compute the final composite result for the session so far."""
        state = self._state
        totals = SessionTotals(
            total_frames=state.total_frames,
            frames_with_face=state.frames_with_face,
            total_blinks=state.blink_count,
            face_seconds=state.face_seconds,
        )
        results = aggregate_session(
            self._scores,
            totals,
            duration_minutes,
            committed_duration_seconds,
            self._config,
        )
        logger.info(
            "Session scored: %s %.1f (stillness=%.1f blink=%.1f duration=%.1f presence=%d%%)",
            results.grade, results.composite_score, results.stillness_score,
            results.blink_score, results.duration_score, results.face_presence_percent,
        )
        if self._tracing(TraceLevel.MINIMAL):
            self._hub.emit(self._summary_record(results, duration_minutes))
        return results

    def reset(self) -> None:
        """Clear all session state for reuse on a new session."""
        self._state = EngineState()
        self._scores = []
        self._calibration = None
        self._window.clear()

    # ------------------------------------------------------------------
    # Tracing

    def _tracing(self, level: TraceLevel) -> bool:
        return self._hub is not None and self._hub.enabled and self._hub.is_level_enabled(level)

    def _trace_frame(
        self,
        step: FrameStep,
        frame: Optional[FaceFrameInput],
        now: Optional[float],
        prev_face_ts: Optional[float],
    ) -> None:
        if self._hub is None or not self._hub.enabled:
            return
        timestamp = frame.timestamp if frame is not None else (now or 0.0)
        index = step.state.total_frames

        if step.event == EVENT_FACE_LOST and self._tracing(TraceLevel.NORMAL):
            gap = timestamp - prev_face_ts if prev_face_ts is not None else -1.0
            self._hub.emit(FaceLostRecord(
                frame_index=index,
                timestamp_ms=timestamp,
                gap_ms=gap,
                live_stillness=step.result.live_stillness,
            ))

        if self._tracing(TraceLevel.VERBOSE):
            self._hub.emit(FrameScoreRecord(
                frame_index=index,
                timestamp_ms=timestamp,
                event=step.event,
                movement=step.movement if step.event == EVENT_SCORED else 0.0,
                frame_score=step.result.frame_score,
                current_stillness=step.result.current_stillness,
                live_stillness=step.result.live_stillness,
                blink_count=step.result.blink_count,
            ))

    def _summary_record(self, results: SessionResults, duration_minutes: float) -> SessionSummaryRecord:
        percentiles = {}
        if self._scores:
            arr = np.asarray(self._scores, dtype=np.float64)
            for p in (10, 25, 50, 75, 90):
                percentiles[f"p{p}"] = float(np.percentile(arr, p))
        return SessionSummaryRecord(
            frames=len(self._scores),
            zero_frames=sum(1 for s in self._scores if s == 0.0),
            duration_minutes=duration_minutes,
            composite_score=results.composite_score,
            stillness_score=results.stillness_score,
            blink_score=results.blink_score,
            duration_score=results.duration_score,
            grade=results.grade,
            face_presence_percent=results.face_presence_percent,
            percentiles=percentiles,
        )


__all__ = ["ScoringEngine"]
