"""Trace output sinks.

Sinks receive trace records and handle their output:
- LoggingSink: Formatted lines through the ``logging`` module
- MemorySink: In-memory buffer for testing/analysis
- NullSink: Discards everything
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, List, Optional, Type, TypeVar

from stillscore.observability.records import (
    CalibrationRecord,
    FaceLostRecord,
    FrameScoreRecord,
    SessionSummaryRecord,
    TraceRecord,
)

R = TypeVar("R", bound=TraceRecord)


class Sink(ABC):
    """Destination for trace records."""

    @abstractmethod
    def write(self, record: TraceRecord) -> None:
        ...

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


class NullSink(Sink):
    def write(self, record: TraceRecord) -> None:
        pass


class MemorySink(Sink):
    """Keeps records in memory, optionally bounded.

    Args:
        max_records: Keep only the most recent N records (default: unbounded).
    """

    def __init__(self, max_records: Optional[int] = None):
        self._records: Deque[TraceRecord] = deque(maxlen=max_records)

    def write(self, record: TraceRecord) -> None:
        self._records.append(record)

    def get_records(self) -> List[TraceRecord]:
        return list(self._records)

    def get_records_by_type(self, record_cls: Type[R]) -> List[R]:
        return [r for r in self._records if isinstance(r, record_cls)]

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class LoggingSink(Sink):
    """Formats records and writes them to a logger.

    Args:
        logger: Target logger (default: ``stillscore.trace``).
        level: Logging level for emitted lines (default: INFO).
    """

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self._logger = logger or logging.getLogger("stillscore.trace")
        self._level = level

    def write(self, record: TraceRecord) -> None:
        line = self._format_record(record)
        if line is not None:
            self._logger.log(self._level, "%s", line)

    def _format_record(self, record: TraceRecord) -> Optional[str]:
        if isinstance(record, CalibrationRecord):
            return self._format_calibration(record)
        elif isinstance(record, FaceLostRecord):
            return self._format_face_lost(record)
        elif isinstance(record, FrameScoreRecord):
            return self._format_frame_score(record)
        elif isinstance(record, SessionSummaryRecord):
            return self._format_session_summary(record)
        return None

    def _format_calibration(self, record: CalibrationRecord) -> str:
        b = record.baseline
        dz = record.dead_zone
        mode = "fallback" if record.used_fallback else "personal"
        return (
            f"[CAL] {mode} usable={record.usable_frames} "
            f"baseline=(y={b.get('yaw', 0.0):.2f} p={b.get('pitch', 0.0):.2f} "
            f"r={b.get('roll', 0.0):.2f}) "
            f"dead_zone=(y={dz.get('yaw', 0.0):.2f} p={dz.get('pitch', 0.0):.2f} "
            f"r={dz.get('roll', 0.0):.2f})"
        )

    def _format_face_lost(self, record: FaceLostRecord) -> str:
        gap = "never seen" if record.gap_ms < 0 else f"{record.gap_ms:.0f}ms"
        return (
            f"[FACE] Frame {record.frame_index}: lost ({gap}) "
            f"live={record.live_stillness:.0f}"
        )

    def _format_frame_score(self, record: FrameScoreRecord) -> str:
        return (
            f"[SCORE] Frame {record.frame_index}: {record.event} "
            f"move={record.movement:.3f} frame={record.frame_score * 100:.0f} "
            f"still={record.current_stillness:.0f} live={record.live_stillness:.0f} "
            f"blinks={record.blink_count}"
        )

    def _format_session_summary(self, record: SessionSummaryRecord) -> str:
        lines = []
        sep = "=" * 50
        lines.append(sep)
        lines.append("Session Summary")
        lines.append(sep)
        lines.append(f"  Duration:   {record.duration_minutes:.2f}min ({record.frames} frames, {record.zero_frames} zero)")
        lines.append(f"  Presence:   {record.face_presence_percent}%")
        lines.append(f"  Stillness:  {record.stillness_score:.1f}")
        lines.append(f"  Blink:      {record.blink_score:.1f}")
        lines.append(f"  Duration:   {record.duration_score:.1f}")
        lines.append(f"  Composite:  {record.composite_score:.1f} ({record.grade})")
        if record.percentiles:
            dist = " ".join(f"{k}={v:.3f}" for k, v in record.percentiles.items())
            lines.append(f"  Frame dist: {dist}")
        lines.append(sep)
        return "\n".join(lines)


__all__ = [
    "Sink",
    "NullSink",
    "MemorySink",
    "LoggingSink",
]
