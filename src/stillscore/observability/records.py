"""Trace record data classes for scoring observability.

Record Categories:
- Calibration records: baseline/dead-zone outcome
- Frame records: per-frame scoring detail and face loss
- Session records: final composite summary
"""

from dataclasses import dataclass, field, asdict
from enum import IntEnum
from typing import Any, Dict
import time


class TraceLevel(IntEnum):
    """Trace verbosity. A record is emitted when hub level >= its min_level."""

    OFF = 0
    MINIMAL = 1
    NORMAL = 2
    VERBOSE = 3


@dataclass
class TraceRecord:
    """Base trace record."""

    record_type: str = field(default="trace", init=False)
    min_level: TraceLevel = field(default=TraceLevel.NORMAL, repr=False)
    wall_time_ns: int = field(default_factory=time.time_ns, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (min_level excluded)."""
        data = asdict(self)
        data.pop("min_level", None)
        return data


@dataclass
class CalibrationRecord(TraceRecord):
    """Emitted once when calibration completes."""

    record_type: str = field(default="calibration", init=False)
    min_level: TraceLevel = field(default=TraceLevel.MINIMAL, repr=False)

    usable_frames: int = 0
    used_fallback: bool = False
    baseline: Dict[str, float] = field(default_factory=dict)
    dead_zone: Dict[str, float] = field(default_factory=dict)


@dataclass
class FaceLostRecord(TraceRecord):
    """Emitted when a face-absent frame is scored as zero."""

    record_type: str = field(default="face_lost", init=False)

    frame_index: int = 0
    timestamp_ms: float = 0.0
    gap_ms: float = 0.0  # time since face last seen, -1 if never seen
    live_stillness: float = 0.0


@dataclass
class FrameScoreRecord(TraceRecord):
    """Per-frame scoring detail for VERBOSE level."""

    record_type: str = field(default="frame_score", init=False)
    min_level: TraceLevel = field(default=TraceLevel.VERBOSE, repr=False)

    frame_index: int = 0
    timestamp_ms: float = 0.0
    event: str = ""
    movement: float = 0.0
    frame_score: float = 0.0
    current_stillness: float = 0.0
    live_stillness: float = 0.0
    blink_count: int = 0


@dataclass
class SessionSummaryRecord(TraceRecord):
    """Final session result with score distribution."""

    record_type: str = field(default="session_summary", init=False)
    min_level: TraceLevel = field(default=TraceLevel.MINIMAL, repr=False)

    frames: int = 0
    zero_frames: int = 0
    duration_minutes: float = 0.0
    composite_score: float = 0.0
    stillness_score: float = 0.0
    blink_score: float = 0.0
    duration_score: float = 0.0
    grade: str = ""
    face_presence_percent: int = 0
    percentiles: Dict[str, float] = field(default_factory=dict)


__all__ = [
    "TraceLevel",
    "TraceRecord",
    "CalibrationRecord",
    "FaceLostRecord",
    "FrameScoreRecord",
    "SessionSummaryRecord",
]
