"""Observability for the scoring engine.

Replaces inline debug logging in the scoring path with typed trace records
delivered to pluggable sinks.

Trace Levels:
- OFF: No tracing (default)
- MINIMAL: Calibration outcome and session summary
- NORMAL: + face-loss events
- VERBOSE: + every scored frame

Example:
    >>> from stillscore.observability import ObservabilityHub, TraceLevel, MemorySink
    >>> sink = MemorySink()
    >>> hub = ObservabilityHub(level=TraceLevel.NORMAL, sinks=[sink])
    >>> engine = ScoringEngine(hub=hub)
"""

from stillscore.observability.records import (
    TraceLevel,
    TraceRecord,
    CalibrationRecord,
    FaceLostRecord,
    FrameScoreRecord,
    SessionSummaryRecord,
)
from stillscore.observability.sinks import (
    Sink,
    NullSink,
    MemorySink,
    LoggingSink,
)
from stillscore.observability.hub import ObservabilityHub

__all__ = [
    "TraceLevel",
    "TraceRecord",
    "CalibrationRecord",
    "FaceLostRecord",
    "FrameScoreRecord",
    "SessionSummaryRecord",
    "Sink",
    "NullSink",
    "MemorySink",
    "LoggingSink",
    "ObservabilityHub",
]
