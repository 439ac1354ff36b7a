"""Observability hub: level gating and fan-out to sinks.

One hub is passed to each engine that should be traced; there is no global
instance. A hub at ``TraceLevel.OFF`` costs one attribute check per frame.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from stillscore.observability.records import TraceLevel, TraceRecord
from stillscore.observability.sinks import Sink

logger = logging.getLogger(__name__)


class ObservabilityHub:
    """Routes trace records to sinks.

    Args:
        level: Initial trace level (default: OFF).
        sinks: Initial sinks.

    Example:
        >>> sink = MemorySink()
        >>> hub = ObservabilityHub(level=TraceLevel.NORMAL, sinks=[sink])
        >>> engine = ScoringEngine(hub=hub)
    """

    def __init__(
        self,
        level: TraceLevel = TraceLevel.OFF,
        sinks: Optional[Iterable[Sink]] = None,
    ):
        self._level = TraceLevel(level)
        self._sinks: List[Sink] = list(sinks or [])

    @property
    def level(self) -> TraceLevel:
        return self._level

    @property
    def enabled(self) -> bool:
        return self._level > TraceLevel.OFF and bool(self._sinks)

    def configure(self, level: TraceLevel) -> None:
        self._level = TraceLevel(level)

    def is_level_enabled(self, level: TraceLevel) -> bool:
        return self._level >= level

    def add_sink(self, sink: Sink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def remove_sink(self, sink: Sink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def emit(self, record: TraceRecord) -> None:
        """Send a record to all sinks if its level is enabled.

        Sink errors are logged and never propagate into the scoring path.
        """
        if not self.enabled or not self.is_level_enabled(record.min_level):
            return
        for sink in self._sinks:
            try:
                sink.write(record)
            except Exception:
                logger.exception("Trace sink %s failed on %s", type(sink).__name__, record.record_type)

    def flush(self) -> None:
        for sink in self._sinks:
            sink.flush()

    def shutdown(self) -> None:
        for sink in self._sinks:
            sink.flush()
            sink.close()
        self._sinks.clear()
        self._level = TraceLevel.OFF


__all__ = ["ObservabilityHub"]
