"""Tests for the observability system."""

import logging

import pytest

from stillscore import ScoringEngine
from stillscore.observability import (
    CalibrationRecord,
    FaceLostRecord,
    FrameScoreRecord,
    LoggingSink,
    MemorySink,
    NullSink,
    ObservabilityHub,
    SessionSummaryRecord,
    Sink,
    TraceLevel,
    TraceRecord,
)

from helpers import FPS6_MS, make_calibration_frames, make_frame


class _FailingSink(Sink):
    def write(self, record):
        raise RuntimeError("sink broken")


class _CountingSink(MemorySink):
    def __init__(self):
        super().__init__()
        self.flushes = 0
        self.closed = False

    def flush(self):
        self.flushes += 1

    def close(self):
        self.closed = True


def _traced_engine(level):
    sink = MemorySink()
    hub = ObservabilityHub(level=level, sinks=[sink])
    return ScoringEngine(hub=hub, clock=lambda: 0.0), sink


def _run_session(engine):
    engine.calibrate(make_calibration_frames())
    for i in range(12):
        engine.process_frame(make_frame(3000.0 + i * FPS6_MS, yaw=float(i % 3)))
    engine.process_frame(None, timestamp=9000.0)
    return engine.get_session_results(0.1)


class TestTraceLevel:

    def test_level_ordering(self):
        assert TraceLevel.OFF < TraceLevel.MINIMAL
        assert TraceLevel.MINIMAL < TraceLevel.NORMAL
        assert TraceLevel.NORMAL < TraceLevel.VERBOSE

    def test_record_min_levels(self):
        assert CalibrationRecord().min_level == TraceLevel.MINIMAL
        assert SessionSummaryRecord().min_level == TraceLevel.MINIMAL
        assert FaceLostRecord().min_level == TraceLevel.NORMAL
        assert FrameScoreRecord().min_level == TraceLevel.VERBOSE


class TestRecords:

    def test_record_type_fixed(self):
        assert CalibrationRecord().record_type == "calibration"
        assert FaceLostRecord().record_type == "face_lost"
        assert FrameScoreRecord().record_type == "frame_score"
        assert SessionSummaryRecord().record_type == "session_summary"

    def test_to_dict_drops_min_level(self):
        d = FaceLostRecord(frame_index=4, gap_ms=2500.0).to_dict()
        assert d["record_type"] == "face_lost"
        assert d["frame_index"] == 4
        assert "min_level" not in d
        assert "wall_time_ns" in d


class TestObservabilityHub:

    def test_default_state_disabled(self):
        hub = ObservabilityHub()
        assert hub.level == TraceLevel.OFF
        assert not hub.enabled

    def test_no_sinks_is_disabled(self):
        hub = ObservabilityHub(level=TraceLevel.VERBOSE)
        assert not hub.enabled

    def test_configure(self):
        sink = MemorySink()
        hub = ObservabilityHub(sinks=[sink])
        hub.configure(TraceLevel.NORMAL)
        assert hub.enabled
        assert hub.is_level_enabled(TraceLevel.MINIMAL)
        assert hub.is_level_enabled(TraceLevel.NORMAL)
        assert not hub.is_level_enabled(TraceLevel.VERBOSE)

    def test_emit_respects_record_level(self):
        sink = MemorySink()
        hub = ObservabilityHub(level=TraceLevel.NORMAL, sinks=[sink])
        hub.emit(FaceLostRecord())
        hub.emit(FrameScoreRecord())
        assert len(sink) == 1

    def test_add_remove_sink(self):
        sink = MemorySink()
        hub = ObservabilityHub(level=TraceLevel.MINIMAL)
        hub.add_sink(sink)
        hub.add_sink(sink)

        hub.emit(CalibrationRecord())
        assert len(sink) == 1

        hub.remove_sink(sink)
        hub.emit(CalibrationRecord())
        assert len(sink) == 1

    def test_failing_sink_does_not_propagate(self, caplog):
        good = MemorySink()
        hub = ObservabilityHub(level=TraceLevel.MINIMAL, sinks=[_FailingSink(), good])
        with caplog.at_level(logging.ERROR, logger="stillscore.observability.hub"):
            hub.emit(CalibrationRecord())
        assert len(good) == 1
        assert "_FailingSink" in caplog.text

    def test_flush_reaches_every_sink(self):
        sinks = [_CountingSink(), _CountingSink()]
        hub = ObservabilityHub(level=TraceLevel.MINIMAL, sinks=sinks)
        hub.flush()
        assert [s.flushes for s in sinks] == [1, 1]
        assert [s.closed for s in sinks] == [False, False]

    def test_shutdown_flushes_and_closes(self):
        sink = _CountingSink()
        hub = ObservabilityHub(level=TraceLevel.MINIMAL, sinks=[sink])
        hub.shutdown()
        assert sink.flushes == 1
        assert sink.closed

    def test_shutdown(self):
        sink = MemorySink()
        hub = ObservabilityHub(level=TraceLevel.MINIMAL, sinks=[sink])
        hub.shutdown()
        assert not hub.enabled
        assert hub.level == TraceLevel.OFF


class TestSinks:

    def test_null_sink(self):
        NullSink().write(CalibrationRecord())

    def test_memory_sink_bounded(self):
        sink = MemorySink(max_records=3)
        for i in range(5):
            sink.write(FaceLostRecord(frame_index=i))
        assert [r.frame_index for r in sink.get_records()] == [2, 3, 4]

    def test_memory_sink_by_type(self):
        sink = MemorySink()
        sink.write(CalibrationRecord())
        sink.write(FaceLostRecord())
        sink.write(FaceLostRecord())
        assert len(sink.get_records_by_type(FaceLostRecord)) == 2
        assert len(sink.get_records_by_type(TraceRecord)) == 3
        sink.clear()
        assert len(sink) == 0

    def test_logging_sink_formats(self, caplog):
        sink = LoggingSink()
        with caplog.at_level(logging.INFO, logger="stillscore.trace"):
            sink.write(CalibrationRecord(
                usable_frames=40,
                baseline={"yaw": 1.0, "pitch": 2.0, "roll": 3.0},
                dead_zone={"yaw": 0.3, "pitch": 0.3, "roll": 0.3},
            ))
            sink.write(FaceLostRecord(frame_index=7, gap_ms=-1.0))
            sink.write(FrameScoreRecord(frame_index=8, event="scored", frame_score=0.5))
            sink.write(SessionSummaryRecord(grade="B", percentiles={"p50": 0.9}))
        text = caplog.text
        assert "[CAL] personal usable=40" in text
        assert "[FACE] Frame 7: lost (never seen)" in text
        assert "[SCORE] Frame 8: scored" in text
        assert "Session Summary" in text
        assert "p50=0.900" in text

    def test_logging_sink_ignores_unknown_records(self, caplog):
        with caplog.at_level(logging.INFO, logger="stillscore.trace"):
            LoggingSink().write(TraceRecord())
        assert caplog.text == ""


class TestEngineTracing:

    def test_off_emits_nothing(self):
        engine, sink = _traced_engine(TraceLevel.OFF)
        _run_session(engine)
        assert len(sink) == 0

    def test_minimal(self):
        engine, sink = _traced_engine(TraceLevel.MINIMAL)
        results = _run_session(engine)

        cals = sink.get_records_by_type(CalibrationRecord)
        assert len(cals) == 1
        assert not cals[0].used_fallback
        assert cals[0].usable_frames == 40
        assert cals[0].dead_zone["yaw"] == 0.3

        summaries = sink.get_records_by_type(SessionSummaryRecord)
        assert len(summaries) == 1
        assert summaries[0].grade == results.grade
        assert summaries[0].frames == 13
        assert summaries[0].zero_frames == 1
        assert set(summaries[0].percentiles) == {"p10", "p25", "p50", "p75", "p90"}

        assert sink.get_records_by_type(FaceLostRecord) == []
        assert sink.get_records_by_type(FrameScoreRecord) == []

    def test_normal_adds_face_loss(self):
        engine, sink = _traced_engine(TraceLevel.NORMAL)
        _run_session(engine)
        lost = sink.get_records_by_type(FaceLostRecord)
        assert len(lost) == 1
        assert lost[0].frame_index == 13
        assert lost[0].timestamp_ms == 9000.0
        assert lost[0].gap_ms == pytest.approx(9000.0 - (3000.0 + 11 * FPS6_MS))
        assert sink.get_records_by_type(FrameScoreRecord) == []

    def test_face_lost_before_any_face(self):
        engine, sink = _traced_engine(TraceLevel.NORMAL)
        engine.calibrate(make_calibration_frames())
        engine.process_frame(None, timestamp=3000.0)
        lost = sink.get_records_by_type(FaceLostRecord)
        assert lost[0].gap_ms == -1.0

    def test_verbose_traces_every_frame(self):
        engine, sink = _traced_engine(TraceLevel.VERBOSE)
        _run_session(engine)
        frames = sink.get_records_by_type(FrameScoreRecord)
        assert len(frames) == 13
        assert [f.frame_index for f in frames] == list(range(1, 14))
        assert frames[0].event == "scored"
        assert frames[-1].event == "face_lost"

    def test_tracing_does_not_change_scores(self):
        plain = ScoringEngine(clock=lambda: 0.0)
        traced, _ = _traced_engine(TraceLevel.VERBOSE)
        assert _run_session(plain) == _run_session(traced)
