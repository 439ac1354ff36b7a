"""Tests for scoring configuration and overrides."""

import dataclasses

import pytest

from stillscore.config import (
    BlinkConfig,
    ConfigError,
    DEFAULT_GRADES,
    GradeEntry,
    ScoringConfig,
    resolve_config,
)


class TestDefaults:
    def test_composite_weights_sum_to_one(self):
        c = ScoringConfig().composite
        assert c.stillness_weight + c.blink_weight + c.duration_weight == pytest.approx(1.0)

    def test_default_values(self):
        cfg = ScoringConfig()
        assert cfg.calibration.min_frames == 30
        assert cfg.calibration.discard_first_ms == 500.0
        assert cfg.smoothing.face_lost_max_ms == 2000.0
        assert cfg.movement.roll_weight == 0.7
        assert cfg.movement.dead_zone_fraction == 0.15
        assert cfg.movement.movement_ceiling_degrees == 2.0
        assert cfg.blink.eye_closed_threshold == 0.3
        assert cfg.blink.eye_open_threshold == 0.5

    def test_grade_table_descending_with_catch_all(self):
        mins = [g.min_score for g in DEFAULT_GRADES]
        assert mins == sorted(mins, reverse=True)
        assert DEFAULT_GRADES[-1].grade == "F"
        assert DEFAULT_GRADES[-1].min_score == 0.0

    def test_sections_are_frozen(self):
        cfg = ScoringConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.blink.eye_closed_threshold = 0.1


class TestOverride:
    def test_partial_override_keeps_other_fields(self):
        cfg = ScoringConfig().override(blink={"eye_closed_threshold": 0.25})
        assert cfg.blink.eye_closed_threshold == 0.25
        assert cfg.blink.eye_open_threshold == 0.5
        assert cfg.movement == ScoringConfig().movement

    def test_override_does_not_mutate_original(self):
        base = ScoringConfig()
        base.override(duration={"log_multiplier": 40.0})
        assert base.duration.log_multiplier == 25.0

    def test_section_instance_replacement(self):
        cfg = ScoringConfig().override(blink=BlinkConfig(max_ceiling=20.0))
        assert cfg.blink.max_ceiling == 20.0

    def test_unknown_section_raises(self):
        with pytest.raises(ConfigError):
            ScoringConfig().override(bogus={"x": 1})

    def test_unknown_field_raises(self):
        with pytest.raises(TypeError):
            ScoringConfig().override(blink={"not_a_field": 1.0})

    def test_wrong_value_type_raises(self):
        with pytest.raises(ConfigError):
            ScoringConfig().override(blink=0.3)

    def test_grades_override(self):
        grades = [GradeEntry(50.0, "P", "PASS", "#000"), GradeEntry(0.0, "X", "FAIL", "#fff")]
        cfg = ScoringConfig().override(grades=grades)
        assert cfg.grades == tuple(grades)

    def test_empty_grades_rejected(self):
        with pytest.raises(ConfigError):
            ScoringConfig().override(grades=[])

    def test_empty_grades_rejected_at_construction(self):
        with pytest.raises(ConfigError):
            ScoringConfig(grades=())

    def test_grades_list_stored_as_tuple(self):
        cfg = ScoringConfig(grades=[GradeEntry(0.0, "X", "ANY", "#fff")])
        assert cfg.grades == (GradeEntry(0.0, "X", "ANY", "#fff"),)

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)


class TestResolveConfig:
    def test_defaults(self):
        assert resolve_config() == ScoringConfig()

    def test_overrides_applied_over_given_config(self):
        base = ScoringConfig().override(movement={"roll_weight": 0.5})
        cfg = resolve_config(base, {"movement": {"movement_ceiling_degrees": 3.0}})
        assert cfg.movement.roll_weight == 0.5
        assert cfg.movement.movement_ceiling_degrees == 3.0
