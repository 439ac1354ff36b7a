"""stillscore - real-time stillness and focus scoring from head pose and eye openness.

Quick Start:
    >>> from stillscore import ScoringEngine, FaceFrameInput
    >>> engine = ScoringEngine()
    >>> result = engine.observe(FaceFrameInput(yaw=1.0, pitch=-2.0, roll=0.5,
    ...                                        left_eye_open_probability=0.9,
    ...                                        right_eye_open_probability=0.9,
    ...                                        timestamp=0.0))
    >>> final = engine.get_session_results(duration_minutes=5.0)
    >>> print(final.grade, final.composite_score)

With overrides:
    >>> engine = ScoringEngine(overrides={"composite": {"stillness_weight": 0.6,
    ...                                                 "blink_weight": 0.2}})
"""

from stillscore.config import ConfigError, GradeEntry, ScoringConfig
from stillscore.types import (
    EYE_UNAVAILABLE,
    Baseline,
    CalibrationFrame,
    DeadZone,
    FaceFrameInput,
    FrameResult,
    SessionResults,
)
from stillscore.calibration import CalibrationResult, CalibrationWindow, calibrate
from stillscore.engine import ScoringEngine

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "ScoringConfig",
    "GradeEntry",
    "ConfigError",
    # Data types
    "EYE_UNAVAILABLE",
    "CalibrationFrame",
    "FaceFrameInput",
    "Baseline",
    "DeadZone",
    "FrameResult",
    "SessionResults",
    # Calibration
    "CalibrationResult",
    "CalibrationWindow",
    "calibrate",
    # Engine
    "ScoringEngine",
]
