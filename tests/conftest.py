"""Shared fixtures for stillscore tests.

All frames are synthetic; no detector involved.
"""

import pytest

from stillscore import ScoringEngine
from helpers import make_calibration_frames


@pytest.fixture
def engine():
    return ScoringEngine(clock=lambda: 0.0)


@pytest.fixture
def calibrated_engine():
    """Engine calibrated on a motionless zero pose (dead zones at the 0.3 floor)."""
    e = ScoringEngine(clock=lambda: 0.0)
    e.calibrate(make_calibration_frames())
    return e
