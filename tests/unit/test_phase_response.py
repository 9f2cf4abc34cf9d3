"""Test the phase response integration."""

import datetime

import numpy as np
import pytest

from circapy.core import config, exceptions
from circapy.processing import phase_response


def _at(hour: int, minute: int = 0) -> datetime.datetime:
    return datetime.datetime(2024, 5, 2, hour, minute)


def test_prc_shape() -> None:
    """Test the landmarks of the weight table."""
    weights = [phase_response.prc_weight(hour) for hour in range(24)]

    assert len(phase_response.PRC_WEIGHTS) == 24
    assert min(weights) == phase_response.prc_weight(2)
    assert max(weights) == phase_response.prc_weight(8)
    assert phase_response.prc_weight(6) > 0 > phase_response.prc_weight(5)
    assert phase_response.prc_weight(12) == 0.0
    assert phase_response.prc_weight(26) == phase_response.prc_weight(2)


@pytest.mark.parametrize(
    "hour, category, factor",
    [
        (4, "morning", 1.0),
        (9, "morning", 1.0),
        (10, "midday", 0.5),
        (17, "night", 0.5),
        (19, "evening", 0.9),
        (0, "evening", 0.9),
        (1, "night", 0.5),
    ],
)
def test_time_category_and_scaling(hour: int, category: str, factor: float) -> None:
    """Test the time windows and their scaling factors."""
    assert phase_response.time_category(hour) == category
    assert phase_response.scaling_factor(hour) == factor


def test_scaling_factor_custom_settings() -> None:
    """Test configured scaling factors."""
    settings = config.ModelSettings(prc_morning_scale=2.0, prc_evening_scale=0.5)

    assert phase_response.scaling_factor(8, settings) == 2.0
    assert phase_response.scaling_factor(21, settings) == 0.5


@pytest.mark.parametrize(
    "timestamp, dose, expected",
    [
        (_at(8), 0.5, 0.5),
        (_at(22, 30), 1.0, -0.81),
        (_at(14), 1.0, 0.0),
        (_at(2), 1.0, -0.75),
        (_at(8), 0.0, 0.0),
        (_at(8), -1.0, 0.0),
    ],
)
def test_phase_shift(
    timestamp: datetime.datetime, dose: float, expected: float
) -> None:
    """Test the shift of single exposures."""
    assert phase_response.phase_shift(timestamp, dose) == pytest.approx(expected)


def test_cumulative_phase_shift() -> None:
    """Test that the cumulative shift is the sum of single shifts."""
    times = [_at(7), _at(8), _at(21), _at(3)]
    doses = [0.1, 0.2, 0.3, 0.4]

    expected = sum(
        phase_response.phase_shift(time, dose) for time, dose in zip(times, doses)
    )

    assert phase_response.cumulative_phase_shift(times, doses) == pytest.approx(
        expected
    )


def test_cumulative_phase_shift_numpy_doses() -> None:
    """Test numpy doses with negative values ignored."""
    result = phase_response.cumulative_phase_shift(
        [_at(8), _at(8)], np.array([0.5, -0.5])
    )

    assert result == pytest.approx(0.5)


def test_cumulative_phase_shift_empty() -> None:
    """Test that no exposures cause no shift."""
    assert phase_response.cumulative_phase_shift([], []) == 0.0


def test_cumulative_phase_shift_length_mismatch() -> None:
    """Test the error when times and doses differ in length."""
    with pytest.raises(exceptions.LengthMismatchError, match="same length"):
        phase_response.cumulative_phase_shift([_at(8), _at(9)], [0.1])


@pytest.mark.parametrize(
    "shift, direction, minutes",
    [
        (0.05, "negligible", 3),
        (-0.09, "negligible", 5),
        (0.5, "advance", 30),
        (-0.25, "delay", 15),
    ],
)
def test_interpret_phase_shift(shift: float, direction: str, minutes: int) -> None:
    """Test the classification of shifts."""
    interpretation = phase_response.interpret_phase_shift(shift)

    assert interpretation.direction == direction
    assert interpretation.minutes == minutes


def test_interpret_phase_shift_description() -> None:
    """Test the readable description of an advance."""
    interpretation = phase_response.interpret_phase_shift(0.5)

    assert interpretation.description == (
        "Phase advance of ~30 minutes (earlier sleep/wake)"
    )


def test_clock_state() -> None:
    """Test applying shifts to the clock state."""
    state = phase_response.ClockState().apply_shift(0.5).apply_shift(-0.2)

    assert state.phase_offset_hours == pytest.approx(0.3)
