"""Estimate circadian phase shifts with a light phase response curve."""

import datetime
from dataclasses import dataclass
from typing import Literal, Optional, Sequence, Union

import numpy as np
import polars as pl

from circapy.core import computations, config, exceptions

logger = config.get_logger()

# Positive weights advance the clock, negative weights delay it.
PRC_WEIGHTS = {
    0: -1.0,
    1: -1.2,
    2: -1.5,
    3: -1.3,
    4: -0.8,
    5: -0.2,
    6: 0.3,
    7: 0.8,
    8: 1.0,
    9: 0.9,
    10: 0.5,
    11: 0.2,
    12: 0.0,
    13: 0.0,
    14: 0.0,
    15: 0.0,
    16: -0.1,
    17: -0.2,
    18: -0.3,
    19: -0.5,
    20: -0.7,
    21: -0.8,
    22: -0.9,
    23: -1.0,
}

NEGLIGIBLE_SHIFT_HOURS = 0.1

_PRC_WEIGHT_ARRAY = np.array([PRC_WEIGHTS[hour] for hour in range(24)])


def time_category(hour: int) -> Literal["morning", "evening", "midday", "night"]:
    """Time of day window of an hour.

    Morning is 04:00-10:00, evening 19:00-01:00 and midday 10:00-17:00. The
    remaining hours are night.
    """
    if 4 <= hour < 10:
        return "morning"
    if hour >= 19 or hour < 1:
        return "evening"
    if 10 <= hour < 17:
        return "midday"
    return "night"


def prc_weight(hour: int) -> float:
    """Phase response weight of an hour of day."""
    return PRC_WEIGHTS.get(hour % 24, 0.0)


def scaling_factor(
    hour: int, model_settings: Optional[config.ModelSettings] = None
) -> float:
    """Scaling factor applied to exposures in the window containing the hour.

    Args:
        hour: Hour of day.
        model_settings: The model constants, defaults are used if None.

    Returns:
        The morning or evening factor inside those windows, else the midday
        reduction factor.
    """
    model_settings = model_settings or config.ModelSettings()
    category = time_category(hour)
    if category == "morning":
        return model_settings.prc_morning_scale
    if category == "evening":
        return model_settings.prc_evening_scale
    return model_settings.prc_midday_scale


def phase_shift(
    timestamp: datetime.datetime,
    dose: float,
    model_settings: Optional[config.ModelSettings] = None,
) -> float:
    """Phase shift caused by a single exposure.

    shift = weight(hour) * scaling_factor(hour) * dose

    Args:
        timestamp: When the exposure occurred.
        dose: The dose of the exposure in CS hours.
        model_settings: The model constants, defaults are used if None.

    Returns:
        The phase shift in hours, positive for an advance. Non-positive doses
        cause no shift.
    """
    if dose <= 0:
        return 0.0
    hour = timestamp.hour
    return prc_weight(hour) * scaling_factor(hour, model_settings) * dose


def cumulative_phase_shift(
    times: Union[pl.Series, Sequence[datetime.datetime]],
    doses: Union[np.ndarray, Sequence[float]],
    model_settings: Optional[config.ModelSettings] = None,
) -> float:
    """Net phase shift of a sequence of exposures.

    Args:
        times: Timestamps of the exposures.
        doses: Dose increment of each exposure, in CS hours.
        model_settings: The model constants, defaults are used if None.

    Returns:
        The summed phase shift in hours.

    Raises:
        LengthMismatchError: If times and doses differ in length.
    """
    if len(times) != len(doses):
        raise exceptions.LengthMismatchError(
            f"times and doses must have the same length, got {len(times)} "
            f"and {len(doses)}."
        )
    if len(times) == 0:
        return 0.0

    model_settings = model_settings or config.ModelSettings()
    hours = computations.hour_of_day(pl.Series("time", times))
    dose_array = np.maximum(np.asarray(doses, dtype=float), 0.0)
    factors = np.array([scaling_factor(int(hour), model_settings) for hour in hours])

    return float(np.sum(_PRC_WEIGHT_ARRAY[hours] * factors * dose_array))


@dataclass(frozen=True)
class PhaseShiftInterpretation:
    """Readable classification of a phase shift.

    Attributes:
        direction: 'negligible', 'advance' or 'delay'.
        minutes: Absolute size of the shift in whole minutes.
        description: Sentence describing the shift.
    """

    direction: Literal["negligible", "advance", "delay"]
    minutes: int
    description: str


def interpret_phase_shift(shift_hours: float) -> PhaseShiftInterpretation:
    """Classify a phase shift as negligible, an advance or a delay.

    Args:
        shift_hours: The phase shift in hours.

    Returns:
        The interpretation. Shifts under 6 minutes are negligible.
    """
    minutes = int(round(abs(shift_hours) * 60))
    if abs(shift_hours) < NEGLIGIBLE_SHIFT_HOURS:
        return PhaseShiftInterpretation(
            direction="negligible",
            minutes=minutes,
            description="Minimal circadian effect (< 6 minutes)",
        )
    if shift_hours > 0:
        return PhaseShiftInterpretation(
            direction="advance",
            minutes=minutes,
            description=f"Phase advance of ~{minutes} minutes (earlier sleep/wake)",
        )
    return PhaseShiftInterpretation(
        direction="delay",
        minutes=minutes,
        description=f"Phase delay of ~{minutes} minutes (later sleep/wake)",
    )


@dataclass(frozen=True)
class ClockState:
    """Estimated internal clock offset in hours relative to local time."""

    phase_offset_hours: float = 0.0

    def apply_shift(self, shift_hours: float) -> "ClockState":
        """Return the clock state after a phase shift."""
        return ClockState(phase_offset_hours=self.phase_offset_hours + shift_hours)
