"""Signal conditioning of the raw ambient light stream."""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import numpy as np

from circapy.core import config

logger = config.get_logger()


@dataclass
class ConditionerState:
    """Mutable state of a signal conditioner.

    Attributes:
        last_valid_lux: the last reading that passed validation, after clamping.
        smoothed_lux: the current output of the smoothing filter.
    """

    last_valid_lux: Optional[float] = None
    smoothed_lux: Optional[float] = None


class SignalConditioner:
    """Cleans an illuminance stream one reading at a time.

    Each reading goes through a validity check, a range clamp, a dead-band,
    outlier damping and first-order exponential smoothing. One instance belongs to
    exactly one recording session; call `reset` at the start of a session.

    Attributes:
        settings: The conditioner parameters.
        state: The filter state, owned by this instance.
    """

    def __init__(
        self,
        settings: Optional[config.ConditionerSettings] = None,
        state: Optional[ConditionerState] = None,
    ) -> None:
        """Initialize the conditioner.

        Args:
            settings: The conditioner parameters, defaults are used if None.
            state: Initial state, a fresh state is created if None.
        """
        self.settings = settings or config.ConditionerSettings()
        self.state = state or ConditionerState()

    def reset(self) -> None:
        """Discard the filter state."""
        logger.debug("Resetting signal conditioner state.")
        self.state = ConditionerState()

    def condition(self, lux: float) -> Optional[float]:
        """Condition a single illuminance reading.

        Args:
            lux: The raw reading.

        Returns:
            The cleaned illuminance, or None if the reading was rejected as
            non-finite. Rejected readings leave the state untouched.
        """
        if lux is None or not math.isfinite(lux):
            logger.warning("Skipping invalid illuminance reading: %s", lux)
            return None

        candidate = self._clamp(float(lux))
        self.state.last_valid_lux = candidate

        smoothed = self.state.smoothed_lux
        if smoothed is None:
            self.state.smoothed_lux = candidate
            return candidate

        difference = abs(candidate - smoothed)
        if difference < self.settings.dead_band_lux:
            candidate = smoothed
        elif difference / max(smoothed, 1.0) > self.settings.outlier_fraction:
            logger.debug("Damping outlier reading %.2f (smoothed %.2f)", lux, smoothed)
            blend = self.settings.outlier_blend
            candidate = blend * candidate + (1 - blend) * smoothed

        alpha = self.settings.smoothing_alpha
        self.state.smoothed_lux = alpha * candidate + (1 - alpha) * smoothed
        return self.state.smoothed_lux

    def condition_many(self, values: Iterable[float]) -> Tuple[np.ndarray, np.ndarray]:
        """Condition a sequence of readings in order.

        Args:
            values: The raw readings.

        Returns:
            A tuple of the cleaned values (NaN where a reading was rejected) and a
            boolean mask that is True for accepted readings.
        """
        cleaned = [self.condition(value) for value in values]
        mask = np.array([value is not None for value in cleaned], dtype=bool)
        result = np.array(
            [np.nan if value is None else value for value in cleaned], dtype=float
        )
        return result, mask

    def _clamp(self, lux: float) -> float:
        """Clamp a finite reading to the configured range."""
        if lux < self.settings.min_lux or lux > self.settings.max_lux:
            clamped = min(max(lux, self.settings.min_lux), self.settings.max_lux)
            logger.warning(
                "Illuminance reading %.2f out of range, clamped to %.2f", lux, clamped
            )
            return clamped
        return lux
