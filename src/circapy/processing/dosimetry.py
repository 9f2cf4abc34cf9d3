"""Accumulate circadian stimulus into a dose and predict melatonin suppression."""

import math
from typing import Dict, Union

import numpy as np

from circapy.core import config, models

logger = config.get_logger()


def incremental_dose(
    stimulus: models.Measurement, delta_t_hours: float
) -> models.Measurement:
    """Dose contributed by each sample, stimulus times the bin width.

    Args:
        stimulus: The circadian stimulus timeline.
        delta_t_hours: The bin width in hours.

    Returns:
        A Measurement with the dose increments in CS hours.

    Raises:
        ValueError: If delta_t_hours is negative.
    """
    if delta_t_hours < 0:
        raise ValueError("delta_t_hours must not be negative.")
    return models.Measurement(
        measurements=np.atleast_1d(stimulus.measurements) * delta_t_hours,
        time=stimulus.time,
    )


def total_dose(dose_increments: models.Measurement) -> float:
    """Sum of the dose increments, in CS hours."""
    return float(np.sum(dose_increments.measurements))


class SuppressionModel:
    """Exponential dose response of melatonin suppression.

    MSI = 1 - exp(-k * dose), limited to [0, 1].
    """

    def __init__(self, k: float = 0.25) -> None:
        """Initialize the model.

        Args:
            k: Suppression sensitivity per CS hour.
        """
        self.k = k

    @classmethod
    def from_settings(cls, model_settings: config.ModelSettings) -> "SuppressionModel":
        """Build the model from the configured constants."""
        return cls(k=model_settings.suppression_k)

    def calculate(self, dose: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """Predicted suppression fraction for the given dose(s).

        Args:
            dose: Dose in CS hours.

        Returns:
            The suppression fraction, 0 for non-positive dose.
        """
        return _suppression(self.k, dose)

    def calculate_with_uncertainty(
        self, dose: float, k_uncertainty: float
    ) -> Dict[str, float]:
        """Suppression with bounds obtained by substituting k -/+ uncertainty.

        Args:
            dose: Dose in CS hours.
            k_uncertainty: Absolute uncertainty of k.

        Returns:
            Dictionary with the keys 'msi', 'lower_ci' and 'upper_ci'.
        """
        return {
            "msi": float(self.calculate(dose)),
            "lower_ci": float(_suppression(self.k - k_uncertainty, dose)),
            "upper_ci": float(_suppression(self.k + k_uncertainty, dose)),
        }

    @staticmethod
    def fit_k(dose: float, msi_observed: float, default: float = 0.25) -> float:
        """Fit the sensitivity k from one observation.

        k = -ln(1 - MSI_obs) / dose

        Args:
            dose: The observed dose in CS hours.
            msi_observed: The observed suppression fraction.
            default: Value returned for degenerate observations.

        Returns:
            The fitted k, or the default when the dose is not positive or the
            observed suppression is complete.
        """
        if dose <= 0 or msi_observed >= 1.0:
            logger.debug("Degenerate suppression observation, using default k.")
            return default
        return -math.log(1 - msi_observed) / dose


def _suppression(k: float, dose: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Clamped exponential suppression curve."""
    dose_array = np.maximum(np.asarray(dose, dtype=float), 0.0)
    msi = np.clip(1 - np.exp(-k * dose_array), 0.0, 1.0)
    if np.ndim(msi) == 0:
        return float(msi)
    return msi
