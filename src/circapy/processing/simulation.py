"""What-if simulations on top of processed sessions."""

from typing import Optional

import numpy as np
import pydantic

from circapy.core import computations, config, models
from circapy.io.writers import writers
from circapy.processing import dosimetry, phase_response

logger = config.get_logger()


class SimulationScenario(pydantic.BaseModel):
    """A change in light exposure to simulate.

    Attributes:
        name: Human readable label, e.g. 'Reduce evening light by 50%'.
        exposure_change_percent: Change applied to the exposure inside the window.
            Negative values reduce the exposure.
        window_start_hour: First hour of day of the window.
        window_end_hour: Hour of day the window ends at, exclusive. A window with
            an end before its start wraps over midnight.
        extra_block_minutes: Length of an additional light block, 0 for none.
        extra_block_start_hour: Hour of day of the additional block.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    name: str
    exposure_change_percent: float
    window_start_hour: int = pydantic.Field(ge=0, le=23)
    window_end_hour: int = pydantic.Field(ge=0, le=23)
    extra_block_minutes: int = pydantic.Field(default=0, ge=0)
    extra_block_start_hour: Optional[int] = pydantic.Field(default=None, ge=0, le=23)

    @property
    def has_extra_block(self) -> bool:
        """Whether the scenario adds a light block."""
        return self.extra_block_minutes > 0 and self.extra_block_start_hour is not None

    def in_window(self, hours: np.ndarray) -> np.ndarray:
        """Flag the hours of day inside the window."""
        if self.window_start_hour <= self.window_end_hour:
            return (hours >= self.window_start_hour) & (hours < self.window_end_hour)
        return (hours >= self.window_start_hour) | (hours < self.window_end_hour)


def simulate(
    base: writers.ProcessingResults,
    scenario: SimulationScenario,
    model_settings: Optional[config.ModelSettings] = None,
) -> writers.ProcessingResults:
    """Recompute the results of a session under a what-if scenario.

    Illuminance, melanopic illuminance and stimulus inside the scenario window
    are scaled by 1 + exposure_change_percent / 100 and floored at 0. An extra
    block adds stimulus * (extra_block_minutes / 60) / sample count to the dose of
    every sample in the block's start hour. Dose, suppression and phase shift
    are then recomputed.

    Args:
        base: The results of the processed session.
        scenario: The change to simulate.
        model_settings: The model constants, defaults are used if None.

    Returns:
        New results with the session id suffixed by '::sim' and the scenario
        recorded in the metadata.
    """
    model_settings = model_settings or config.ModelSettings()
    logger.debug("Simulating scenario '%s' on %s", scenario.name, base.session_id)

    time = base.time
    hours = computations.hour_of_day(time)
    factor = np.where(
        scenario.in_window(hours), 1.0 + scenario.exposure_change_percent / 100.0, 1.0
    )

    lux = np.maximum(np.atleast_1d(base.lux.measurements) * factor, 0.0)
    melanopic = np.maximum(np.atleast_1d(base.melanopic.measurements) * factor, 0.0)
    stimulus = np.maximum(np.atleast_1d(base.stimulus.measurements) * factor, 0.0)

    extra_dose = np.zeros_like(stimulus)
    if scenario.has_extra_block:
        per_sample = scenario.extra_block_minutes / 60.0 / len(stimulus)
        in_block = hours == scenario.extra_block_start_hour
        extra_dose[in_block] = per_sample * stimulus[in_block]

    stimulus_measurement = models.Measurement(measurements=stimulus, time=time)
    increments = dosimetry.incremental_dose(
        stimulus_measurement, computations.estimate_delta_t(time)
    )
    dose = models.Measurement(
        measurements=np.atleast_1d(increments.measurements) + extra_dose, time=time
    )
    total_dose = dosimetry.total_dose(dose)

    return base.model_copy(
        update={
            "session_id": f"{base.session_id}::sim",
            "lux": models.Measurement(measurements=lux, time=time),
            "melanopic": models.Measurement(measurements=melanopic, time=time),
            "stimulus": stimulus_measurement,
            "dose": dose,
            "total_dose": total_dose,
            "suppression": dosimetry.SuppressionModel.from_settings(
                model_settings
            ).calculate(total_dose),
            "phase_shift": phase_response.cumulative_phase_shift(
                time, dose.measurements, model_settings
            ),
            "mean_stimulus": float(np.mean(stimulus)),
            "peak_stimulus": float(np.max(stimulus)),
            "mean_melanopic": float(np.mean(melanopic)),
            "metadata": {
                **base.metadata,
                "simulation_name": scenario.name,
                "exposure_change_percent": scenario.exposure_change_percent,
                "window_start_hour": scenario.window_start_hour,
                "window_end_hour": scenario.window_end_hour,
                "extra_block_minutes": scenario.extra_block_minutes,
                "extra_block_start_hour": scenario.extra_block_start_hour,
            },
        }
    )
