"""Calculate light at the eye, melanopic illuminance and circadian stimulus."""

import math
from typing import Optional, Union

import numpy as np

from circapy.core import computations, config, models

logger = config.get_logger()

NORMAL_VIEWING_PITCH = math.pi / 2


def melanopic_ratio(
    light_type: Optional[models.LightType],
    model_settings: Optional[config.ModelSettings] = None,
) -> float:
    """Look up the melanopic ratio of a light type.

    Args:
        light_type: The active light type. None selects the default ratio.
        model_settings: The model constants, defaults are used if None.

    Returns:
        The melanopic ratio. The default ratio applies when the light type is None
        or missing from the ratio table.
    """
    model_settings = model_settings or config.ModelSettings()
    if light_type is None:
        return model_settings.default_melanopic_ratio
    ratio = model_settings.melanopic_ratios.get(models.LightType(light_type).value)
    if ratio is None:
        logger.warning(
            "No melanopic ratio configured for %s, using default %.2f",
            light_type,
            model_settings.default_melanopic_ratio,
        )
        return model_settings.default_melanopic_ratio
    return ratio


def estimate_screen_lux(
    brightness: Union[float, np.ndarray],
    screen_settings: Optional[config.ScreenSettings] = None,
    viewing_distance_cm: Optional[float] = None,
    pitch: Union[None, float, np.ndarray] = None,
) -> Union[float, np.ndarray]:
    """Estimate the screen illuminance at the eye.

    The base illuminance is interpolated from the brightness anchor table, then
    corrected with the inverse square law for the viewing distance and Lambert's
    cosine law for the viewing angle. The viewing angle is the deviation of the
    device pitch from upright (pi/2), limited to [0, pi/2].

    Args:
        brightness: Screen brightness fraction(s) in [0, 1].
        screen_settings: The screen photometry, defaults are used if None.
        viewing_distance_cm: Eye to screen distance. Uses the configured viewing
            distance if None.
        pitch: Device pitch in radians. None or NaN means perpendicular viewing.

    Returns:
        The illuminance at the eye in lux, a float for scalar input.
    """
    screen_settings = screen_settings or config.ScreenSettings()
    distance = viewing_distance_cm or screen_settings.viewing_distance_cm

    base_lux = np.maximum(
        computations.interpolate_table(screen_settings.brightness_to_lux, brightness),
        0.0,
    )
    distance_factor = (screen_settings.reference_distance_cm / distance) ** 2

    if pitch is None:
        angle_factor = np.ones_like(base_lux, dtype=float)
    else:
        pitch_array = np.asarray(pitch, dtype=float)
        viewing_angle = np.clip(
            np.abs(pitch_array - NORMAL_VIEWING_PITCH), 0, np.pi / 2
        )
        angle_factor = np.clip(np.cos(viewing_angle), 0.0, 1.0)
        angle_factor = np.where(np.isnan(pitch_array), 1.0, angle_factor)

    lux_at_eye = base_lux * distance_factor * angle_factor
    if np.ndim(lux_at_eye) == 0:
        return float(lux_at_eye)
    return lux_at_eye


def light_at_eye(
    ambient_lux: models.Measurement,
    screen_on: np.ndarray,
    screen_brightness: np.ndarray,
    pitch: np.ndarray,
    screen_settings: Optional[config.ScreenSettings] = None,
) -> models.Measurement:
    """Combine ambient illuminance with the estimated screen contribution.

    Args:
        ambient_lux: The conditioned ambient illuminance.
        screen_on: Boolean screen state per sample.
        screen_brightness: Brightness fraction per sample, NaN when unknown.
        pitch: Device pitch per sample in radians, NaN when unknown.
        screen_settings: The screen photometry, defaults are used if None.

    Returns:
        A Measurement with the total illuminance at the eye.
    """
    brightness = np.asarray(screen_brightness, dtype=float)
    has_screen = np.logical_and(
        np.asarray(screen_on, dtype=bool), ~np.isnan(brightness)
    )

    screen_lux = np.zeros_like(brightness)
    if has_screen.any():
        screen_lux[has_screen] = estimate_screen_lux(
            brightness[has_screen],
            screen_settings=screen_settings,
            pitch=np.asarray(pitch, dtype=float)[has_screen],
        )

    return models.Measurement(
        measurements=np.atleast_1d(ambient_lux.measurements) + screen_lux,
        time=ambient_lux.time,
    )


def attenuate_sleep(
    lux: models.Measurement,
    sleep_status: models.Measurement,
    attenuation: float = 0.1,
) -> models.Measurement:
    """Scale the illuminance of samples inside rest episodes.

    Args:
        lux: The illuminance at the eye.
        sleep_status: Boolean measurement flagging samples inside rest episodes.
        attenuation: Fraction of the illuminance kept during rest.

    Returns:
        A Measurement with the effective illuminance.
    """
    effective = np.where(
        np.atleast_1d(sleep_status.measurements).astype(bool),
        np.atleast_1d(lux.measurements) * attenuation,
        np.atleast_1d(lux.measurements),
    )
    return models.Measurement(measurements=effective, time=lux.time)


def melanopic_illuminance(
    lux: models.Measurement, ratio: float
) -> models.Measurement:
    """Weight illuminance by the melanopic ratio of the light source.

    Args:
        lux: The effective illuminance at the eye.
        ratio: The melanopic ratio of the active light type.

    Returns:
        A Measurement with the melanopic equivalent daylight illuminance.
    """
    return models.Measurement(
        measurements=np.atleast_1d(lux.measurements) * ratio, time=lux.time
    )


class CircadianStimulusModel:
    """Saturating exponential model of circadian stimulus.

    CS = CS_max * (1 - exp(-a * melanopic_illuminance)), limited to [0, CS_max].

    References:
        Rea, M. S., et al. Light as a circadian stimulus for architectural
            lighting. Lighting Research & Technology, 50(4), 497-510 (2018).
    """

    def __init__(
        self, steepness: float = 0.005, stimulus_max: float = 0.7
    ) -> None:
        """Initialize the model.

        Args:
            steepness: Curve steepness `a`, in 1/melanopic lux.
            stimulus_max: The stimulus ceiling.
        """
        self.steepness = steepness
        self.stimulus_max = stimulus_max

    @classmethod
    def from_settings(
        cls, model_settings: config.ModelSettings
    ) -> "CircadianStimulusModel":
        """Build the model from the configured constants."""
        return cls(
            steepness=model_settings.stimulus_steepness,
            stimulus_max=model_settings.stimulus_max,
        )

    def calculate(
        self, melanopic_lux: Union[float, np.ndarray]
    ) -> Union[float, np.ndarray]:
        """Circadian stimulus of the given melanopic illuminance.

        Args:
            melanopic_lux: Melanopic illuminance value(s).

        Returns:
            The stimulus, 0 for non-positive input.
        """
        melanopic = np.maximum(np.asarray(melanopic_lux, dtype=float), 0.0)
        stimulus = self.stimulus_max * (1 - np.exp(-self.steepness * melanopic))
        stimulus = np.clip(stimulus, 0.0, self.stimulus_max)
        if np.ndim(stimulus) == 0:
            return float(stimulus)
        return stimulus

    def calculate_linear(
        self, melanopic_lux: Union[float, np.ndarray]
    ) -> Union[float, np.ndarray]:
        """Linear approximation min(melanopic / 1000, CS_max), for calibration."""
        stimulus = np.clip(
            np.asarray(melanopic_lux, dtype=float) / 1000, 0.0, self.stimulus_max
        )
        if np.ndim(stimulus) == 0:
            return float(stimulus)
        return stimulus

    def apply(self, melanopic: models.Measurement) -> models.Measurement:
        """Compute the stimulus timeline of a melanopic measurement."""
        return models.Measurement(
            measurements=np.atleast_1d(self.calculate(melanopic.measurements)),
            time=melanopic.time,
        )

    @staticmethod
    def fit_steepness(
        melanopic_lux: float,
        stimulus_observed: float,
        stimulus_max: float = 0.7,
        default: float = 0.005,
    ) -> float:
        """Fit the steepness `a` from one observation.

        a = -ln(1 - CS_obs / CS_max) / melanopic_lux

        Args:
            melanopic_lux: The observed melanopic illuminance.
            stimulus_observed: The observed circadian stimulus.
            stimulus_max: The stimulus ceiling.
            default: Value returned for degenerate observations.

        Returns:
            The fitted steepness, or the default when the illuminance is not
            positive or the observed stimulus reaches the ceiling.
        """
        if melanopic_lux <= 0 or stimulus_observed >= stimulus_max:
            logger.debug("Degenerate stimulus observation, using default steepness.")
            return default
        return -math.log(1 - stimulus_observed / stimulus_max) / melanopic_lux
