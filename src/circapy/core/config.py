"""Configuration module for circapy."""

import json
import logging
import pathlib
from importlib import metadata
from typing import Dict, Union

import pydantic

DEFAULT_MELANOPIC_RATIOS = {
    "warm_led_2700k": 0.45,
    "neutral_led_4000k": 0.60,
    "cool_led_5000k": 0.85,
    "daylight_6500k": 0.95,
    "phone_screen": 0.75,
    "incandescent": 0.42,
}

DEFAULT_BRIGHTNESS_TO_LUX = {
    0.0: 0.0,
    0.2: 40.0,
    0.4: 80.0,
    0.5: 120.0,
    0.6: 160.0,
    0.8: 220.0,
    1.0: 300.0,
}


def get_version() -> str:
    """Return circapy version."""
    try:
        return metadata.version("circapy")
    except metadata.PackageNotFoundError:
        return "Version unknown"


def get_logger() -> logging.Logger:
    """Gets the circapy logger."""
    logger = logging.getLogger("circapy")
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)s - %(funcName)s - %(message)s",  # noqa: E501
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


class ConditionerSettings(pydantic.BaseModel):
    """Parameters of the ambient light signal conditioner.

    Attributes:
        min_lux: Lower bound of the valid illuminance range.
        max_lux: Upper bound of the valid illuminance range.
        dead_band_lux: Changes smaller than this, relative to the smoothed value,
            are treated as sensor noise.
        outlier_fraction: Fractional change relative to the smoothed value above
            which a reading is damped before smoothing.
        outlier_blend: Weight given to the new reading when damping an outlier.
        smoothing_alpha: Coefficient of the exponential smoothing filter.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    min_lux: float = pydantic.Field(default=0.0, ge=0)
    max_lux: float = pydantic.Field(default=100_000.0, gt=0)
    dead_band_lux: float = pydantic.Field(default=1.0, ge=0)
    outlier_fraction: float = pydantic.Field(default=5.0, gt=0)
    outlier_blend: float = pydantic.Field(default=0.3, ge=0, le=1)
    smoothing_alpha: float = pydantic.Field(default=0.3, gt=0, le=1)

    @pydantic.model_validator(mode="after")
    def validate_range(self) -> "ConditionerSettings":
        """Ensure the valid illuminance range is not empty."""
        if self.min_lux >= self.max_lux:
            raise ValueError("min_lux must be smaller than max_lux.")
        return self


class SleepSettings(pydantic.BaseModel):
    """Thresholds used by the rest episode detector."""

    model_config = pydantic.ConfigDict(frozen=True)

    movement_threshold: float = pydantic.Field(default=0.5, ge=0)
    lux_threshold: float = pydantic.Field(default=10.0, ge=0)
    min_duration_minutes: float = pydantic.Field(default=20.0, ge=0)


class ScreenSettings(pydantic.BaseModel):
    """Screen photometry used to estimate the screen contribution at the eye.

    Attributes:
        brightness_to_lux: Anchor points mapping the brightness fraction to lux at
            the reference distance with perpendicular viewing.
        reference_distance_cm: Distance at which the anchor table was measured.
        viewing_distance_cm: Assumed distance between the eye and the screen.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    brightness_to_lux: Dict[float, float] = pydantic.Field(
        default_factory=lambda: dict(DEFAULT_BRIGHTNESS_TO_LUX)
    )
    reference_distance_cm: float = pydantic.Field(default=35.0, gt=0)
    viewing_distance_cm: float = pydantic.Field(default=35.0, gt=0)

    @pydantic.field_validator("brightness_to_lux")
    def validate_table(cls, v: Dict[float, float]) -> Dict[float, float]:
        """Validate the brightness anchor table.

        Args:
            cls: The class.
            v: The table to validate.

        Returns:
            The table, sorted by brightness.

        Raises:
            ValueError: If the table is empty or holds negative lux values.
        """
        if not v:
            raise ValueError("brightness_to_lux must contain at least one anchor.")
        if any(lux < 0 for lux in v.values()):
            raise ValueError("brightness_to_lux values must be non-negative.")
        return dict(sorted(v.items()))


class ModelSettings(pydantic.BaseModel):
    """Constants of the circadian response models.

    Attributes:
        suppression_k: Sensitivity of melatonin suppression to dose.
        stimulus_steepness: Steepness `a` of the circadian stimulus curve, in
            1/melanopic lux.
        stimulus_max: Ceiling of the circadian stimulus.
        prc_morning_scale: Phase shift scaling inside the morning window.
        prc_evening_scale: Phase shift scaling inside the evening window.
        prc_midday_scale: Phase shift scaling outside both windows.
        sleep_attenuation: Fraction of light kept during detected rest episodes.
        melanopic_ratios: Melanopic ratio per light-type value.
        default_melanopic_ratio: Ratio used when no light type is known.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    suppression_k: float = pydantic.Field(default=0.25, gt=0)
    stimulus_steepness: float = pydantic.Field(default=0.005, gt=0)
    stimulus_max: float = pydantic.Field(default=0.7, gt=0, le=1)
    prc_morning_scale: float = 1.0
    prc_evening_scale: float = 0.9
    prc_midday_scale: float = 0.5
    sleep_attenuation: float = pydantic.Field(default=0.1, ge=0, le=1)
    melanopic_ratios: Dict[str, float] = pydantic.Field(
        default_factory=lambda: dict(DEFAULT_MELANOPIC_RATIOS)
    )
    default_melanopic_ratio: float = pydantic.Field(default=0.6, gt=0, le=1)

    @pydantic.field_validator("melanopic_ratios")
    def validate_ratios(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Validate that every melanopic ratio lies in (0, 1]."""
        for name, ratio in v.items():
            if not 0 < ratio <= 1:
                raise ValueError(f"Melanopic ratio for {name} must be in (0, 1].")
        return v


class Settings(pydantic.BaseModel):
    """All processing parameters of a circapy session."""

    model_config = pydantic.ConfigDict(frozen=True)

    conditioner: ConditionerSettings = pydantic.Field(
        default_factory=ConditionerSettings
    )
    sleep: SleepSettings = pydantic.Field(default_factory=SleepSettings)
    screen: ScreenSettings = pydantic.Field(default_factory=ScreenSettings)
    model: ModelSettings = pydantic.Field(default_factory=ModelSettings)

    @classmethod
    def from_json_file(cls, path: Union[pathlib.Path, str]) -> "Settings":
        """Load settings from a JSON file.

        Keys missing from the file keep their default values.

        Args:
            path: Path to the JSON file.

        Returns:
            The loaded settings.
        """
        with open(path, "r") as f:
            return cls.model_validate(json.load(f))
