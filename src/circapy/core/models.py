"""Internal data model."""

import datetime
import enum
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

import numpy as np
import polars as pl
import pydantic
from pydantic import BaseModel, field_validator

from circapy.core import config

logger = config.get_logger()

D65_WHITE_POINT = (0.3127, 0.3290)


class Measurement(BaseModel):
    """A series of values derived from a sensor and their corresponding time."""

    model_config = pydantic.ConfigDict(arbitrary_types_allowed=True)

    measurements: np.ndarray
    time: pl.Series

    @field_validator("measurements")
    def validate_measurements_not_empty(cls, v: np.ndarray) -> np.ndarray:
        """Validate that the measurements array is not empty.

        Args:
            cls: The class.
            v: The measurements array to validate.

        Returns:
            v: The measurements array if it is not empty.

        Raises:
            ValueError: If the measurements array is empty.
        """
        if v.size == 0:
            raise ValueError("measurements array must not be empty")
        return v

    @field_validator("time")
    def validate_time(cls, v: pl.Series) -> pl.Series:
        """Validate the time series.

        Check that the time series is a non-empty datetime series sorted in
        non-decreasing order. Sensors may emit several samples with the same
        timestamp, so duplicates are allowed.

        Args:
            cls: The class.
            v: The time series to validate.

        Returns:
            v: The time series if it is valid.

        Raises:
            ValueError: If the time series is not a datetime series, is not sorted,
            or is empty.
        """
        if not isinstance(v.dtype, pl.datatypes.Datetime):
            raise ValueError("Time must be a datetime series")
        if v.is_empty():
            raise ValueError("Time series cannot be empty")
        if not v.is_sorted():
            raise ValueError("Time series must be sorted")
        return v


class LightType(str, enum.Enum):
    """Closed set of light source categories.

    The values double as keys of the melanopic ratio table.
    """

    warm = "warm_led_2700k"
    neutral = "neutral_led_4000k"
    cool = "cool_led_5000k"
    daylight = "daylight_6500k"
    screen = "phone_screen"
    incandescent = "incandescent"

    @property
    def display_name(self) -> str:
        """Human readable name of the light type."""
        return _LIGHT_TYPE_NAMES[self]


_LIGHT_TYPE_NAMES = {
    LightType.warm: "Warm LED (2700K)",
    LightType.neutral: "Neutral LED (4000K)",
    LightType.cool: "Cool LED (5000K)",
    LightType.daylight: "Daylight (6500K)",
    LightType.screen: "Phone Screen",
    LightType.incandescent: "Incandescent",
}


class LightSample(BaseModel):
    """A single time-stamped reading delivered by the acquisition layer.

    Attributes:
        timestamp: Time of the reading.
        ambient_lux: Illuminance reported by the ambient light sensor. Non-finite
            values are allowed here and rejected by the signal conditioner.
        motion: Accelerometer magnitude, if available.
        screen_on: Whether the screen was on.
        screen_brightness: Screen brightness fraction, if available.
        pitch: Device pitch angle in radians, if available.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    timestamp: datetime.datetime
    ambient_lux: float
    motion: Optional[float] = pydantic.Field(default=None, ge=0)
    screen_on: bool = False
    screen_brightness: Optional[float] = pydantic.Field(default=None, ge=0, le=1)
    pitch: Optional[float] = None


class Session(BaseModel):
    """An ordered sequence of samples recorded in one session."""

    model_config = pydantic.ConfigDict(frozen=True)

    id: str
    samples: List[LightSample]
    started_at: Optional[datetime.datetime] = None
    stopped_at: Optional[datetime.datetime] = None
    meta: Optional[Dict[str, Any]] = None

    @field_validator("samples")
    def validate_samples_sorted(cls, v: List[LightSample]) -> List[LightSample]:
        """Validate that samples are ordered by non-decreasing timestamp.

        Args:
            cls: The class.
            v: The samples to validate.

        Returns:
            v: The samples if they are ordered.

        Raises:
            ValueError: If a sample precedes its predecessor in time.
        """
        for previous, current in zip(v, v[1:]):
            if current.timestamp < previous.timestamp:
                raise ValueError("Samples must be ordered by timestamp")
        return v

    @property
    def start(self) -> Optional[datetime.datetime]:
        """Session start, falling back to the first sample."""
        if self.started_at is not None:
            return self.started_at
        return self.samples[0].timestamp if self.samples else None

    @property
    def stop(self) -> Optional[datetime.datetime]:
        """Session end, falling back to the last sample."""
        if self.stopped_at is not None:
            return self.stopped_at
        return self.samples[-1].timestamp if self.samples else None

    @property
    def duration_hours(self) -> float:
        """Duration of the session in hours."""
        if self.start is None or self.stop is None:
            return 0.0
        return (self.stop - self.start).total_seconds() / 3600

    def to_data_frame(self) -> pl.DataFrame:
        """Converts the samples to a Polars DataFrame, one row per sample."""
        return pl.DataFrame(
            {
                "time": [s.timestamp for s in self.samples],
                "lux": [s.ambient_lux for s in self.samples],
                "motion": [s.motion for s in self.samples],
                "screen_on": [s.screen_on for s in self.samples],
                "screen_brightness": [s.screen_brightness for s in self.samples],
                "pitch": [s.pitch for s in self.samples],
            },
            schema={
                "time": pl.Datetime("us"),
                "lux": pl.Float64,
                "motion": pl.Float64,
                "screen_on": pl.Boolean,
                "screen_brightness": pl.Float64,
                "pitch": pl.Float64,
            },
        )


@dataclass(frozen=True)
class SleepEpisode:
    """A detected period of rest.

    Attributes:
        start: the first timestamp of the episode.
        end: the timestamp of the first sample after the episode.
    """

    start: datetime.datetime
    end: datetime.datetime

    @property
    def duration_minutes(self) -> float:
        """Length of the episode in minutes."""
        return (self.end - self.start).total_seconds() / 60

    def contains(self, timestamp: datetime.datetime) -> bool:
        """Whether the timestamp lies in the episode, endpoints included."""
        return self.start <= timestamp <= self.end


@dataclass(frozen=True)
class RGB:
    """An sRGB color with channels in [0, 1]."""

    r: float
    g: float
    b: float

    @property
    def is_valid(self) -> bool:
        """Whether all channels are finite and inside [0, 1]."""
        return all(
            math.isfinite(channel) and 0 <= channel <= 1
            for channel in (self.r, self.g, self.b)
        )

    def to_array(self) -> np.ndarray:
        """Return the channels as a numpy array."""
        return np.array([self.r, self.g, self.b], dtype=float)


@dataclass(frozen=True)
class XYZ:
    """CIE 1931 tristimulus values."""

    x: float
    y: float
    z: float

    @property
    def luminance(self) -> float:
        """Relative luminance, the Y tristimulus value."""
        return self.y

    @property
    def is_valid(self) -> bool:
        """Whether all values are finite and non-negative."""
        return all(
            math.isfinite(value) and value >= 0 for value in (self.x, self.y, self.z)
        )


@dataclass(frozen=True)
class Chromaticity:
    """CIE 1931 xy chromaticity coordinates."""

    x: float
    y: float

    @property
    def z(self) -> float:
        """The implied z coordinate."""
        return 1 - self.x - self.y

    @property
    def is_valid(self) -> bool:
        """Whether the coordinates lie inside the chromaticity triangle."""
        return (
            math.isfinite(self.x)
            and math.isfinite(self.y)
            and 0 <= self.x <= 1
            and 0 <= self.y <= 1
            and self.x + self.y <= 1
        )

    def distance_from_d65(self) -> float:
        """Euclidean distance in xy from the D65 white point."""
        return math.hypot(self.x - D65_WHITE_POINT[0], self.y - D65_WHITE_POINT[1])


class ClassificationResult(BaseModel):
    """Outcome of a light source classification.

    Attributes:
        light_type: The detected light source category.
        kelvin: Correlated color temperature, only for color based methods.
        confidence: Confidence of the classification in [0, 1].
        method: Tag of the method that produced the result.
        chromaticity: The measured chromaticity, only for color based methods.
        duv: Deviation from the reference white, only for color based methods.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    light_type: LightType
    kelvin: Optional[float] = None
    confidence: float = pydantic.Field(ge=0, le=1)
    method: Literal["cie_xy", "heuristic"]
    chromaticity: Optional[Chromaticity] = None
    duv: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Flatten the result for serialization."""
        return {
            "light_type": self.light_type.value,
            "kelvin": self.kelvin,
            "confidence": self.confidence,
            "method": self.method,
            "chromaticity": (
                {"x": self.chromaticity.x, "y": self.chromaticity.y}
                if self.chromaticity is not None
                else None
            ),
            "duv": self.duv,
        }
