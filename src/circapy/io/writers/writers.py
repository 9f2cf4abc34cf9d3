"""Module containing the output classes for writing data to files."""

import datetime
import json
import pathlib
from typing import Any, Dict, List, Optional

import numpy as np
import polars as pl
import pydantic

from circapy.core import config, exceptions, models
from circapy.processing import phase_response

VALID_FILE_TYPES = (".csv", ".parquet")

EXPORT_COLUMNS = ("timestamp", "lux", "melanopic", "cs")

logger = config.get_logger()


class ProcessingResults(pydantic.BaseModel):
    """Results of processing one recording session.

    All per-sample measurements share the same timestamps.

    Attributes:
        session_id: Identifier of the processed session.
        lux: Illuminance at the eye, ambient plus screen, before sleep attenuation.
        melanopic: Melanopic illuminance.
        stimulus: Circadian stimulus.
        dose: Dose increment of each sample, in CS hours.
        total_dose: Accumulated dose in CS hours.
        suppression: Predicted melatonin suppression fraction.
        phase_shift: Net phase shift in hours, positive for an advance.
        mean_stimulus: Mean circadian stimulus.
        peak_stimulus: Peak circadian stimulus.
        mean_melanopic: Mean melanopic illuminance.
        light_type: The light type used for the melanopic ratio, None when the
            default ratio was used.
        classification: The classification that chose the light type, if any.
        started_at: Session start.
        stopped_at: Session end.
        duration_hours: Session duration in hours.
        sleep_episodes: The detected rest episodes.
        metadata: Additional session metadata.
        processing_params: The parameters used for processing.
    """

    model_config = pydantic.ConfigDict(arbitrary_types_allowed=True, frozen=True)

    session_id: str
    lux: models.Measurement
    melanopic: models.Measurement
    stimulus: models.Measurement
    dose: models.Measurement
    total_dose: float
    suppression: float
    phase_shift: float
    mean_stimulus: float
    peak_stimulus: float
    mean_melanopic: float
    light_type: Optional[models.LightType] = None
    classification: Optional[models.ClassificationResult] = None
    started_at: Optional[datetime.datetime] = None
    stopped_at: Optional[datetime.datetime] = None
    duration_hours: float = 0.0
    sleep_episodes: List[models.SleepEpisode] = pydantic.Field(default_factory=list)
    metadata: Dict[str, Any] = pydantic.Field(default_factory=dict)
    processing_params: Optional[Dict[str, Any]] = None

    @pydantic.model_validator(mode="after")
    def validate_aligned(self) -> "ProcessingResults":
        """Validate that all per-sample measurements have the same length.

        Raises:
            ValueError: If the measurement lengths differ.
        """
        lengths = {
            len(measurement.time)
            for measurement in (self.lux, self.melanopic, self.stimulus, self.dose)
        }
        if len(lengths) != 1:
            raise ValueError("Per-sample measurements must have the same length.")
        return self

    @property
    def time(self) -> pl.Series:
        """Timestamps shared by the per-sample measurements."""
        return self.lux.time

    @property
    def sleep_episode_count(self) -> int:
        """Number of detected rest episodes."""
        return len(self.sleep_episodes)

    @property
    def sleep_minutes(self) -> int:
        """Whole minutes spent in rest episodes."""
        return sum(int(episode.duration_minutes) for episode in self.sleep_episodes)

    @property
    def phase_interpretation(self) -> phase_response.PhaseShiftInterpretation:
        """Readable interpretation of the net phase shift."""
        return phase_response.interpret_phase_shift(self.phase_shift)

    @property
    def health_score(self) -> float:
        """Circadian health score from 0 to 100.

        Samples between 19:00 and 04:00 count as evening. When most samples are
        evening samples and the suppression exceeds 0.15, the score is reduced in
        proportion to the evening share. Otherwise it drops gently with the
        suppression.
        """
        hours = self.time.dt.hour().to_numpy()
        if hours.size == 0:
            return 50.0

        evening_ratio = float(np.mean((hours >= 19) | (hours < 4)))
        if evening_ratio > 0.5 and self.suppression > 0.15:
            return 100 * (1 - self.suppression * evening_ratio)
        return 100 * float(np.clip(1 - abs(self.suppression) * 0.3, 0.0, 1.0))

    @property
    def risk_level(self) -> str:
        """Risk label derived from the predicted suppression."""
        if self.suppression > 0.4:
            return "High circadian disruption risk"
        if self.suppression > 0.2:
            return "Moderate circadian impact"
        if self.suppression > 0.1:
            return "Low circadian impact"
        return "Minimal circadian effect"

    def summary(self) -> Dict[str, Any]:
        """Scalar summaries of the session, JSON serializable."""
        return {
            "session_id": self.session_id,
            "start_time": _isoformat(self.started_at),
            "end_time": _isoformat(self.stopped_at),
            "duration_hours": self.duration_hours,
            "total_dose": self.total_dose,
            "suppression": self.suppression,
            "phase_shift": self.phase_shift,
            "phase_interpretation": self.phase_interpretation.description,
            "mean_stimulus": self.mean_stimulus,
            "peak_stimulus": self.peak_stimulus,
            "mean_melanopic": self.mean_melanopic,
            "light_type": self.light_type.value if self.light_type else None,
            "classification": (
                self.classification.to_dict() if self.classification else None
            ),
            "health_score": self.health_score,
            "risk_level": self.risk_level,
            "metadata": self.metadata,
        }

    def to_data_frame(self) -> pl.DataFrame:
        """The export table, one row per sample."""
        return pl.DataFrame(
            {
                "timestamp": self.time,
                "lux": np.atleast_1d(self.lux.measurements).astype(float),
                "melanopic": np.atleast_1d(self.melanopic.measurements).astype(float),
                "cs": np.atleast_1d(self.stimulus.measurements).astype(float),
            }
        ).select(EXPORT_COLUMNS)

    def save_results(self, output: pathlib.Path) -> None:
        """Save the export table as a csv or parquet file.

        A JSON file with the same name holds the summaries and the processing
        parameters.

        Args:
            output: The path and file name of the data to be saved. as either a csv or
                parquet files.
        """
        logger.debug("Saving results.")
        self.validate_output(output=output)
        output.parent.mkdir(parents=True, exist_ok=True)

        results_dataframe = self.to_data_frame()

        if output.suffix == ".csv":
            results_dataframe.write_csv(output, separator=",")
        elif output.suffix == ".parquet":
            results_dataframe.write_parquet(output)

        logger.info("Results saved in: %s", output)

        self.save_config_as_json(output)

    def save_config_as_json(self, output_path: pathlib.Path) -> None:
        """Save the summaries and processing parameters as a JSON file.

        Args:
            output_path: Path where the data file was saved. The JSON file will use
                the same name but with .json extension.
        """
        if not self.processing_params:
            logger.warning("No processing parameters to save as JSON")

        config_data = {
            "processing_time": datetime.datetime.now().isoformat(timespec="seconds"),
            "circapy_version": config.get_version(),
            "summary": self.summary(),
            "processing_parameters": self.processing_params,
        }

        config_path = output_path.with_suffix(".json")

        with open(config_path, "w") as f:
            json.dump(config_data, f, indent=4, default=str)

        logger.debug("Configuration saved in: %s", config_path)

    @classmethod
    def validate_output(cls, output: pathlib.Path) -> None:
        """Validates that the output path exists and is a valid format.

        Args:
            output: the name of the file to be saved, and the directory it will
                be saved in. Must be a .csv or .parquet file.

        Raises:
            InvalidFileTypeError: If the output file path ends with any extension
                other than csv or parquet.
        """
        if output.suffix not in VALID_FILE_TYPES:
            raise exceptions.InvalidFileTypeError(
                f"The extension: {output.suffix} is not supported. "
                "Please save the file as .csv or .parquet",
            )


def _isoformat(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
