"""Test the writers module."""

import datetime
import json
import logging
import pathlib
from typing import Any

import numpy as np
import polars as pl
import pydantic
import pytest

from circapy.core import exceptions, models
from circapy.io.writers import writers


def _measurement(
    values: np.ndarray, start: datetime.datetime = datetime.datetime(2024, 5, 2, 12)
) -> models.Measurement:
    time = pl.Series(
        "time", [start + datetime.timedelta(minutes=i) for i in range(len(values))]
    )
    return models.Measurement(measurements=values, time=time)


def _results(
    suppression: float = 0.1,
    start: datetime.datetime = datetime.datetime(2024, 5, 2, 12),
    **kwargs: Any,
) -> writers.ProcessingResults:
    lux = _measurement(np.full(10, 100.0), start)
    return writers.ProcessingResults(
        session_id="dummy",
        lux=lux,
        melanopic=_measurement(np.full(10, 60.0), start),
        stimulus=_measurement(np.full(10, 0.18), start),
        dose=_measurement(np.full(10, 0.003), start),
        total_dose=0.03,
        suppression=suppression,
        phase_shift=0.0,
        mean_stimulus=0.18,
        peak_stimulus=0.18,
        mean_melanopic=60.0,
        light_type=models.LightType.neutral,
        started_at=start,
        stopped_at=start + datetime.timedelta(minutes=9),
        duration_hours=0.15,
        **kwargs,
    )


@pytest.fixture
def dummy_results() -> writers.ProcessingResults:
    """Makes a results object for the purpose of testing."""
    return _results(processing_params={"light_type": "neutral_led_4000k"})


def test_save_results_csv(
    dummy_results: writers.ProcessingResults, tmp_path: pathlib.Path
) -> None:
    """Test the export table layout."""
    output = tmp_path / "nested" / "results.csv"

    dummy_results.save_results(output)

    lines = output.read_text().splitlines()
    assert lines[0] == "timestamp,lux,melanopic,cs"
    assert len(lines) == 11
    assert lines[1].startswith("2024-05-02T12:00:00")
    assert pl.read_csv(output, try_parse_dates=True)["timestamp"].dtype == pl.Datetime


def test_save_results_parquet(
    dummy_results: writers.ProcessingResults, tmp_path: pathlib.Path
) -> None:
    """Test saving as parquet."""
    output = tmp_path / "results.parquet"

    dummy_results.save_results(output)

    assert pl.read_parquet(output).columns == ["timestamp", "lux", "melanopic", "cs"]


def test_save_results_json_sidecar(
    dummy_results: writers.ProcessingResults, tmp_path: pathlib.Path
) -> None:
    """Test the summaries and parameters saved next to the table."""
    output = tmp_path / "results.csv"

    dummy_results.save_results(output)

    with open(output.with_suffix(".json")) as f:
        sidecar = json.load(f)
    assert sidecar["processing_parameters"] == {"light_type": "neutral_led_4000k"}
    assert sidecar["summary"]["session_id"] == "dummy"
    assert sidecar["summary"]["light_type"] == "neutral_led_4000k"
    assert sidecar["summary"]["risk_level"] == "Minimal circadian effect"
    assert "circapy_version" in sidecar


def test_save_results_invalid_extension(
    dummy_results: writers.ProcessingResults, tmp_path: pathlib.Path
) -> None:
    """Test the error for an unsupported extension."""
    with pytest.raises(exceptions.InvalidFileTypeError, match="not supported"):
        dummy_results.save_results(tmp_path / "results.txt")


def test_empty_params(
    tmp_path: pathlib.Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Test empty params raises logger warning."""
    caplog.set_level(logging.WARNING)

    _results().save_config_as_json(tmp_path / "test_output.csv")

    assert "No processing parameters to save as JSON" in caplog.text


def test_misaligned_measurements() -> None:
    """Test the error when per-sample measurements differ in length."""
    with pytest.raises(pydantic.ValidationError, match="same length"):
        writers.ProcessingResults(
            session_id="dummy",
            lux=_measurement(np.ones(10)),
            melanopic=_measurement(np.ones(9)),
            stimulus=_measurement(np.ones(10)),
            dose=_measurement(np.ones(10)),
            total_dose=0.0,
            suppression=0.0,
            phase_shift=0.0,
            mean_stimulus=0.0,
            peak_stimulus=0.0,
            mean_melanopic=0.0,
        )


@pytest.mark.parametrize(
    "hour, suppression, expected",
    [
        (20, 0.3, 70.0),
        (2, 0.3, 70.0),
        (20, 0.1, 97.0),
        (12, 0.3, 91.0),
        (12, 0.0, 100.0),
    ],
)
def test_health_score(hour: int, suppression: float, expected: float) -> None:
    """Test the health score for evening and daytime exposure."""
    results = _results(suppression, start=datetime.datetime(2024, 5, 2, hour))

    assert results.health_score == pytest.approx(expected)


@pytest.mark.parametrize(
    "suppression, expected",
    [
        (0.5, "High circadian disruption risk"),
        (0.3, "Moderate circadian impact"),
        (0.15, "Low circadian impact"),
        (0.1, "Minimal circadian effect"),
    ],
)
def test_risk_level(suppression: float, expected: str) -> None:
    """Test the risk labels."""
    assert _results(suppression).risk_level == expected


def test_sleep_properties() -> None:
    """Test the episode count and minutes."""
    start = datetime.datetime(2024, 5, 2, 1)
    results = _results(
        sleep_episodes=[
            models.SleepEpisode(start, start + datetime.timedelta(minutes=30)),
            models.SleepEpisode(
                start + datetime.timedelta(hours=2),
                start + datetime.timedelta(hours=2, minutes=25),
            ),
        ]
    )

    assert results.sleep_episode_count == 2
    assert results.sleep_minutes == 55


def test_phase_interpretation() -> None:
    """Test the interpretation of the net phase shift."""
    assert _results().phase_interpretation.direction == "negligible"
