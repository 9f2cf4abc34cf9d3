"""Test readers.py functions."""

import datetime
import pathlib

import numpy as np
import polars as pl
import pytest

from circapy.core import exceptions, models
from circapy.io.readers import readers


def test_read_invalid_extension(sample_data_txt: pathlib.Path) -> None:
    """Test the read_session function with an invalid file extension."""
    with pytest.raises(
        exceptions.InvalidFileTypeError, match="File type .txt is not supported."
    ):
        readers.read_session(sample_data_txt)


@pytest.mark.parametrize("fixture_name", ["sample_data_csv", "sample_data_parquet"])
def test_read_session(fixture_name: str, request: pytest.FixtureRequest) -> None:
    """Test reading sessions from csv and parquet files."""
    path: pathlib.Path = request.getfixturevalue(fixture_name)

    session = readers.read_session(path)

    assert isinstance(session, models.Session)
    assert session.id == "example_session"
    assert len(session.samples) == 120
    assert session.samples[0].timestamp == datetime.datetime(2024, 5, 2, 20, 0)
    assert session.samples[0].ambient_lux == 250.0
    assert session.samples[0].screen_on is True
    assert session.samples[1].screen_on is False
    assert session.samples[0].screen_brightness == 0.6
    assert session.duration_hours == pytest.approx(119 / 60)


def test_read_session_custom_id(sample_data_csv: pathlib.Path) -> None:
    """Test an explicit session id."""
    assert readers.read_session(sample_data_csv, session_id="night").id == "night"


def test_session_from_data_frame_minimal_columns() -> None:
    """Test that optional columns default to absent values."""
    data_frame = pl.DataFrame(
        {
            "timestamp": ["2024-05-02 08:01:00", "2024-05-02 08:00:00"],
            "lux": [5, None],
        }
    )

    session = readers.session_from_data_frame(data_frame, "minimal")

    assert session.samples[0].timestamp == datetime.datetime(2024, 5, 2, 8, 0)
    assert np.isnan(session.samples[0].ambient_lux)
    assert session.samples[1].ambient_lux == 5.0
    assert session.samples[1].motion is None
    assert session.samples[1].screen_on is False
    assert session.samples[1].pitch is None


def test_session_from_data_frame_epoch_seconds() -> None:
    """Test numeric timestamps as unix epoch seconds."""
    data_frame = pl.DataFrame({"timestamp": [0.0, 60.5], "lux": [1.0, 2.0]})

    session = readers.session_from_data_frame(data_frame, "epoch")

    assert session.samples[0].timestamp == datetime.datetime(1970, 1, 1)
    expected = datetime.datetime(1970, 1, 1) + datetime.timedelta(seconds=60.5)
    assert session.samples[1].timestamp == expected


def test_session_from_data_frame_missing_column() -> None:
    """Test the error when a required column is missing."""
    data_frame = pl.DataFrame({"timestamp": [datetime.datetime(2024, 5, 2)]})

    with pytest.raises(ValueError, match="missing required columns"):
        readers.session_from_data_frame(data_frame, "broken")


def test_unix_epoch_time_to_polars_datetime() -> None:
    """Test conversion of epoch seconds."""
    result = readers.unix_epoch_time_to_polars_datetime(np.array([1, 2]), "s")

    assert result.name == "time"
    assert result.to_list() == [
        datetime.datetime(1970, 1, 1, 0, 0, 1),
        datetime.datetime(1970, 1, 1, 0, 0, 2),
    ]
