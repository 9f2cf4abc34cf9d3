"""Fixtures used by pytest."""

import pathlib
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional

import numpy as np
import polars as pl
import pytest

from circapy.core import models

SessionFactory = Callable[..., models.Session]


def make_samples(
    lux: List[float],
    start: datetime = datetime(2024, 5, 2, 12, 0),
    step: timedelta = timedelta(minutes=1),
    motion: Optional[List[Optional[float]]] = None,
    screen_on: bool = False,
    screen_brightness: Optional[float] = None,
) -> List[models.LightSample]:
    """Build evenly spaced samples from a list of illuminance values."""
    return [
        models.LightSample(
            timestamp=start + i * step,
            ambient_lux=value,
            motion=motion[i] if motion is not None else None,
            screen_on=screen_on,
            screen_brightness=screen_brightness,
        )
        for i, value in enumerate(lux)
    ]


@pytest.fixture
def make_session() -> SessionFactory:
    """Factory for sessions of evenly spaced samples."""

    def _make_session(lux: List[float], **kwargs: Any) -> models.Session:
        return models.Session(id="test_session", samples=make_samples(lux, **kwargs))

    return _make_session


@pytest.fixture
def constant_session(make_session: SessionFactory) -> models.Session:
    """One hour of constant 100 lux at noon, one sample per minute."""
    return make_session([100.0] * 60)


@pytest.fixture
def create_session_frame() -> pl.DataFrame:
    """Two hours of samples in the export column layout of a recording."""
    dummy_date = datetime(2024, 5, 2, 20, 0)
    n_samples = 120
    return pl.DataFrame(
        {
            "timestamp": [dummy_date + timedelta(minutes=i) for i in range(n_samples)],
            "lux": np.concatenate([np.full(60, 250.0), np.full(60, 2.0)]),
            "motion": np.concatenate([np.full(60, 1.5), np.full(60, 0.1)]),
            "screen_on": [i % 2 == 0 for i in range(n_samples)],
            "screen_brightness": np.full(n_samples, 0.6),
            "pitch": np.full(n_samples, np.pi / 2),
        }
    )


@pytest.fixture
def sample_data_csv(
    create_session_frame: pl.DataFrame, tmp_path: pathlib.Path
) -> pathlib.Path:
    """Session file in .csv format."""
    path = tmp_path / "example_session.csv"
    create_session_frame.write_csv(path)
    return path


@pytest.fixture
def sample_data_parquet(
    create_session_frame: pl.DataFrame, tmp_path: pathlib.Path
) -> pathlib.Path:
    """Session file in .parquet format."""
    path = tmp_path / "example_session.parquet"
    create_session_frame.write_parquet(path)
    return path


@pytest.fixture
def sample_data_txt(tmp_path: pathlib.Path) -> pathlib.Path:
    """Text data to test invalid file types."""
    path = tmp_path / "example_text.txt"
    path.write_text("not a session")
    return path
