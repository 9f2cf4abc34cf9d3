"""Test the functionality of the RestEpisodeDetector class."""

import datetime
from typing import List

import numpy as np
import polars as pl
import pytest

from circapy.core import config, models
from circapy.processing import analytics

DUMMY_DATE = datetime.datetime(2024, 5, 2, 23, 0)


def _measurement(values: List[float]) -> models.Measurement:
    """Measurement with one sample per minute."""
    time = pl.Series(
        "time", [DUMMY_DATE + datetime.timedelta(minutes=i) for i in range(len(values))]
    )
    return models.Measurement(measurements=np.array(values, dtype=float), time=time)


def _lux_with_dark_run(
    run_length: int, total: int = 60, offset: int = 5
) -> List[float]:
    """Bright samples with one dark run starting at offset."""
    lux = [200.0] * total
    lux[offset : offset + run_length] = [1.0] * run_length
    return lux


def test_no_rest_run() -> None:
    """Test that bright data yields no episodes."""
    detector = analytics.RestEpisodeDetector(_measurement([200.0] * 60))

    assert detector.run_sleep_detection() == []


def test_episode_at_minimum_duration() -> None:
    """Test that a run of exactly the minimum duration is reported."""
    detector = analytics.RestEpisodeDetector(_measurement(_lux_with_dark_run(20)))

    episodes = detector.run_sleep_detection()

    assert episodes == [
        models.SleepEpisode(
            start=DUMMY_DATE + datetime.timedelta(minutes=5),
            end=DUMMY_DATE + datetime.timedelta(minutes=25),
        )
    ]
    assert episodes[0].duration_minutes == 20


def test_episode_below_minimum_duration() -> None:
    """Test that a run shorter than the minimum duration is dropped."""
    detector = analytics.RestEpisodeDetector(_measurement(_lux_with_dark_run(19)))

    assert detector.run_sleep_detection() == []


def test_open_run_at_end_not_reported() -> None:
    """Test that a run still open at the last sample is dropped."""
    lux = [200.0] * 10 + [1.0] * 50

    detector = analytics.RestEpisodeDetector(_measurement(lux))

    assert detector.run_sleep_detection() == []


def test_movement_breaks_rest() -> None:
    """Test that movement above the threshold prevents rest."""
    lux = _lux_with_dark_run(50)
    motion = [0.1] * 60
    motion[20] = 2.0

    detector = analytics.RestEpisodeDetector(_measurement(lux), _measurement(motion))

    episodes = detector.run_sleep_detection()

    assert len(episodes) == 1
    assert episodes[0].start == DUMMY_DATE + datetime.timedelta(minutes=21)


def test_missing_motion_counts_as_still() -> None:
    """Test that NaN motion readings count as no movement."""
    detector = analytics.RestEpisodeDetector(
        _measurement(_lux_with_dark_run(25)), _measurement([np.nan] * 60)
    )

    assert len(detector.run_sleep_detection()) == 1


def test_custom_settings() -> None:
    """Test a shorter minimum duration."""
    detector = analytics.RestEpisodeDetector(
        _measurement(_lux_with_dark_run(10)),
        settings=config.SleepSettings(min_duration_minutes=10),
    )

    assert len(detector.run_sleep_detection()) == 1


def test_length_mismatch() -> None:
    """Test the error when lux and motion differ in length."""
    with pytest.raises(ValueError, match="same number of samples"):
        analytics.RestEpisodeDetector(_measurement([1.0] * 3), _measurement([0.0] * 4))


def test_find_runs() -> None:
    """Test run detection including a run reaching the end."""
    runs = analytics._find_runs(np.array([True, True, False, True, False, True]))

    assert runs == [(0, 2), (3, 4), (5, 6)]


def test_sleep_episodes_as_measurement() -> None:
    """Test conversion of episodes to a boolean measurement."""
    time = _measurement([0.0] * 10).time
    episode = models.SleepEpisode(start=time[2], end=time[4])

    result = analytics.sleep_episodes_as_measurement(time, [episode])

    assert result.measurements.tolist() == [
        False,
        False,
        True,
        True,
        True,
        False,
        False,
        False,
        False,
        False,
    ]


def test_total_sleep_minutes() -> None:
    """Test the total whole minutes of a list of episodes."""
    episodes = [
        models.SleepEpisode(
            start=DUMMY_DATE,
            end=DUMMY_DATE + datetime.timedelta(minutes=20, seconds=30),
        ),
        models.SleepEpisode(
            start=DUMMY_DATE, end=DUMMY_DATE + datetime.timedelta(minutes=45)
        ),
    ]

    assert analytics.total_sleep_minutes(episodes) == 65
