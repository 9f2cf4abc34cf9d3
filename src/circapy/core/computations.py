"""This module contains helper computations shared by the processing modules."""

from typing import Dict, Union

import numpy as np
import polars as pl

from circapy.core import models

DEFAULT_DELTA_T_HOURS = 1 / 60


def interpolate_table(
    table: Dict[float, float], key: Union[float, np.ndarray]
) -> Union[float, np.ndarray]:
    """Piecewise-linear lookup in an anchor table.

    Keys below the first anchor or above the last anchor return the value of the
    nearest anchor.

    Args:
        table: Mapping from anchor key to value. Need not be sorted.
        key: The key(s) to look up.

    Returns:
        The interpolated value(s), a float for scalar input.

    Raises:
        ValueError: If the table is empty.
    """
    if not table:
        raise ValueError("Lookup table must not be empty.")

    anchors = sorted(table.items())
    x_points = np.array([anchor for anchor, _ in anchors], dtype=float)
    y_points = np.array([value for _, value in anchors], dtype=float)

    result = np.interp(key, x_points, y_points)
    if np.ndim(result) == 0:
        return float(result)
    return result


def estimate_delta_t(time: pl.Series) -> float:
    """Estimate the bin width of a series as its mean inter-sample interval.

    Args:
        time: The sorted datetime series.

    Returns:
        The mean interval in hours, or one minute when there are fewer than two
        timestamps.
    """
    if len(time) < 2:
        return DEFAULT_DELTA_T_HOURS

    total_seconds = (time[-1] - time[0]).total_seconds()
    return total_seconds / (len(time) - 1) / 3600


def hour_of_day(time: pl.Series) -> np.ndarray:
    """Return the local hour (0-23) of every timestamp."""
    return time.dt.hour().to_numpy().astype(int)


def summary_statistics(measurement: models.Measurement) -> Dict[str, float]:
    """Mean and peak of a measurement, ignoring NaN values.

    Args:
        measurement: The measurement to summarize.

    Returns:
        Dictionary with the keys 'mean' and 'peak'.
    """
    return {
        "mean": float(np.nanmean(measurement.measurements)),
        "peak": float(np.nanmax(measurement.measurements)),
    }
