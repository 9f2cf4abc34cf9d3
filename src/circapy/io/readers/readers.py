"""Function to read recorded light sessions from a file."""

import pathlib
from typing import Literal, Optional, Union

import numpy as np
import polars as pl

from circapy.core import config, exceptions, models

logger = config.get_logger()

VALID_FILE_TYPES = (".csv", ".parquet")

REQUIRED_COLUMNS = ("timestamp", "lux")
OPTIONAL_COLUMNS = ("motion", "screen_on", "screen_brightness", "pitch")


def read_session(
    file_name: Union[pathlib.Path, str], session_id: Optional[str] = None
) -> models.Session:
    """Read a recorded session from a file.

    The file holds one row per sample with the columns 'timestamp' and 'lux', and
    optionally 'motion', 'screen_on', 'screen_brightness' and 'pitch'. Timestamps
    are either date-time strings or unix epoch seconds, resolved to milliseconds.
    Rows are sorted by timestamp.

    Args:
        file_name: The .csv or .parquet file to read.
        session_id: Identifier of the session, defaults to the file stem.

    Returns:
        The session.

    Raises:
        InvalidFileTypeError: If the file extension is not supported.
        ValueError: If a required column is missing.
    """
    file_name = pathlib.Path(file_name)
    if file_name.suffix not in VALID_FILE_TYPES:
        raise exceptions.InvalidFileTypeError(
            f"File type {file_name.suffix} is not supported."
        )

    logger.debug("Reading session file: %s", file_name)
    if file_name.suffix == ".csv":
        data_frame = pl.read_csv(file_name, try_parse_dates=True)
    else:
        data_frame = pl.read_parquet(file_name)

    return session_from_data_frame(data_frame, session_id or file_name.stem)


def session_from_data_frame(
    data_frame: pl.DataFrame, session_id: str
) -> models.Session:
    """Build a session from a DataFrame of samples.

    Args:
        data_frame: One row per sample, see `read_session` for the columns.
        session_id: Identifier of the session.

    Returns:
        The session.

    Raises:
        ValueError: If a required column is missing.
    """
    missing = [column for column in REQUIRED_COLUMNS if column not in data_frame]
    if missing:
        raise ValueError(f"Session data is missing required columns: {missing}")

    if data_frame["timestamp"].dtype.is_numeric():
        data_frame = data_frame.with_columns(
            unix_epoch_time_to_polars_datetime(
                np.round(data_frame["timestamp"].to_numpy() * 1000).astype(np.int64),
                "ms",
            ).alias("timestamp")
        )
    elif data_frame["timestamp"].dtype == pl.String:
        data_frame = data_frame.with_columns(
            pl.col("timestamp").str.to_datetime()
        )

    for column in OPTIONAL_COLUMNS:
        if column not in data_frame:
            default = False if column == "screen_on" else None
            data_frame = data_frame.with_columns(pl.lit(default).alias(column))

    data_frame = data_frame.with_columns(
        pl.col("lux").cast(pl.Float64),
        pl.col("screen_on").cast(pl.Boolean).fill_null(False),
    ).sort("timestamp", maintain_order=True)

    samples = [
        models.LightSample(
            timestamp=row["timestamp"],
            ambient_lux=row["lux"] if row["lux"] is not None else float("nan"),
            motion=row["motion"],
            screen_on=row["screen_on"],
            screen_brightness=row["screen_brightness"],
            pitch=row["pitch"],
        )
        for row in data_frame.iter_rows(named=True)
    ]
    logger.debug("Read %s samples for session %s", len(samples), session_id)
    return models.Session(id=session_id, samples=samples)


def unix_epoch_time_to_polars_datetime(
    time: np.ndarray, units: Literal["ns", "us", "ms", "s", "d"] = "ns"
) -> pl.Series:
    """Convert unix epoch time to polars Series of datetime.

    Args:
        time: The unix epoch timestamps to convert.
        units: The units to convert the time to ('s', 'ms', 'us', or 'ns'). Default
            value is 'ns'.
    """
    time_series = pl.Series(time)
    return pl.from_epoch(time_series, time_unit=units).alias("time")
