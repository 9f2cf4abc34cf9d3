"""Detect rest episodes from light and motion."""

import abc
from typing import List, Optional, Tuple

import numpy as np
import polars as pl

from circapy.core import config, models

logger = config.get_logger()


class AbstractSleepDetector(abc.ABC):
    """Abstract class defining the interface for sleep detection algorithms."""

    @abc.abstractmethod
    def __init__(
        self, lux: models.Measurement, motion: Optional[models.Measurement]
    ) -> None:
        """Initialization function for the sleep detection algorithm.

        Must contain the conditioned illuminance as an input.
        """
        pass

    @abc.abstractmethod
    def run_sleep_detection(self) -> List[models.SleepEpisode]:
        """Sleep Detector must contain a run_sleep_detection function.

        The function must return an ordered, non-overlapping list of episodes.
        """
        pass


class RestEpisodeDetector(AbstractSleepDetector):
    """Low light, low movement heuristic for rest detection.

    A sample is a rest candidate when its motion magnitude is below the movement
    threshold and its illuminance is below the light threshold. Missing motion
    readings count as no movement. Consecutive candidates form a run; a run is
    closed by the first non-candidate sample and becomes an episode when it lasts
    at least the minimum duration. A run that is still open at the last sample is
    not reported.

    This is a heuristic for long recordings and not a clinical sleep staging
    method.

    Attributes:
        lux: the conditioned illuminance.
        motion: the motion magnitude, aligned with lux, or None.
        settings: the detection thresholds.
    """

    def __init__(
        self,
        lux: models.Measurement,
        motion: Optional[models.Measurement] = None,
        settings: Optional[config.SleepSettings] = None,
    ) -> None:
        """Initialize the detector.

        Args:
            lux: the conditioned illuminance.
            motion: the motion magnitude with the same timestamps as lux.
            settings: the detection thresholds, defaults are used if None.

        Raises:
            ValueError: If lux and motion differ in length.
        """
        if motion is not None and len(motion.time) != len(lux.time):
            raise ValueError("lux and motion must have the same number of samples.")
        self.lux = lux
        self.motion = motion
        self.settings = settings or config.SleepSettings()

    def run_sleep_detection(self) -> List[models.SleepEpisode]:
        """Run the rest episode detection.

        Returns:
            The detected episodes in chronological order, possibly empty.
        """
        logger.debug(
            "Beginning sleep detection. Movement threshold: %s, lux threshold: %s",
            self.settings.movement_threshold,
            self.settings.lux_threshold,
        )
        candidates = self._rest_candidates()
        episodes = []
        for start_idx, end_idx in _find_runs(candidates):
            if end_idx >= len(candidates):
                logger.debug("Ignoring rest run that is open at the end of data.")
                continue
            episode = models.SleepEpisode(
                start=self.lux.time.item(int(start_idx)),
                end=self.lux.time.item(int(end_idx)),
            )
            if episode.duration_minutes >= self.settings.min_duration_minutes:
                episodes.append(episode)

        logger.debug("Sleep detection complete. Episodes detected: %s", len(episodes))
        return episodes

    def _rest_candidates(self) -> np.ndarray:
        """Flag samples that meet both the low light and low movement criteria."""
        lux = np.atleast_1d(self.lux.measurements).astype(float)
        if self.motion is None:
            motion = np.zeros_like(lux)
        else:
            motion = np.atleast_1d(self.motion.measurements).astype(float)
            motion = np.nan_to_num(motion, nan=0.0)

        low_movement = np.abs(motion) < self.settings.movement_threshold
        low_light = lux < self.settings.lux_threshold
        return np.logical_and(low_movement, low_light)


def _find_runs(boolean_array: np.ndarray) -> List[Tuple[int, int]]:
    """Find runs of consecutive True values.

    Args:
        boolean_array: The array to search.

    Returns:
        A list of (start, end) index pairs, where start is the first True index of
        the run and end is the index just past it. A run reaching the end of the
        array has end equal to the array length.
    """
    padded = np.concatenate(([0], boolean_array.astype(int), [0]))
    edges = np.diff(padded)
    starts = np.nonzero(edges == 1)[0]
    ends = np.nonzero(edges == -1)[0]
    return list(zip(starts.tolist(), ends.tolist()))


def sleep_episodes_as_measurement(
    ref_measurement_time: pl.Series, sleep_episodes: List[models.SleepEpisode]
) -> models.Measurement:
    """Helper function to convert list of sleep episodes to a Measurement instance.

    A timestamp belongs to an episode when it lies between the episode start and
    end, endpoints included.

    Args:
        ref_measurement_time: Reference polars Series with time stamps.
        sleep_episodes: The list of detected episodes.

    Returns:
        A new Measurement instance with the sleep values, as booleans.
    """
    logger.debug("Converting sleep episodes to measurement.")

    sleep_value = np.zeros(len(ref_measurement_time), dtype=bool)

    for episode in sleep_episodes:
        time_mask = (ref_measurement_time >= episode.start) & (
            ref_measurement_time <= episode.end
        )
        sleep_value[time_mask.to_numpy()] = True

    return models.Measurement(time=ref_measurement_time, measurements=sleep_value)


def total_sleep_minutes(sleep_episodes: List[models.SleepEpisode]) -> int:
    """Total whole minutes spent in the episodes."""
    return sum(int(episode.duration_minutes) for episode in sleep_episodes)
