"""Python based runner."""

import itertools
import logging
import pathlib
from typing import Dict, Literal, Optional, Sequence, Tuple, Union

import numpy as np
import polars as pl
from rich import progress

from circapy.core import computations, config, exceptions, models
from circapy.io.readers import readers
from circapy.io.writers import writers
from circapy.processing import (
    analytics,
    classification,
    conditioning,
    dosimetry,
    metrics,
    phase_response,
)

logger = config.get_logger()

VALID_FILE_TYPES = (".csv", ".parquet")

RECENT_SAMPLE_COUNT = 10


def run(
    input: Union[pathlib.Path, str],
    output: Optional[Union[pathlib.Path, str]] = None,
    light_type: Optional[models.LightType] = None,
    rgb: Optional[Tuple[float, float, float]] = None,
    settings: Optional[config.Settings] = None,
    verbosity: int = logging.WARNING,
    output_filetype: Literal[".csv", ".parquet"] = ".csv",
) -> Union[writers.ProcessingResults, Dict[str, writers.ProcessingResults]]:
    """Runs the circadian light processing on single files, or directories.

    The run() function will execute the _run_file() function on individual files, or
    _run_directory() on entire directories. When the input path points to a file,
    the name of the save file will be taken from the given output path (if any).
    When the input path points to a directory the output path must be a valid
    directory as well. Output file names will be derived from original file names
    in the case of directory processing.

    Args:
        input: Path to the input file or directory of files to be read. Currently,
            this supports .csv and .parquet session files.
        output: Path to directory data will be saved to. If processing a single file the
            path should end in the save file name in either .csv or .parquet formats.
        light_type: The light type of the session. Takes precedence over rgb.
        rgb: A gamma encoded sRGB sample of the light source, used to classify the
            light type when no light type is given. The time of day heuristic is
            the fallback when the sample is not conclusive.
        settings: The processing settings, defaults are used if None.
        verbosity: The logging level for the logger.
        output_filetype: Specifies the data format for the save files. Only used when
            processing directories.

    Returns:
        All calculated data in a save ready format as a ProcessingResults object or
        as a dictionary of ProcessingResults objects.

    Raises:
        FileNotFoundError: If the input path does not exist.
    """
    logger.setLevel(verbosity)

    input = pathlib.Path(input)
    output = pathlib.Path(output) if output is not None else None
    settings = settings or config.Settings()

    if not input.exists():
        raise FileNotFoundError(f"Input path {input} does not exist.")

    if input.is_file():
        return _run_file(
            input=input,
            output=output,
            light_type=light_type,
            rgb=rgb,
            settings=settings,
            verbosity=verbosity,
        )

    return _run_directory(
        input=input,
        output=output,
        light_type=light_type,
        rgb=rgb,
        settings=settings,
        verbosity=verbosity,
        output_filetype=output_filetype,
    )


def _run_directory(
    input: pathlib.Path,
    output: Optional[pathlib.Path] = None,
    light_type: Optional[models.LightType] = None,
    rgb: Optional[Tuple[float, float, float]] = None,
    settings: Optional[config.Settings] = None,
    verbosity: int = logging.WARNING,
    output_filetype: Literal[".csv", ".parquet"] = ".csv",
) -> Dict[str, writers.ProcessingResults]:
    """Runs the circadian light processing on directories.

    The _run_directory() function will execute the _run_file() function on entire
    directories. The input and output (if any) paths must be directories. Output file
    names will be derived from input file names. Files that fail to process are
    logged and skipped.

    Args:
        input: Path to the input directory of session files.
        output: Path to directory data will be saved to.
        light_type: The light type of the sessions.
        rgb: A gamma encoded sRGB sample of the light source.
        settings: The processing settings.
        verbosity: The logging level for the logger.
        output_filetype: Specifies the data format for the save files.

    Returns:
        All calculated data in a save ready format as a dictionary of
        ProcessingResults objects.

    Raises:
        ValueError: If the output given is not a directory.
        ValueError: If the output_filetype is not a valid type.
        EmptyDirectoryError: If the input directory contained no files of a valid
            type.
    """
    if output is not None:
        if output.is_file():
            raise ValueError(
                "Output is a file, but must be a directory when input is a directory."
            )
        if output_filetype not in VALID_FILE_TYPES:
            raise ValueError(
                "Invalid output_filetype: "
                f"{output_filetype}. Valid options are: {VALID_FILE_TYPES}."
            )

    file_names = sorted(
        itertools.chain(input.glob("*.csv"), input.glob("*.parquet"))
    )

    if not file_names:
        raise exceptions.EmptyDirectoryError(
            f"Directory {input} contains no .csv or .parquet files."
        )
    results_dict = {}
    with progress.Progress(
        progress.SpinnerColumn(),
        progress.TextColumn("[progress.description]{task.description}"),
        progress.BarColumn(),
        progress.TaskProgressColumn(),
        console=None,
    ) as progress_bar:
        task = progress_bar.add_task(
            f"[cyan]Processing files in {input.name}...", total=len(file_names)
        )

        for file in file_names:
            output_file_path = (
                output / pathlib.Path(file.stem).with_suffix(output_filetype)
                if output
                else None
            )
            logger.debug(
                "Processing directory: %s, current file: %s, save path: %s",
                input,
                file,
                output_file_path,
            )
            try:
                results_dict[str(file)] = _run_file(
                    input=file,
                    output=output_file_path,
                    light_type=light_type,
                    rgb=rgb,
                    settings=settings,
                    verbosity=verbosity,
                )
            except Exception as e:
                logger.error("Did not run file: %s, Error: %s", file, e)
            progress_bar.update(task, advance=1)
    logger.info("Processing for directory %s completed successfully.", input)
    return results_dict


def _run_file(
    input: pathlib.Path,
    output: Optional[pathlib.Path] = None,
    light_type: Optional[models.LightType] = None,
    rgb: Optional[Tuple[float, float, float]] = None,
    settings: Optional[config.Settings] = None,
    verbosity: int = logging.WARNING,
) -> writers.ProcessingResults:
    """Runs the circadian light processing on one session file.

    Args:
        input: Path to the session file to be read.
        output: Path to save data to. The path should end in the save file name in
            either .csv or .parquet formats.
        light_type: The light type of the session.
        rgb: A gamma encoded sRGB sample of the light source.
        settings: The processing settings.
        verbosity: The logging level for the logger.

    Returns:
        All calculated data in a save ready format as a ProcessingResults object.

    Raises:
        EmptySessionError: If the session holds no valid samples.
        InvalidFileTypeError: If the output file type is not supported.
    """
    logger.setLevel(verbosity)
    if output is not None:
        writers.ProcessingResults.validate_output(output=output)

    settings = settings or config.Settings()
    session = readers.read_session(input)

    light_classification = None
    if light_type is None and rgb is not None:
        light_classification = classify_light(
            session, rgb=models.RGB(*rgb), screen_settings=settings.screen
        )
        light_type = light_classification.light_type

    results = process_session(
        session,
        light_type=light_type,
        settings=settings,
        light_classification=light_classification,
        input_file=str(input),
    )

    if output is not None:
        try:
            results.save_results(output=output)
        except (
            exceptions.InvalidFileTypeError,
            PermissionError,
            FileExistsError,
        ) as exc_info:
            # Allowed to pass to recover in Jupyter Notebook scenarios.
            logger.error(
                "Could not save output due to: %s. Call save_results "
                "on the output object with a correct filename to save these "
                "results.",
                exc_info,
            )
    logger.info("Processing for %s completed successfully.", input.stem)
    return results


def process_session(
    session: models.Session,
    light_type: Optional[models.LightType] = None,
    settings: Optional[config.Settings] = None,
    light_classification: Optional[models.ClassificationResult] = None,
    input_file: Optional[str] = None,
) -> writers.ProcessingResults:
    """Run the full processing pipeline over a recorded session.

    The raw illuminance is conditioned, rejected readings are dropped, rest
    episodes are detected on the conditioned illuminance, and the screen
    contribution is added before samples inside rest episodes are attenuated.
    The effective illuminance is converted to melanopic illuminance and
    circadian stimulus, which is integrated into a dose, a predicted suppression
    and a net phase shift. The reported illuminance is the light at the eye
    before attenuation.

    Args:
        session: The recorded session.
        light_type: The light type of the session, None for the default
            melanopic ratio.
        settings: The processing settings, defaults are used if None.
        light_classification: The classification that produced the light type.
        input_file: The file the session was read from, recorded in the
            processing parameters.

    Returns:
        The processing results.

    Raises:
        EmptySessionError: If the session holds no samples or no valid readings.
    """
    settings = settings or config.Settings()
    if not session.samples:
        raise exceptions.EmptySessionError(f"Session {session.id} has no samples.")

    logger.debug("Processing session %s (%s samples)", session.id, len(session.samples))
    samples = session.to_data_frame()

    conditioner = conditioning.SignalConditioner(settings.conditioner)
    conditioner.reset()
    cleaned, valid = conditioner.condition_many(samples["lux"].to_list())
    if not valid.any():
        raise exceptions.EmptySessionError(
            f"Session {session.id} has no valid illuminance readings."
        )
    if not valid.all():
        logger.warning("Dropped %s invalid readings.", int((~valid).sum()))

    samples = samples.filter(pl.Series(valid))
    time = samples["time"]
    lux = models.Measurement(measurements=cleaned[valid], time=time)

    motion = None
    if samples["motion"].null_count() < len(samples):
        motion = models.Measurement(
            measurements=samples["motion"].fill_null(np.nan).to_numpy(), time=time
        )

    sleep_episodes = analytics.RestEpisodeDetector(
        lux, motion, settings.sleep
    ).run_sleep_detection()
    sleep_status = analytics.sleep_episodes_as_measurement(time, sleep_episodes)

    at_eye = metrics.light_at_eye(
        lux,
        screen_on=samples["screen_on"].to_numpy(),
        screen_brightness=samples["screen_brightness"].fill_null(np.nan).to_numpy(),
        pitch=samples["pitch"].fill_null(np.nan).to_numpy(),
        screen_settings=settings.screen,
    )
    effective_lux = metrics.attenuate_sleep(
        at_eye, sleep_status, settings.model.sleep_attenuation
    )

    ratio = metrics.melanopic_ratio(light_type, settings.model)
    melanopic = metrics.melanopic_illuminance(effective_lux, ratio)
    stimulus = metrics.CircadianStimulusModel.from_settings(settings.model).apply(
        melanopic
    )

    delta_t = computations.estimate_delta_t(time)
    dose = dosimetry.incremental_dose(stimulus, delta_t)
    total_dose = dosimetry.total_dose(dose)
    suppression = dosimetry.SuppressionModel.from_settings(settings.model).calculate(
        total_dose
    )
    phase_shift = phase_response.cumulative_phase_shift(
        time, dose.measurements, settings.model
    )

    stimulus_summary = computations.summary_statistics(stimulus)
    melanopic_summary = computations.summary_statistics(melanopic)

    metadata = dict(session.meta or {})
    if sleep_episodes:
        metadata["sleep_episode_count"] = len(sleep_episodes)
        metadata["sleep_minutes"] = analytics.total_sleep_minutes(sleep_episodes)

    parameters_dictionary = {
        "light_type": light_type.value if light_type is not None else None,
        "melanopic_ratio": ratio,
        "delta_t_hours": delta_t,
        "input_file": input_file,
        "settings": settings.model_dump(mode="json"),
    }

    logger.debug(
        "Session %s: dose %.4f, suppression %.4f, phase shift %.4f h",
        session.id,
        total_dose,
        suppression,
        phase_shift,
    )
    return writers.ProcessingResults(
        session_id=session.id,
        lux=at_eye,
        melanopic=melanopic,
        stimulus=stimulus,
        dose=dose,
        total_dose=total_dose,
        suppression=suppression,
        phase_shift=phase_shift,
        mean_stimulus=stimulus_summary["mean"],
        peak_stimulus=stimulus_summary["peak"],
        mean_melanopic=melanopic_summary["mean"],
        light_type=light_type,
        classification=light_classification,
        started_at=session.start,
        stopped_at=session.stop,
        duration_hours=session.duration_hours,
        sleep_episodes=sleep_episodes,
        metadata=metadata,
        processing_params=parameters_dictionary,
    )


def classify_light(
    session: models.Session,
    rgb: Optional[models.RGB] = None,
    screen_settings: Optional[config.ScreenSettings] = None,
    prefer_color: bool = True,
) -> models.ClassificationResult:
    """Classify the light source at the end of a session.

    The context is taken from the last sample with a finite illuminance. The color
    sample is preferred when given and conclusive, the heuristic decides otherwise.

    Args:
        session: The recorded session.
        rgb: A gamma encoded sRGB sample of the light source.
        screen_settings: Screen photometry used by the heuristic.
        prefer_color: If False, the color sample is ignored.

    Returns:
        The classification.

    Raises:
        EmptySessionError: If the session holds no valid readings.
    """
    valid_samples = [
        sample for sample in session.samples if np.isfinite(sample.ambient_lux)
    ]
    if not valid_samples:
        raise exceptions.EmptySessionError(
            f"Session {session.id} has no valid illuminance readings."
        )
    last = valid_samples[-1]
    context = classification.ClassificationContext(
        time=last.timestamp,
        current_lux=last.ambient_lux,
        screen_brightness=last.screen_brightness,
        screen_on=last.screen_on,
        recent_samples=tuple(valid_samples[-RECENT_SAMPLE_COUNT:]),
    )

    preferred: Sequence[classification.AbstractLightClassifier] = (
        [classification.ColorSampleClassifier.from_rgb(rgb)] if rgb is not None else []
    )
    arbiter = classification.ClassificationArbiter(
        preferred=preferred,
        fallback=classification.HeuristicClassifier(screen_settings=screen_settings),
    )
    result = arbiter.classify(context, prefer_color=prefer_color)
    logger.info(
        "Light source: %s (%s, confidence %.2f)",
        result.light_type.display_name,
        result.method,
        result.confidence,
    )
    return result
