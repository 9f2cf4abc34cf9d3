"""CLI for circapy."""

import logging
import pathlib
from enum import Enum
from typing import Optional, Tuple

import typer

from circapy.core import config, exceptions, models

logger = config.get_logger()
app = typer.Typer(
    help="Run the circapy circadian light pipeline.",
)


class OutputFileType(str, Enum):
    """Valid output file types for saving data."""

    csv = ".csv"
    parquet = ".parquet"


class LightTypeChoice(str, Enum):
    """Light types accepted on the command line.

    The values are the member names of `models.LightType`.
    """

    warm = "warm"
    neutral = "neutral"
    cool = "cool"
    daylight = "daylight"
    screen = "screen"
    incandescent = "incandescent"

    def to_light_type(self) -> models.LightType:
        """The corresponding light type."""
        return models.LightType[self.value]


def version_check(version: bool) -> None:
    """Print the current version of circapy and exit."""
    if version:
        typer.echo(f"circapy version: {config.get_version()}")
        raise typer.Exit()


def _parse_rgb(
    rgb: Optional[Tuple[float, float, float]],
) -> Optional[Tuple[float, float, float]]:
    """Validate the color sample given on the command line.

    Args:
        rgb: The three channels, or None when no sample was given.

    Returns:
        The channels, or None.

    Raises:
        typer.BadParameter: If a channel is outside [0, 1].
    """
    if not rgb or any(channel is None for channel in rgb):
        return None
    if not models.RGB(*rgb).is_valid:
        raise typer.BadParameter(f"RGB channels must be within [0, 1], got {rgb}")
    return (rgb[0], rgb[1], rgb[2])


@app.command()
def main(
    input: pathlib.Path = typer.Argument(
        ..., help="Path to the input data.", exists=True
    ),
    output: pathlib.Path = typer.Option(
        None,
        "-o",
        "--output",
        help="Path where data will be saved. Supports .csv and .parquet formats.",
    ),
    output_filetype: OutputFileType = typer.Option(
        ".csv",
        "-O",
        "--output-filetype",
        help="Format for save files when processing directories. ",
    ),
    light_type: Optional[LightTypeChoice] = typer.Option(
        None,
        "-l",
        "--light-type",
        help="Light source of the session(s). "
        "Choose from 'warm', 'neutral', 'cool', 'daylight', 'screen' or "
        "'incandescent'. Without a light type or color sample the default "
        "melanopic ratio is used.",
        case_sensitive=False,
    ),
    rgb: Optional[Tuple[float, float, float]] = typer.Option(
        None,
        "--rgb",
        help="sRGB color sample of the light source as three values in [0, 1], "
        "e.g. '--rgb 1.0 0.8 0.6'. Used to classify the light source when no "
        "light type is given.",
    ),
    settings_file: Optional[pathlib.Path] = typer.Option(
        None,
        "-s",
        "--settings",
        help="JSON file overriding the default processing settings.",
        exists=True,
        dir_okay=False,
    ),
    verbosity: bool = typer.Option(
        False,
        "-v",
        "--verbosity",
        help="Determines the level of verbosity. Use -v for DEBUG. "
        "Defaults to INFO if not included.",
    ),
    version: bool = typer.Option(
        False,
        "-V",
        "--version",
        help="Print the current version of circapy and exit.",
        is_eager=True,
        callback=version_check,
    ),
) -> None:
    """Run circapy orchestrator with command line arguments."""
    from circapy.core import orchestrator

    log_level = logging.INFO
    if verbosity:
        log_level = logging.DEBUG
    logger.setLevel(log_level)

    settings = (
        config.Settings.from_json_file(settings_file) if settings_file else None
    )

    logger.debug("Running circapy. arguments given: %s", locals())
    try:
        orchestrator.run(
            input=input,
            output=output,
            light_type=light_type.to_light_type() if light_type else None,
            rgb=_parse_rgb(rgb),
            settings=settings,
            verbosity=log_level,
            output_filetype=output_filetype.value,
        )
    except (exceptions.EmptyDirectoryError, exceptions.EmptySessionError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
