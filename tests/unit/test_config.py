"""Test config.py."""

import json
import logging
import pathlib

import pydantic
import pytest

from circapy.core import config


def test_get_logger(caplog: pytest.LogCaptureFixture) -> None:
    """Test the circapy logger with level set to default 20 (info)."""
    if logging.getLogger("circapy").handlers:
        logging.getLogger("circapy").handlers.clear()
    logger = config.get_logger()

    logger.debug("Debug message here.")
    logger.info("Info message here.")
    logger.warning("Warning message here.")

    assert logger.getEffectiveLevel() == 20
    assert "Debug message here" not in caplog.text
    assert "Info message here." in caplog.text
    assert "Warning message here." in caplog.text


def test_get_logger_second_call() -> None:
    """Test get logger when a handler already exists."""
    logger = config.get_logger()
    second_logger = config.get_logger()

    assert len(logger.handlers) == len(second_logger.handlers) == 1
    assert logger.handlers[0] is second_logger.handlers[0]
    assert logger is second_logger


def test_default_settings() -> None:
    """Test the documented default values."""
    settings = config.Settings()

    assert settings.model.suppression_k == 0.25
    assert settings.model.stimulus_steepness == 0.005
    assert settings.model.stimulus_max == 0.7
    assert settings.model.prc_morning_scale == 1.0
    assert settings.model.prc_evening_scale == 0.9
    assert settings.model.melanopic_ratios["neutral_led_4000k"] == 0.60
    assert settings.sleep.min_duration_minutes == 20
    assert settings.screen.brightness_to_lux[0.5] == 120.0
    assert settings.conditioner.outlier_blend == 0.3


def test_settings_are_frozen() -> None:
    """Test that settings cannot be mutated after construction."""
    settings = config.ModelSettings()

    with pytest.raises(pydantic.ValidationError):
        settings.suppression_k = 1.0  # type: ignore[misc]


def test_conditioner_invalid_range() -> None:
    """Test that an empty validity range is rejected."""
    with pytest.raises(pydantic.ValidationError, match="min_lux must be smaller"):
        config.ConditionerSettings(min_lux=10, max_lux=5)


def test_screen_table_sorted() -> None:
    """Test that the brightness table is sorted by brightness."""
    settings = config.ScreenSettings(brightness_to_lux={1.0: 200.0, 0.0: 0.0})

    assert list(settings.brightness_to_lux) == [0.0, 1.0]


@pytest.mark.parametrize("table", [{}, {0.0: -1.0}])
def test_screen_table_invalid(table: dict) -> None:
    """Test that empty tables and negative lux are rejected."""
    with pytest.raises(pydantic.ValidationError):
        config.ScreenSettings(brightness_to_lux=table)


def test_invalid_melanopic_ratio() -> None:
    """Test that ratios outside (0, 1] are rejected."""
    with pytest.raises(pydantic.ValidationError, match="Melanopic ratio"):
        config.ModelSettings(melanopic_ratios={"warm_led_2700k": 1.5})


def test_settings_from_json_file(tmp_path: pathlib.Path) -> None:
    """Test loading a partial settings file."""
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"model": {"suppression_k": 0.5}}))

    settings = config.Settings.from_json_file(path)

    assert settings.model.suppression_k == 0.5
    assert settings.model.stimulus_max == 0.7
    assert settings.sleep == config.SleepSettings()


def test_settings_json_round_trip(tmp_path: pathlib.Path) -> None:
    """Test that dumped settings load back unchanged."""
    settings = config.Settings(screen=config.ScreenSettings(viewing_distance_cm=50))
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(settings.model_dump(mode="json")))

    assert config.Settings.from_json_file(path) == settings
