import logging

import pytest
from pydantic import ValidationError

from sheetmerge.config import Settings, get_settings, reset_settings
from sheetmerge.logger import ROOT_LOGGER_NAME, get_logger, set_level
from sheetmerge.models import MergeStrategy


def test_defaults() -> None:
    settings = get_settings()
    assert settings.MERGE_CHUNK_SIZE == 1000
    assert settings.MERGE_KEY_BATCH_SIZE == 100
    assert settings.MERGE_MAX_WORKERS is None
    assert settings.MERGE_DEFAULT_STRATEGY is MergeStrategy.DIRECT
    assert settings.OUTPUT_SHEET_NAME == "Merged"
    assert settings.LOG_LEVEL == "INFO"


def test_get_settings_is_a_singleton() -> None:
    assert get_settings() is get_settings()
    first = get_settings()
    reset_settings()
    assert get_settings() is not first


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("MERGE_CHUNK_SIZE", "250")
    monkeypatch.setenv("merge_default_strategy", "batch")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    reset_settings()

    settings = get_settings()
    assert settings.MERGE_CHUNK_SIZE == 250
    assert settings.MERGE_DEFAULT_STRATEGY is MergeStrategy.BATCH
    assert settings.LOG_LEVEL == "DEBUG"


@pytest.mark.parametrize("field, value", [
    ("MERGE_CHUNK_SIZE", 0),
    ("MERGE_KEY_BATCH_SIZE", -1),
    ("MERGE_MAX_WORKERS", 0),
    ("OUTPUT_SHEET_NAME", "  "),
    ("LOG_LEVEL", "LOUD"),
    ("MERGE_DEFAULT_STRATEGY", "parallel"),
])
def test_invalid_values_rejected(field, value) -> None:
    with pytest.raises(ValidationError):
        Settings(**{field: value})


def test_set_level_accepts_names() -> None:
    set_level("DEBUG")
    try:
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG
        assert get_logger("sheetmerge.merge.engine").getEffectiveLevel() == logging.DEBUG
    finally:
        set_level(logging.INFO)


def test_set_level_rejects_unknown_names() -> None:
    with pytest.raises(ValueError):
        set_level("CHATTY")


def test_root_logger_has_single_handler() -> None:
    get_logger("sheetmerge.a")
    get_logger("sheetmerge.b")
    assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1
