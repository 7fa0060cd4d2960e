"""
Configuration module
====================

Loads merge settings from environment variables and an optional ``.env``
file: chunk sizes, worker pool size, default strategy and output options.
"""

import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings

from sheetmerge.models import MergeStrategy

load_dotenv()


class Settings(BaseSettings):
    """
    Application settings, populated from the environment by Pydantic.

    Attributes:
        MERGE_CHUNK_SIZE: rows per streamed chunk (streaming and direct strategies)
        MERGE_KEY_BATCH_SIZE: keys emitted between two cancellation checks
        MERGE_MAX_WORKERS: thread pool size for per-file reads; None lets the executor decide
        MERGE_DEFAULT_STRATEGY: strategy used when the caller does not pick one
        OUTPUT_SHEET_NAME: worksheet name of the merged workbook
        OUTPUT_MAX_COLUMN_WIDTH: upper bound for auto-sized output columns
        LOG_LEVEL: level applied by the CLI to the project logger
    """
    MERGE_CHUNK_SIZE: int = 1000
    MERGE_KEY_BATCH_SIZE: int = 100
    MERGE_MAX_WORKERS: Optional[int] = None
    MERGE_DEFAULT_STRATEGY: MergeStrategy = MergeStrategy.DIRECT
    OUTPUT_SHEET_NAME: str = "Merged"
    OUTPUT_MAX_COLUMN_WIDTH: int = 60
    LOG_LEVEL: str = "INFO"

    @field_validator("MERGE_CHUNK_SIZE", "MERGE_KEY_BATCH_SIZE", "OUTPUT_MAX_COLUMN_WIDTH")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"must be greater than 0, got {v}")
        return v

    @field_validator("MERGE_MAX_WORKERS")
    @classmethod
    def validate_workers(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError(f"MERGE_MAX_WORKERS must be greater than 0, got {v}")
        return v

    @field_validator("OUTPUT_SHEET_NAME")
    @classmethod
    def validate_sheet_name(cls, v: str) -> str:
        if v is None or v.strip() == "":
            raise ValueError("OUTPUT_SHEET_NAME must not be empty.")
        return v.strip()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        name = (v or "").strip().upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return name

    class Config:
        env_file = ".env"
        case_sensitive = False


# Module-level singleton
_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Return the settings singleton, creating it on first use.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings_instance
    _settings_instance = None
