"""
Centralised configuration for the Excel reader and writer.

Tunable values and format limits live here so that the rest of the
Excel code stays free of hard-coded numbers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple


# ---------------------------------------------------------------------------
# Environment helpers
# ---------------------------------------------------------------------------

def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)).strip())
    except Exception:
        return default


# ---------------------------------------------------------------------------
# Format limits (Office Open XML)
# ---------------------------------------------------------------------------

EXCEL_MAX_ROWS = 1_048_576
EXCEL_MAX_COLUMNS = 16_384

XLS_SUFFIX = ".xls"
LOCK_FILE_PREFIX = "~$"


# ---------------------------------------------------------------------------
# ReaderConfig
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReaderConfig:
    """Immutable bag of reader settings."""

    supported_suffixes: Tuple[str, ...] = (".xlsx", ".xlsm", ".xls")

    # Interior blank header cells become f"{blank_header_prefix}{position}"
    blank_header_prefix: str = "Column"

    # Rows per chunk when the caller does not pass one
    default_chunk_size: int = _env_int("EXCEL_READER_CHUNK_SIZE", 1000)

    def is_supported(self, file_name: str) -> bool:
        name = os.path.basename(file_name)
        if name.startswith(LOCK_FILE_PREFIX):
            return False
        return os.path.splitext(name)[1].lower() in self.supported_suffixes


# Singleton default config
DEFAULT_READER_CONFIG = ReaderConfig()
