"""
DataCleaner: cell and header conversion utilities for the Excel reader.

Responsibilities:
- Empty-cell and empty-row detection
- Cell -> optional text conversion (no type inference beyond formatting)
- Header row construction (trim, trailing-blank drop, placeholder names)
- Positional row -> dict mapping
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, List, Optional, Sequence

import pandas as pd

from sheetmerge.excel.config import DEFAULT_READER_CONFIG, ReaderConfig
from sheetmerge.models import Row


class DataCleaner:
    """Stateless helper that converts raw cell values to text."""

    # ----- emptiness -------------------------------------------------------

    @staticmethod
    def is_empty(value: Any) -> bool:
        if value is None:
            return True
        try:
            if pd.isna(value):
                return True
        except (TypeError, ValueError):
            pass
        return str(value).strip() == ""

    @staticmethod
    def is_row_empty(cells: Optional[Sequence[Any]]) -> bool:
        if not cells:
            return True
        return all(DataCleaner.is_empty(c) for c in cells)

    # ----- cell -> text ----------------------------------------------------

    @staticmethod
    def cell_to_str(value: Any) -> str:
        """Convert an arbitrary cell value to a string ("" for empty cells)."""
        if value is None:
            return ""
        try:
            if pd.isna(value):
                return ""
        except (TypeError, ValueError):
            pass
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, datetime):
            if value.hour == 0 and value.minute == 0 and value.second == 0 and value.microsecond == 0:
                return value.date().isoformat()
            return value.isoformat(sep=" ", timespec="seconds")
        if isinstance(value, (date, time)):
            return value.isoformat()
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        # Rich-text objects from openpyxl may expose .plain or .text
        plain_attr = getattr(value, "plain", None)
        if isinstance(plain_attr, str):
            return plain_attr
        text_attr = getattr(value, "text", None)
        if isinstance(text_attr, str):
            return text_attr
        return str(value)

    @staticmethod
    def to_cell_text(value: Any) -> Optional[str]:
        """Like :meth:`cell_to_str`, but empty cells become ``None``."""
        text = DataCleaner.cell_to_str(value)
        return text if text != "" else None

    # ----- headers and rows ------------------------------------------------

    @staticmethod
    def build_headers(
        cells: Sequence[Any],
        cfg: ReaderConfig = DEFAULT_READER_CONFIG,
    ) -> List[str]:
        """
        Turn a raw header row into header names.

        Cells are trimmed and trailing blanks dropped. An interior blank
        cell gets a positional placeholder (``Column3``) so that the data
        under it still has a name.
        """
        headers = [DataCleaner.cell_to_str(c).strip() for c in (cells or [])]
        while headers and headers[-1] == "":
            headers.pop()
        return [
            h if h else f"{cfg.blank_header_prefix}{idx + 1}"
            for idx, h in enumerate(headers)
        ]

    @staticmethod
    def row_to_dict(cells: Sequence[Any], headers: Sequence[str]) -> Row:
        """Map cells to *headers* by position; extra cells are ignored."""
        row: Row = {}
        for idx in range(min(len(headers), len(cells))):
            row[headers[idx]] = DataCleaner.to_cell_text(cells[idx])
        return row
