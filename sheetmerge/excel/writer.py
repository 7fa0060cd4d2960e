"""
Excel output
============

ExcelWriter   - persists a fully materialized MergedTable (batch / streaming)
ExcelCellSink - random-access cell sink for the direct-to-sink strategy

Both write every value as text so that cell contents such as ``=A1`` or
``00123`` are never reinterpreted by Excel.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Sequence

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE, Cell
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from sheetmerge.base import BaseCellSink, BaseTableWriter
from sheetmerge.config import get_settings
from sheetmerge.excel.config import EXCEL_MAX_COLUMNS, EXCEL_MAX_ROWS
from sheetmerge.logger import get_logger
from sheetmerge.models import MergedTable

logger = get_logger(__name__)

# Header row occupies worksheet row 1
HEADER_ROW = 1
MIN_COLUMN_WIDTH = 8


def _set_text(cell: Cell, value: Optional[str]) -> None:
    if value is None:
        cell.value = None
        return
    # Control characters are rejected by openpyxl
    cell.value = ILLEGAL_CHARACTERS_RE.sub("", value)
    cell.data_type = "s"


def _check_dimensions(rows: int, columns: int) -> None:
    if rows + HEADER_ROW > EXCEL_MAX_ROWS:
        raise ValueError(
            f"Merged output has {rows} data rows; an Excel sheet holds at most {EXCEL_MAX_ROWS - HEADER_ROW}."
        )
    if columns > EXCEL_MAX_COLUMNS:
        raise ValueError(
            f"Merged output has {columns} columns; an Excel sheet holds at most {EXCEL_MAX_COLUMNS}."
        )


def _prepare_path(file_path: str) -> Path:
    if file_path is None or str(file_path).strip() == "":
        raise ValueError("Output path must not be empty.")
    path = Path(file_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


class _WidthTracker:
    """Keeps the widest text seen per column for auto-sizing."""

    def __init__(self, max_width: int):
        self._max_width = max_width
        self._widths: Dict[int, int] = {}

    def observe(self, column: int, value: Optional[str]) -> None:
        if not value:
            return
        width = max(len(line) for line in str(value).splitlines() or [""])
        if width > self._widths.get(column, 0):
            self._widths[column] = width

    def apply(self, ws: Worksheet) -> None:
        for column, width in self._widths.items():
            letter = get_column_letter(column)
            ws.column_dimensions[letter].width = min(self._max_width, max(MIN_COLUMN_WIDTH, width + 2))


class ExcelWriter(BaseTableWriter):
    """Write a MergedTable to a single-sheet workbook."""

    def __init__(self, sheet_name: Optional[str] = None, max_column_width: Optional[int] = None):
        settings = get_settings()
        self._sheet_name = sheet_name or settings.OUTPUT_SHEET_NAME
        self._max_width = max_column_width or settings.OUTPUT_MAX_COLUMN_WIDTH

    def write_table(self, file_path: str, table: MergedTable) -> str:
        if table is None:
            raise ValueError("table must not be None")
        path = _prepare_path(file_path)
        _check_dimensions(table.row_count, table.column_count)

        wb = Workbook()
        ws = wb.active
        ws.title = self._sheet_name
        widths = _WidthTracker(self._max_width)

        for col_idx, header in enumerate(table.headers, start=1):
            _set_text(ws.cell(row=HEADER_ROW, column=col_idx), header)
            widths.observe(col_idx, header)

        for row_idx, row in enumerate(table.rows, start=HEADER_ROW + 1):
            for col_idx, header in enumerate(table.headers, start=1):
                value = row.get(header)
                _set_text(ws.cell(row=row_idx, column=col_idx), value)
                widths.observe(col_idx, value)

        widths.apply(ws)
        wb.save(str(path))
        logger.info(
            "Merged table written: %s (%d rows x %d columns)",
            path, table.row_count, table.column_count,
        )
        return str(path)


class ExcelCellSink(BaseCellSink):
    """
    Cell-addressable workbook sink.

    Keeps a regular (not write-only) openpyxl workbook so rows can be
    written out of order; nothing reaches disk until :meth:`finalize`.
    A cancelled merge that never finalizes leaves no file behind, but a
    sink reused after a failed finalize may hold a partial sheet.
    """

    def __init__(
        self,
        file_path: str,
        sheet_name: Optional[str] = None,
        max_column_width: Optional[int] = None,
    ):
        settings = get_settings()
        self.location = str(file_path)
        self._sheet_name = sheet_name or settings.OUTPUT_SHEET_NAME
        self._widths = _WidthTracker(max_column_width or settings.OUTPUT_MAX_COLUMN_WIDTH)
        self._wb: Optional[Workbook] = None
        self._ws: Optional[Worksheet] = None
        self._columns = 0
        self._rows = 0

    def begin(self, headers: Sequence[str], total_rows: int) -> None:
        _check_dimensions(total_rows, len(headers))
        self._wb = Workbook()
        self._ws = self._wb.active
        self._ws.title = self._sheet_name
        self._columns = len(headers)
        self._rows = total_rows
        for col_idx, header in enumerate(headers, start=1):
            _set_text(self._ws.cell(row=HEADER_ROW, column=col_idx), header)
            self._widths.observe(col_idx, header)

    def write_cell(self, row: int, column: int, value: Optional[str]) -> None:
        if self._ws is None:
            raise RuntimeError("ExcelCellSink.begin() must be called before writing cells.")
        if not (0 <= row < self._rows and 0 <= column < self._columns):
            raise IndexError(f"Cell ({row}, {column}) outside {self._rows}x{self._columns} output")
        _set_text(self._ws.cell(row=row + HEADER_ROW + 1, column=column + 1), value)
        self._widths.observe(column + 1, value)

    def finalize(self) -> str:
        if self._wb is None or self._ws is None:
            raise RuntimeError("ExcelCellSink.begin() must be called before finalize().")
        path = _prepare_path(self.location)
        self._widths.apply(self._ws)
        self._wb.save(str(path))
        self.location = str(path)
        logger.info("Direct merge output saved: %s (%d rows x %d columns)", path, self._rows, self._columns)
        return self.location
