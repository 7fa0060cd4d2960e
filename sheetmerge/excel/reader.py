"""
ExcelReader: workbook I/O behind the BaseSheetReader contract.

Encapsulates:
- openpyxl vs xlrd engine selection by file suffix
- header-only sheet listing (read-only mode, no data rows loaded)
- one raw row source shared by full loads, header listing and
  chunked, cancellable streaming (error cells read as empty)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from openpyxl import load_workbook
from openpyxl.cell.cell import TYPE_ERROR

from sheetmerge.base import BaseSheetReader
from sheetmerge.cancellation import CancellationToken, check_cancelled
from sheetmerge.excel.config import DEFAULT_READER_CONFIG, XLS_SUFFIX, ReaderConfig
from sheetmerge.excel.data_cleaner import DataCleaner
from sheetmerge.logger import get_logger
from sheetmerge.models import Row, SheetHeaders, TabularSheet

logger = get_logger(__name__)


class ExcelReader(BaseSheetReader):
    """
    Read ``.xlsx``/``.xlsm`` files with openpyxl and ``.xls`` files with xlrd.

    The header row of a sheet is its first non-empty row; every later
    non-empty row is a data row.
    """

    def __init__(self, cfg: ReaderConfig = DEFAULT_READER_CONFIG):
        self._cfg = cfg

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list_sheet_names(self, file_path: str) -> Tuple[List[str], str]:
        """Return ``(sheet_names, backend_label)``."""
        if self._is_xls(file_path):
            import xlrd
            wb = xlrd.open_workbook(file_path, on_demand=True)
            try:
                return wb.sheet_names(), "xlrd"
            finally:
                wb.release_resources()
        wb = load_workbook(file_path, read_only=True, data_only=True)
        try:
            return list(wb.sheetnames or []), "openpyxl"
        finally:
            wb.close()

    def list_sheet_headers(self, file_path: str) -> List[SheetHeaders]:
        file_name = Path(file_path).name
        result: List[SheetHeaders] = []
        for sheet_name, rows in self._iter_sheets(file_path):
            headers: List[str] = []
            for cells in rows:
                if DataCleaner.is_row_empty(cells):
                    continue
                headers = DataCleaner.build_headers(cells, self._cfg)
                break
            if headers:
                result.append(SheetHeaders(file_name=file_name, sheet_name=sheet_name, headers=headers))
            else:
                logger.debug("Sheet without header row skipped: %s:%s", file_name, sheet_name)
        logger.debug("list_sheet_headers: %s -> %d sheet(s)", file_name, len(result))
        return result

    def read_sheet(self, file_path: str, sheet_name: str) -> TabularSheet:
        resolved = self._resolve_sheet_name(file_path, sheet_name)
        backend = "xlrd" if self._is_xls(file_path) else "openpyxl"
        file_name = Path(file_path).name

        headers: List[str] = []
        rows: List[Row] = []
        source = self._iter_sheet_rows(file_path, resolved)
        try:
            for cells in source:
                if DataCleaner.is_row_empty(cells):
                    continue
                if not headers:
                    headers = DataCleaner.build_headers(cells, self._cfg)
                    if not headers:
                        break
                    continue
                rows.append(DataCleaner.row_to_dict(cells, headers))
        finally:
            source.close()

        logger.debug(
            "read_sheet: %s:%s backend=%s headers=%d rows=%d",
            file_name, resolved, backend, len(headers), len(rows),
        )
        return TabularSheet(file_name=file_name, sheet_name=resolved, headers=headers, rows=rows)

    def iter_row_chunks(
        self,
        file_path: str,
        sheet_name: str,
        headers: Sequence[str],
        chunk_size: int = 0,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Iterator[List[Row]]:
        size = chunk_size if chunk_size and chunk_size > 0 else self._cfg.default_chunk_size
        resolved = self._resolve_sheet_name(file_path, sheet_name)
        header_list = list(headers)

        chunk: List[Row] = []
        header_skipped = False
        source = self._iter_sheet_rows(file_path, resolved)
        try:
            for cells in source:
                check_cancelled(cancel_token)
                if DataCleaner.is_row_empty(cells):
                    continue
                if not header_skipped:
                    header_skipped = True
                    continue
                chunk.append(DataCleaner.row_to_dict(cells, header_list))
                if len(chunk) >= size:
                    yield chunk
                    chunk = []
        finally:
            source.close()
        if chunk:
            yield chunk

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _is_xls(file_path: str) -> bool:
        return Path(file_path).suffix.lower() == XLS_SUFFIX

    def _resolve_sheet_name(self, file_path: str, sheet_name: str) -> str:
        """Exact match first, then case-insensitive; KeyError when absent."""
        names, _ = self.list_sheet_names(file_path)
        if sheet_name in names:
            return sheet_name
        lowered = sheet_name.lower()
        for name in names:
            if name.lower() == lowered:
                return name
        raise KeyError(f"Sheet '{sheet_name}' not found in {Path(file_path).name}")

    def _iter_sheets(self, file_path: str) -> Iterator[Tuple[str, Iterator[Sequence[Any]]]]:
        """Yield ``(sheet_name, row_iterator)`` for every worksheet."""
        if self._is_xls(file_path):
            import xlrd
            wb = xlrd.open_workbook(file_path, on_demand=True)
            try:
                for name in wb.sheet_names():
                    yield name, self._xls_rows(wb, wb.sheet_by_name(name))
            finally:
                wb.release_resources()
            return
        wb = load_workbook(file_path, read_only=True, data_only=True)
        try:
            for ws in wb.worksheets:
                yield ws.title, self._xlsx_rows(ws)
        finally:
            wb.close()

    def _iter_sheet_rows(self, file_path: str, sheet_name: str) -> Iterator[Sequence[Any]]:
        if self._is_xls(file_path):
            import xlrd
            wb = xlrd.open_workbook(file_path, on_demand=True)
            try:
                yield from self._xls_rows(wb, wb.sheet_by_name(sheet_name))
            finally:
                wb.release_resources()
            return
        wb = load_workbook(file_path, read_only=True, data_only=True)
        try:
            yield from self._xlsx_rows(wb[sheet_name])
        finally:
            wb.close()

    @staticmethod
    def _xlsx_rows(ws: Any) -> Iterator[List[Any]]:
        """Row values of an openpyxl sheet; error cells (``#N/A``, ``#DIV/0!``) read as empty."""
        for row in ws.iter_rows():
            yield [None if cell.data_type == TYPE_ERROR else cell.value for cell in row]

    @staticmethod
    def _xls_rows(wb: Any, sheet: Any) -> Iterator[List[Any]]:
        """
        Row values of an xlrd sheet, typed like the openpyxl rows: dates
        become datetime, booleans bool, and error cells empty.
        """
        import xlrd
        for ri in range(sheet.nrows):
            values: List[Any] = []
            for cell in sheet.row(ri):
                if cell.ctype == xlrd.XL_CELL_DATE:
                    try:
                        values.append(xlrd.xldate_as_datetime(cell.value, wb.datemode))
                        continue
                    except xlrd.xldate.XLDateError:
                        pass
                if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
                    values.append(None)
                elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
                    values.append(bool(cell.value))
                else:
                    values.append(cell.value)
            yield values
