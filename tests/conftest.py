"""
Pytest configuration and shared fixtures.
"""
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

import pytest
from openpyxl import Workbook

# Add project root to path for imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from sheetmerge.base import BaseSheetReader
from sheetmerge.cancellation import CancellationToken, check_cancelled
from sheetmerge.config import reset_settings
from sheetmerge.models import Row, SheetHeaders, TabularSheet

# {file_path: {sheet_name: [header_row, data_row, ...]}}
Books = Dict[str, Dict[str, List[List[Any]]]]


class FakeReader(BaseSheetReader):
    """
    In-memory reader over plain lists.

    The first row of each sheet is its header row; a sheet whose first
    row is empty (or that has no rows) is not listed. Files in *failing*
    raise OSError on every access.
    """

    def __init__(
        self,
        books: Books,
        failing: Iterable[str] = (),
        on_row: Optional[Callable[[str, int], None]] = None,
    ):
        self.books = {str(k): v for k, v in books.items()}
        self.failing = {str(f) for f in failing}
        self.on_row = on_row
        self.calls: List[tuple] = []

    def _book(self, file_path: str) -> Dict[str, List[List[Any]]]:
        file_path = str(file_path)
        if file_path in self.failing:
            raise OSError(f"cannot open {Path(file_path).name}")
        if file_path not in self.books:
            raise FileNotFoundError(file_path)
        return self.books[file_path]

    def _sheet(self, file_path: str, sheet_name: str):
        book = self._book(file_path)
        if sheet_name in book:
            return sheet_name, book[sheet_name]
        for name, rows in book.items():
            if name.lower() == sheet_name.lower():
                return name, rows
        raise KeyError(f"Sheet '{sheet_name}' not found in {Path(file_path).name}")

    @staticmethod
    def _row(cells: Sequence[Any], headers: Sequence[str]) -> Row:
        return {h: (None if v is None else str(v)) for h, v in zip(headers, cells)}

    def list_sheet_headers(self, file_path: str) -> List[SheetHeaders]:
        self.calls.append(("list_sheet_headers", str(file_path)))
        result = []
        for name, rows in self._book(file_path).items():
            if rows and rows[0]:
                result.append(SheetHeaders(
                    file_name=Path(file_path).name,
                    sheet_name=name,
                    headers=[str(h) for h in rows[0]],
                ))
        return result

    def read_sheet(self, file_path: str, sheet_name: str) -> TabularSheet:
        self.calls.append(("read_sheet", str(file_path), sheet_name))
        name, rows = self._sheet(file_path, sheet_name)
        headers = [str(h) for h in rows[0]] if rows else []
        return TabularSheet(
            file_name=Path(file_path).name,
            sheet_name=name,
            headers=headers,
            rows=[self._row(r, headers) for r in rows[1:]],
        )

    def iter_row_chunks(
        self,
        file_path: str,
        sheet_name: str,
        headers: Sequence[str],
        chunk_size: int = 1000,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Iterator[List[Row]]:
        self.calls.append(("iter_row_chunks", str(file_path), sheet_name))
        name, rows = self._sheet(file_path, sheet_name)
        chunk: List[Row] = []
        for n, cells in enumerate(rows[1:], start=1):
            if self.on_row is not None:
                self.on_row(name, n)
            check_cancelled(cancel_token)
            chunk.append(self._row(cells, headers))
            if len(chunk) >= chunk_size:
                yield chunk
                chunk = []
        if chunk:
            yield chunk

    def count_calls(self, method: str) -> int:
        return sum(1 for c in self.calls if c[0] == method)


def write_workbook(path: Path, sheets: Dict[str, List[List[Any]]]) -> Path:
    """Save an .xlsx with one worksheet per entry of *sheets*, in order."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(name)
        for row in rows:
            ws.append(list(row))
    wb.save(path)
    return path


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Every test starts from default settings."""
    for name in (
        "MERGE_CHUNK_SIZE",
        "MERGE_KEY_BATCH_SIZE",
        "MERGE_MAX_WORKERS",
        "MERGE_DEFAULT_STRATEGY",
        "OUTPUT_SHEET_NAME",
        "OUTPUT_MAX_COLUMN_WIDTH",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def scenario_books() -> Books:
    """a.xlsx/SheetA and b.xlsx/SheetB sharing the ID column."""
    return {
        "a.xlsx": {
            "SheetA": [["ID", "Name"], [1, "Ann"], [2, "Bob"]],
        },
        "b.xlsx": {
            "SheetB": [["ID", "City"], [1, "NYC"], [1, "LA"], [3, "SF"]],
        },
    }


@pytest.fixture
def scenario_reader(scenario_books) -> FakeReader:
    return FakeReader(scenario_books)


@pytest.fixture
def scenario_files(tmp_path, scenario_books) -> List[str]:
    """The same scenario saved as real workbooks under tmp_path."""
    paths = []
    for file_name, sheets in scenario_books.items():
        paths.append(str(write_workbook(tmp_path / file_name, sheets)))
    return paths


@pytest.fixture
def workbook_factory(tmp_path) -> Callable[[str, Dict[str, List[List[Any]]]], str]:
    def _make(file_name: str, sheets: Dict[str, List[List[Any]]]) -> str:
        return str(write_workbook(tmp_path / file_name, sheets))
    return _make
