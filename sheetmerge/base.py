"""
Reader / writer / sink contracts
================================

The merge engine never parses or serializes a file format itself. It
talks to these abstract collaborators:

- BaseSheetReader: header listing, full sheet loads, chunked row streams
- BaseTableWriter: persist a fully materialized MergedTable
- BaseCellSink:    cell-address writes plus a finalize step (direct strategy)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Sequence

from sheetmerge.cancellation import CancellationToken
from sheetmerge.models import MergedTable, Row, SheetHeaders, TabularSheet


class BaseSheetReader(ABC):
    """
    Read-side capability set.

    Row iterators returned by :meth:`iter_row_chunks` are forward-only,
    finite and cannot be restarted; call the method again to re-read a
    sheet. Implementations must poll *cancel_token* at every row.
    """

    @abstractmethod
    def list_sheet_headers(self, file_path: str) -> List[SheetHeaders]:
        """
        Return the header row of every sheet that has one, workbook order.

        Must not load data rows.
        """

    @abstractmethod
    def read_sheet(self, file_path: str, sheet_name: str) -> TabularSheet:
        """Load one sheet fully (headers plus every non-empty row)."""

    @abstractmethod
    def iter_row_chunks(
        self,
        file_path: str,
        sheet_name: str,
        headers: Sequence[str],
        chunk_size: int = 1000,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Iterator[List[Row]]:
        """
        Stream the data rows of *sheet_name* in lists of at most *chunk_size*.

        Rows are keyed by the caller-supplied *headers*, positionally.
        """

    # -- conveniences built on the abstract methods -------------------------

    def read_headers(self, file_path: str) -> List[str]:
        """Headers of the first non-empty sheet, or an empty list."""
        for sheet in self.list_sheet_headers(file_path):
            if sheet.headers:
                return list(sheet.headers)
        return []

    def read_all_sheets(self, file_path: str) -> List[TabularSheet]:
        """Load every sheet that has a header row."""
        return [
            self.read_sheet(file_path, sheet.sheet_name)
            for sheet in self.list_sheet_headers(file_path)
        ]

    def iter_rows(
        self,
        file_path: str,
        sheet_name: str,
        headers: Sequence[str],
        chunk_size: int = 1000,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Iterator[Row]:
        """Flatten :meth:`iter_row_chunks` into single rows."""
        for chunk in self.iter_row_chunks(file_path, sheet_name, headers, chunk_size, cancel_token):
            yield from chunk


class BaseTableWriter(ABC):
    """Persist a MergedTable in one go (batch and streaming strategies)."""

    @abstractmethod
    def write_table(self, file_path: str, table: MergedTable) -> str:
        """Write *table* to *file_path* and return the final path."""


class BaseCellSink(ABC):
    """
    Random-access output used by the direct-to-sink strategy.

    Rows and columns are 0-based positions in the data area; row 0 is the
    first data row (the header row is written by :meth:`begin`). A sink
    does not default cells: every position must be written explicitly,
    ``None`` meaning an empty cell.
    """

    location: str = ""

    @abstractmethod
    def begin(self, headers: Sequence[str], total_rows: int) -> None:
        """Prepare the output and write the header row."""

    @abstractmethod
    def write_cell(self, row: int, column: int, value: Optional[str]) -> None:
        """Write one data cell."""

    @abstractmethod
    def finalize(self) -> str:
        """Persist the output and return its location."""

    def write_row_values(
        self,
        row: int,
        column_offset: int,
        values: Sequence[Optional[str]],
    ) -> None:
        """Write *values* left to right starting at *column_offset*."""
        for i, value in enumerate(values):
            self.write_cell(row, column_offset + i, value)
