"""
In-memory cell sink.

Collects direct-strategy writes into a grid and turns them into a
MergedTable. Used when a direct merge is asked for a table rather than
a file, and in tests to check that every cell is written exactly once.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from sheetmerge.base import BaseCellSink
from sheetmerge.models import MergedTable

_UNWRITTEN = object()


class InMemoryCellSink(BaseCellSink):
    location = "memory://merged"

    def __init__(self) -> None:
        self.headers: List[str] = []
        self._grid: Optional[List[list]] = None
        self.finalized = False

    def begin(self, headers: Sequence[str], total_rows: int) -> None:
        self.headers = list(headers)
        self._grid = [[_UNWRITTEN] * len(self.headers) for _ in range(total_rows)]

    def write_cell(self, row: int, column: int, value: Optional[str]) -> None:
        if self._grid is None:
            raise RuntimeError("begin() must be called before writing cells")
        if not (0 <= row < len(self._grid)) or not (0 <= column < len(self.headers)):
            raise IndexError(f"Cell ({row}, {column}) is outside the output area")
        self._grid[row][column] = value

    def finalize(self) -> str:
        if self._grid is None:
            raise RuntimeError("begin() must be called before finalize()")
        self.finalized = True
        return self.location

    def unwritten_cells(self) -> List[tuple]:
        """(row, column) of every cell no write reached."""
        return [
            (r, c)
            for r, values in enumerate(self._grid or [])
            for c, value in enumerate(values)
            if value is _UNWRITTEN
        ]

    def to_table(self) -> MergedTable:
        missing = self.unwritten_cells()
        if missing:
            raise RuntimeError(f"{len(missing)} cell(s) were never written, first at {missing[0]}")
        rows = [dict(zip(self.headers, values)) for values in (self._grid or [])]
        return MergedTable(headers=list(self.headers), rows=rows)
