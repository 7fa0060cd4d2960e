"""
KeyIndexBuilder: per-sheet key -> occurrence indices.

Each sheet gets a :class:`SheetKeyIndex` that maps a key to the ordered
rows sharing it (duplicates are kept, never collapsed). While rows are
added, the builder maintains the global max-occurrence count per key,
which decides how many output rows the key produces.

Rows whose key cell is missing, empty or whitespace are dropped from the
index and therefore from the output, other columns included.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

from sheetmerge.logger import get_logger
from sheetmerge.models import Row

logger = get_logger(__name__)


def extract_key(row: Row, key_header: str) -> Optional[str]:
    """Trimmed key value of *row*, or None when the key cell is blank."""
    value = row.get(key_header)
    if value is None:
        return None
    key = str(value).strip()
    return key or None


class SheetKeyIndex:
    """
    Key index of one sheet.

    With ``retain_rows=False`` only per-key counts are kept; the
    direct-to-sink counting pass uses that mode.
    """

    def __init__(
        self,
        label: str,
        key_header: str,
        retain_rows: bool = True,
        on_count: Optional[Callable[[str, int], None]] = None,
    ):
        self.label = label
        self.key_header = key_header
        self.retain_rows = retain_rows
        self.row_count = 0
        self.dropped_rows = 0
        self._counts: Dict[str, int] = {}
        self._rows: Dict[str, List[Row]] = {}
        self._on_count = on_count

    def add_row(self, row: Row) -> Optional[str]:
        """Index *row*; return its key, or None when it was dropped."""
        self.row_count += 1
        key = extract_key(row, self.key_header)
        if key is None:
            self.dropped_rows += 1
            return None
        count = self._counts.get(key, 0) + 1
        self._counts[key] = count
        if self.retain_rows:
            self._rows.setdefault(key, []).append(row)
        if self._on_count is not None:
            self._on_count(key, count)
        return key

    def add_rows(self, rows: Iterable[Row]) -> int:
        """Index every row of *rows*; return how many were kept."""
        kept = 0
        for row in rows:
            if self.add_row(row) is not None:
                kept += 1
        return kept

    @property
    def counts(self) -> Dict[str, int]:
        return dict(self._counts)

    def keys(self) -> List[str]:
        return list(self._counts.keys())

    def count(self, key: str) -> int:
        return self._counts.get(key, 0)

    def occurrences(self, key: str) -> List[Row]:
        if not self.retain_rows:
            raise RuntimeError(f"Index of {self.label} was built without row contents.")
        return self._rows.get(key, [])

    def occurrence(self, key: str, position: int) -> Optional[Row]:
        """The *position*-th row (0-based) with *key*, or None if absent."""
        rows = self.occurrences(key)
        if 0 <= position < len(rows):
            return rows[position]
        return None


class KeyIndexBuilder:
    """
    Builds sheet indices and the global max-occurrence map for one merge.

    Owned by a single merge invocation; not thread-safe and never shared.
    """

    def __init__(self, retain_rows: bool = True):
        self.retain_rows = retain_rows
        self.sheets: List[SheetKeyIndex] = []
        self._max_occurrence: Dict[str, int] = {}

    def start_sheet(self, label: str, key_header: str) -> SheetKeyIndex:
        index = SheetKeyIndex(label, key_header, self.retain_rows, on_count=self._observe)
        self.sheets.append(index)
        return index

    def index_sheet(self, label: str, key_header: str, rows: Iterable[Row]) -> SheetKeyIndex:
        """Index a fully available row sequence in one call."""
        index = self.start_sheet(label, key_header)
        index.add_rows(rows)
        self.log_sheet(index)
        return index

    @staticmethod
    def log_sheet(index: SheetKeyIndex) -> None:
        logger.debug(
            "Indexed %s: rows=%d keys=%d dropped_keyless=%d",
            index.label, index.row_count, len(index.keys()), index.dropped_rows,
        )
        if index.dropped_rows:
            logger.info(
                "%s: %d row(s) without a key value excluded from the merge",
                index.label, index.dropped_rows,
            )

    def _observe(self, key: str, count: int) -> None:
        if count > self._max_occurrence.get(key, 0):
            self._max_occurrence[key] = count

    # -- global views --------------------------------------------------------

    @property
    def max_occurrence(self) -> Dict[str, int]:
        return dict(self._max_occurrence)

    @property
    def key_count(self) -> int:
        return len(self._max_occurrence)

    def sorted_keys(self) -> List[str]:
        """Distinct keys in ordinal (code point) ascending order."""
        return sorted(self._max_occurrence)

    def rows_for(self, key: str) -> int:
        """Number of output rows produced by *key*."""
        return max(1, self._max_occurrence.get(key, 0))

    def total_output_rows(self) -> int:
        return sum(self.rows_for(k) for k in self._max_occurrence)
