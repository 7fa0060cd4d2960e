"""
Data model module
=================

Core structures shared by the reader, the merge engine and the session:
FileSelection, SheetHeaders, TabularSheet, MergedTable and the enums
that name strategies and session states.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

# One data row: original header -> optional cell text
Row = Dict[str, Optional[str]]

KEY_COLUMN = "Key"


class MergeStrategy(str, Enum):
    """
    Execution strategy of a merge. All three produce the same table and
    differ only in memory and I/O pattern.
    """
    BATCH = "batch"
    STREAMING = "streaming"
    DIRECT = "direct"


class SessionState(str, Enum):
    """Lifecycle states of a MergeSession."""
    IDLE = "idle"
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FileSelection(BaseModel):
    """
    The sheets chosen for one input workbook.

    Attributes:
        file_path: path of the workbook
        file_name: file name with extension, e.g. ``ventas.xlsx``
        available_sheets: every eligible sheet, workbook order
        selected_sheets: subset of available_sheets used in the merge
    """
    file_path: str
    file_name: str = ""
    available_sheets: List[str] = Field(default_factory=list)
    selected_sheets: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_selection(self) -> "FileSelection":
        if not self.file_name:
            self.file_name = Path(self.file_path).name
        unknown = [s for s in self.selected_sheets if s not in self.available_sheets]
        if unknown:
            raise ValueError(
                f"Selected sheets not available in {self.file_name}: {', '.join(unknown)}"
            )
        return self

    @classmethod
    def with_all_sheets(cls, file_path: str, available_sheets: List[str]) -> "FileSelection":
        """Build a selection for *file_path* with every sheet selected."""
        return cls(
            file_path=str(file_path),
            file_name=Path(file_path).name,
            available_sheets=list(available_sheets),
            selected_sheets=list(available_sheets),
        )

    @property
    def has_selected_sheets(self) -> bool:
        return len(self.selected_sheets) > 0

    @property
    def unselected_sheets(self) -> List[str]:
        return [s for s in self.available_sheets if s not in self.selected_sheets]

    def select_all(self) -> None:
        self.selected_sheets = list(self.available_sheets)

    def select(self, sheets: List[str]) -> None:
        """Replace the selection; keeps workbook order and rejects unknown names."""
        unknown = [s for s in sheets if s not in self.available_sheets]
        if unknown:
            raise ValueError(
                f"Selected sheets not available in {self.file_name}: {', '.join(unknown)}"
            )
        wanted = set(sheets)
        self.selected_sheets = [s for s in self.available_sheets if s in wanted]


class SheetHeaders(BaseModel):
    """
    Header row of one sheet, original casing and order preserved.
    """
    file_name: str
    sheet_name: str
    headers: List[str] = Field(default_factory=list)

    @property
    def label(self) -> str:
        """``file_name:sheet_name``, the form used in error reports."""
        return f"{self.file_name}:{self.sheet_name}"


class TabularSheet(SheetHeaders):
    """A fully loaded sheet: headers plus every non-empty data row."""
    rows: List[Row] = Field(default_factory=list)


class MergedTable(BaseModel):
    """
    Result of a merge.

    Attributes:
        headers: ``Key`` first, then the prefixed columns of each sheet
        rows: one dict per output row, keyed by output column
    """
    headers: List[str] = Field(default_factory=list)
    rows: List[Row] = Field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.headers)

    def to_records(self) -> List[List[Optional[str]]]:
        """Rows as lists in header order; absent cells become None."""
        return [[row.get(h) for h in self.headers] for row in self.rows]

    def to_dataframe(self) -> Any:
        """Return the table as a ``pandas.DataFrame`` (object dtype)."""
        import pandas as pd

        return pd.DataFrame(self.to_records(), columns=self.headers, dtype=object)
