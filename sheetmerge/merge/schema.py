"""
OutputSchemaBuilder: deterministic, provenance-prefixed output columns.

Column order is ``Key`` followed by each sheet's non-key headers, sheets
in processing order and headers in their original order. A column is
named ``"{file stem}:{sheet}:{original header}"``.

Two files that share a stem and a sheet name produce colliding column
names; that case is not detected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from sheetmerge.models import KEY_COLUMN, SheetHeaders
from sheetmerge.normalize import HeaderNormalizer


def output_column_name(file_name: str, sheet_name: str, header: str) -> str:
    return f"{Path(file_name).stem}:{sheet_name}:{header}"


@dataclass
class SheetLayout:
    """Where one sheet's values land in the output."""
    file_path: str
    file_name: str
    sheet_name: str
    headers: List[str]
    key_header: str
    value_headers: List[str] = field(default_factory=list)
    output_columns: List[str] = field(default_factory=list)
    column_offset: int = 1

    @property
    def label(self) -> str:
        return f"{self.file_name}:{self.sheet_name}"

    @property
    def width(self) -> int:
        return len(self.value_headers)


class OutputSchemaBuilder:
    """
    Accumulates sheet layouts and the output header list.

    *key_normalized* must already be normalized; sheets passed to
    :meth:`add_sheet` must contain the key (validated beforehand).
    """

    def __init__(self, normalizer: HeaderNormalizer, key_normalized: str):
        self._normalizer = normalizer
        self._key = key_normalized
        self.headers: List[str] = [KEY_COLUMN]
        self.layouts: List[SheetLayout] = []

    def add_sheet(self, file_path: str, sheet: SheetHeaders) -> SheetLayout:
        index = self._normalizer.build_header_index(sheet.headers)
        if self._key not in index:
            raise ValueError(f"Key column '{self._key}' not found in {sheet.label}")

        layout = SheetLayout(
            file_path=str(file_path),
            file_name=sheet.file_name,
            sheet_name=sheet.sheet_name,
            headers=list(sheet.headers),
            key_header=index[self._key],
            column_offset=len(self.headers),
        )
        for header in sheet.headers:
            if self._normalizer.normalize(header) == self._key:
                continue
            layout.value_headers.append(header)
            layout.output_columns.append(output_column_name(sheet.file_name, sheet.sheet_name, header))

        self.headers.extend(layout.output_columns)
        self.layouts.append(layout)
        return layout

    @property
    def column_count(self) -> int:
        return len(self.headers)
