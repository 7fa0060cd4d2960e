"""
Direct-to-sink strategy.

Two passes over the sources, no in-memory output table:

1. counting pass   - stream every sheet, record per-key occurrence counts
                     only; the max per key fixes each key's block of rows
2. value pass      - stream every sheet again and write each row's values
                     straight to its cell addresses in the sink

Positions a sheet never reaches (fewer occurrences than the key's block)
are written empty afterwards, so every cell of the output is written
exactly once.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from sheetmerge.base import BaseCellSink
from sheetmerge.errors import MergeError
from sheetmerge.logger import get_logger
from sheetmerge.merge.context import (
    MergeContext,
    build_layouts,
    read_header_pass,
    stream_sheet,
)
from sheetmerge.merge.index import KeyIndexBuilder, SheetKeyIndex, extract_key
from sheetmerge.merge.schema import SheetLayout
from sheetmerge.merge.validation import MergeInput

logger = get_logger(__name__)


class DirectSinkStrategy:
    """Counting pass + value pass into a :class:`BaseCellSink`."""

    name = "direct"

    def __init__(self, ctx: MergeContext, sink: BaseCellSink):
        self.ctx = ctx
        self.sink = sink

    def run(self, inputs: Sequence[MergeInput]) -> str:
        ctx = self.ctx
        sheets = read_header_pass(ctx, inputs)
        schema = build_layouts(ctx, sheets)

        builder, counts = self._count_keys(schema.layouts)
        keys = builder.sorted_keys()
        block_start = self._layout_rows(builder, keys)
        total_rows = builder.total_output_rows()

        self.sink.begin(schema.headers, total_rows)
        self._write_keys(builder, keys, block_start)
        ctx.emit(
            "layout",
            f"{len(keys)} key(s), {total_rows} row(s), {schema.column_count} column(s)",
            percent=40,
        )

        total = len(schema.layouts)
        for n, (layout, counted) in enumerate(zip(schema.layouts, counts), start=1):
            self._write_sheet(layout, counted, builder, block_start)
            ctx.emit(
                "write_values", f"Wrote {layout.label}",
                current=n, total=total, percent=40 + int(50 * n / total),
            )

        ctx.check_cancelled()
        ctx.emit("persist", f"Saving to {self.sink.location}", percent=95)
        return self.sink.finalize()

    # -- pass 1 -------------------------------------------------------------

    def _count_keys(self, layouts: Sequence[SheetLayout]):
        ctx = self.ctx
        builder = KeyIndexBuilder(retain_rows=False)
        counts: List[SheetKeyIndex] = []
        for layout in layouts:
            index = builder.start_sheet(layout.label, layout.key_header)
            for chunk in stream_sheet(ctx, layout):
                index.add_rows(chunk)
            builder.log_sheet(index)
            counts.append(index)
        ctx.emit(
            "count_keys",
            f"Counted {builder.key_count} distinct key(s) in {len(layouts)} sheet(s)",
            percent=30,
        )
        return builder, counts

    @staticmethod
    def _layout_rows(builder: KeyIndexBuilder, keys: List[str]) -> Dict[str, int]:
        """First output row of each key's block."""
        block_start: Dict[str, int] = {}
        row = 0
        for key in keys:
            block_start[key] = row
            row += builder.rows_for(key)
        return block_start

    def _write_keys(self, builder: KeyIndexBuilder, keys: List[str], block_start: Dict[str, int]) -> None:
        for n, key in enumerate(keys):
            if n % self.ctx.key_batch_size == 0:
                self.ctx.check_cancelled()
            start = block_start[key]
            for offset in range(builder.rows_for(key)):
                self.sink.write_cell(start + offset, 0, key)

    # -- pass 2 -------------------------------------------------------------

    def _write_sheet(
        self,
        layout: SheetLayout,
        counted: SheetKeyIndex,
        builder: KeyIndexBuilder,
        block_start: Dict[str, int],
    ) -> None:
        cursor: Dict[str, int] = {}
        for chunk in stream_sheet(self.ctx, layout):
            for row in chunk:
                key = extract_key(row, layout.key_header)
                if key is None:
                    continue
                position = cursor.get(key, 0)
                if key not in block_start or position >= builder.rows_for(key):
                    raise MergeError(
                        f"{layout.label} changed between passes: unexpected row for key '{key}'"
                    )
                cursor[key] = position + 1
                if layout.width:
                    self.sink.write_row_values(
                        block_start[key] + position,
                        layout.column_offset,
                        [row.get(h) for h in layout.value_headers],
                    )

        if cursor != counted.counts:
            raise MergeError(f"{layout.label} changed between passes: key counts differ")
        logger.debug("Value pass %s: %d key(s), %d row(s)", layout.label, len(cursor), sum(cursor.values()))

        if layout.width:
            self._fill_missing(layout, cursor, builder, block_start)

    def _fill_missing(
        self,
        layout: SheetLayout,
        cursor: Dict[str, int],
        builder: KeyIndexBuilder,
        block_start: Dict[str, int],
    ) -> None:
        empty = [None] * layout.width
        for n, (key, start) in enumerate(block_start.items()):
            if n % self.ctx.key_batch_size == 0:
                self.ctx.check_cancelled()
            for position in range(cursor.get(key, 0), builder.rows_for(key)):
                self.sink.write_row_values(start + position, layout.column_offset, empty)
