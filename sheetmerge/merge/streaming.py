"""
Streaming strategy: header pass first, then rows read sheet by sheet in
fixed-size chunks and indexed as they arrive.

Source workbooks are never fully materialized by the reader; the key
index still retains row contents until the table is assembled.
"""

from __future__ import annotations

from typing import List, Sequence

from sheetmerge.logger import get_logger
from sheetmerge.merge.batch import assemble_table
from sheetmerge.merge.context import (
    MergeContext,
    build_layouts,
    read_header_pass,
    stream_sheet,
)
from sheetmerge.merge.index import KeyIndexBuilder, SheetKeyIndex
from sheetmerge.merge.validation import MergeInput
from sheetmerge.models import MergedTable

logger = get_logger(__name__)


class StreamingStrategy:
    """Chunked, sequential read of every selected sheet."""

    name = "streaming"

    def __init__(self, ctx: MergeContext):
        self.ctx = ctx

    def run(self, inputs: Sequence[MergeInput]) -> MergedTable:
        ctx = self.ctx
        sheets = read_header_pass(ctx, inputs)
        schema = build_layouts(ctx, sheets)
        ctx.emit("layout", f"{schema.column_count} output column(s)", percent=20)

        builder = KeyIndexBuilder(retain_rows=True)
        indexes: List[SheetKeyIndex] = []
        total = len(schema.layouts)
        for n, layout in enumerate(schema.layouts, start=1):
            index = builder.start_sheet(layout.label, layout.key_header)
            chunks = 0
            for chunk in stream_sheet(ctx, layout):
                index.add_rows(chunk)
                chunks += 1
            builder.log_sheet(index)
            logger.debug("%s streamed in %d chunk(s)", layout.label, chunks)
            indexes.append(index)
            ctx.emit(
                "read_rows",
                f"Streamed {layout.label} ({index.row_count} rows)",
                current=n, total=total, percent=20 + int(50 * n / total),
            )

        ctx.emit("index", f"Indexed {builder.key_count} distinct key(s)", percent=70)
        return assemble_table(ctx, schema, builder, indexes)
