"""
Batch strategy: load every selected sheet fully, in parallel per file,
then index and assemble the merged table in memory.

Fastest option for small and medium inputs; peak memory holds every
source row plus the output table.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence, Tuple

from sheetmerge.errors import (
    FileReadError,
    FileReadFailure,
    MergeCancelledError,
    NoEligibleSheetsError,
)
from sheetmerge.logger import get_logger
from sheetmerge.merge.context import (
    MergeContext,
    active_inputs,
    build_layouts,
    choose_sheets,
    read_failure,
)
from sheetmerge.merge.index import KeyIndexBuilder, SheetKeyIndex
from sheetmerge.merge.schema import OutputSchemaBuilder, SheetLayout
from sheetmerge.merge.validation import MergeInput, input_file_name, input_path
from sheetmerge.models import KEY_COLUMN, MergedTable, Row, TabularSheet

logger = get_logger(__name__)


def assemble_table(
    ctx: MergeContext,
    schema: OutputSchemaBuilder,
    builder: KeyIndexBuilder,
    indexes: Sequence[SheetKeyIndex],
) -> MergedTable:
    """
    Emit output rows from fully retained sheet indices.

    For each key (ordinal order) and each occurrence position up to the
    key's max occurrence, a sheet contributes its row at that position,
    or empty cells when it has fewer occurrences.
    """
    keys = builder.sorted_keys()
    total_keys = len(keys)
    rows: List[Row] = []

    for n, key in enumerate(keys):
        if n % ctx.key_batch_size == 0:
            ctx.check_cancelled()
            if n:
                ctx.emit(
                    "emit_rows", f"Emitted {n}/{total_keys} keys",
                    current=n, total=total_keys, verbose=True,
                )
        for position in range(builder.rows_for(key)):
            row: Row = {KEY_COLUMN: key}
            for layout, index in zip(schema.layouts, indexes):
                source = index.occurrence(key, position)
                for header, column in zip(layout.value_headers, layout.output_columns):
                    row[column] = source.get(header) if source is not None else None
            rows.append(row)

    ctx.emit(
        "emit_rows",
        f"Built {len(rows)} row(s) for {total_keys} key(s)",
        current=total_keys, total=total_keys, percent=90,
    )
    return MergedTable(headers=list(schema.headers), rows=rows)


class BatchStrategy:
    """Parallel full load, one worker per input file."""

    name = "batch"

    def __init__(self, ctx: MergeContext):
        self.ctx = ctx

    def run(self, inputs: Sequence[MergeInput]) -> MergedTable:
        ctx = self.ctx
        loaded = self._load_all(active_inputs(inputs))
        if not loaded:
            raise NoEligibleSheetsError("No sheet with a header row was found in the selected files.")

        schema = build_layouts(ctx, [(path, sheet) for path, sheet in loaded])
        ctx.emit("layout", f"{schema.column_count} output column(s)", percent=40)

        builder = KeyIndexBuilder(retain_rows=True)
        indexes = [
            self._index_sheet(builder, layout, sheet)
            for layout, (_, sheet) in zip(schema.layouts, loaded)
        ]
        ctx.emit(
            "index",
            f"Indexed {builder.key_count} distinct key(s) across {len(indexes)} sheet(s)",
            percent=60,
        )
        return assemble_table(ctx, schema, builder, indexes)

    # -- loading ------------------------------------------------------------

    def _load_all(self, entries: List[MergeInput]) -> List[Tuple[str, TabularSheet]]:
        ctx = self.ctx
        ctx.check_cancelled()
        ctx.emit("read_rows", f"Loading {len(entries)} file(s)", total=len(entries), percent=10)

        failures: List[FileReadFailure] = []
        loaded: List[Tuple[str, TabularSheet]] = []

        with ThreadPoolExecutor(max_workers=ctx.max_workers) as pool:
            futures = [pool.submit(self._load_file, entry) for entry in entries]
            # Results are consumed in input order so output is deterministic.
            for entry, future in zip(entries, futures):
                try:
                    sheets = future.result()
                except MergeCancelledError:
                    for pending in futures:
                        pending.cancel()
                    raise
                except Exception as exc:
                    failures.append(read_failure(entry, exc))
                    continue
                loaded.extend((input_path(entry), sheet) for sheet in sheets)

        if failures:
            raise FileReadError(failures)
        ctx.emit("read_rows", f"Loaded {len(loaded)} sheet(s)", percent=30)
        return loaded

    def _load_file(self, entry: MergeInput) -> List[TabularSheet]:
        ctx = self.ctx
        path = input_path(entry)
        listing = ctx.reader.list_sheet_headers(path)
        sheets: List[TabularSheet] = []
        for chosen in choose_sheets(entry, listing):
            ctx.check_cancelled()
            sheet = ctx.reader.read_sheet(path, chosen.sheet_name)
            if not sheet.headers:
                continue
            logger.debug("Loaded %s (%d rows)", sheet.label, len(sheet.rows))
            sheets.append(sheet)
        logger.debug("Loaded %d sheet(s) from %s", len(sheets), input_file_name(entry))
        return sheets

    def _index_sheet(
        self,
        builder: KeyIndexBuilder,
        layout: SheetLayout,
        sheet: TabularSheet,
    ) -> SheetKeyIndex:
        index = builder.start_sheet(layout.label, layout.key_header)
        for n, row in enumerate(sheet.rows):
            if n % self.ctx.chunk_size == 0:
                self.ctx.check_cancelled()
            index.add_row(row)
        builder.log_sheet(index)
        return index
