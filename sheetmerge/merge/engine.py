"""
MergeEngine: public entry point of the merge core.

Validates the request, builds a :class:`MergeContext` and dispatches to
one of the three strategies. All strategies produce the same table for
the same inputs; they differ in memory profile only.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Union

from sheetmerge.base import BaseCellSink, BaseSheetReader, BaseTableWriter
from sheetmerge.cancellation import CancellationToken
from sheetmerge.config import Settings, get_settings
from sheetmerge.errors import InvalidMergeArgumentError
from sheetmerge.logger import get_logger
from sheetmerge.memory import InMemoryCellSink
from sheetmerge.merge.batch import BatchStrategy
from sheetmerge.merge.context import MergeContext
from sheetmerge.merge.direct import DirectSinkStrategy
from sheetmerge.merge.streaming import StreamingStrategy
from sheetmerge.merge.validation import MergeInput, validate_merge_request
from sheetmerge.models import MergedTable, MergeStrategy
from sheetmerge.normalize import DEFAULT_NORMALIZER, HeaderNormalizer
from sheetmerge.progress import ProgressCallback, ProgressReporter

logger = get_logger(__name__)


class MergeEngine:
    """
    Merge rows of many sheets on a shared key column.

    Example:
        engine = MergeEngine()
        table = engine.merge(["ventas.xlsx", "stock.xlsx"], "Codigo")
    """

    def __init__(
        self,
        reader: Optional[BaseSheetReader] = None,
        normalizer: Optional[HeaderNormalizer] = None,
        *,
        settings: Optional[Settings] = None,
        progress: Optional[ProgressCallback] = None,
        chunk_size: Optional[int] = None,
        key_batch_size: Optional[int] = None,
        max_workers: Optional[int] = None,
    ):
        if reader is None:
            from sheetmerge.excel.reader import ExcelReader

            reader = ExcelReader()
        self.reader = reader
        self.normalizer = normalizer or DEFAULT_NORMALIZER
        self.settings = settings or get_settings()
        self.reporter = ProgressReporter(progress)
        self.chunk_size = chunk_size or self.settings.MERGE_CHUNK_SIZE
        self.key_batch_size = key_batch_size or self.settings.MERGE_KEY_BATCH_SIZE
        self.max_workers = max_workers or self.settings.MERGE_MAX_WORKERS
        if self.chunk_size <= 0 or self.key_batch_size <= 0:
            raise ValueError("chunk_size and key_batch_size must be greater than 0")

    # -- public API ---------------------------------------------------------

    def merge(
        self,
        inputs: Sequence[MergeInput],
        key: str,
        *,
        strategy: Optional[Union[MergeStrategy, str]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> MergedTable:
        """Merge *inputs* on *key* and return the table in memory."""
        chosen = self._resolve_strategy(strategy)
        if chosen is MergeStrategy.BATCH:
            return self.merge_batch(inputs, key, cancel_token=cancel_token)
        if chosen is MergeStrategy.STREAMING:
            return self.merge_streaming(inputs, key, cancel_token=cancel_token)
        sink = InMemoryCellSink()
        self.merge_direct(inputs, key, sink, cancel_token=cancel_token)
        return sink.to_table()

    def merge_batch(
        self,
        inputs: Sequence[MergeInput],
        key: str,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> MergedTable:
        ctx = self._context(inputs, key, cancel_token)
        table = BatchStrategy(ctx).run(inputs)
        self._done(table.row_count, table.column_count)
        return table

    def merge_streaming(
        self,
        inputs: Sequence[MergeInput],
        key: str,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> MergedTable:
        ctx = self._context(inputs, key, cancel_token)
        table = StreamingStrategy(ctx).run(inputs)
        self._done(table.row_count, table.column_count)
        return table

    def merge_direct(
        self,
        inputs: Sequence[MergeInput],
        key: str,
        sink: BaseCellSink,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """Merge straight into *sink*; return the location it reports."""
        if sink is None:
            raise ValueError("sink must not be None")
        ctx = self._context(inputs, key, cancel_token)
        location = DirectSinkStrategy(ctx, sink).run(inputs)
        self.reporter.emit("done", f"Merge completed: {location}", percent=100)
        return location

    def merge_to_file(
        self,
        inputs: Sequence[MergeInput],
        key: str,
        output_path: Union[str, Path],
        *,
        strategy: Optional[Union[MergeStrategy, str]] = None,
        writer: Optional[BaseTableWriter] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """Merge and persist to *output_path* as an Excel workbook."""
        from sheetmerge.excel.writer import ExcelCellSink, ExcelWriter

        chosen = self._resolve_strategy(strategy)
        logger.info("Merging %d input(s) into %s (strategy=%s)", len(inputs or []), output_path, chosen.value)
        if chosen is MergeStrategy.DIRECT:
            return self.merge_direct(inputs, key, ExcelCellSink(str(output_path)), cancel_token=cancel_token)

        ctx = self._context(inputs, key, cancel_token)
        if chosen is MergeStrategy.BATCH:
            table = BatchStrategy(ctx).run(inputs)
        else:
            table = StreamingStrategy(ctx).run(inputs)
        ctx.check_cancelled()
        ctx.emit("persist", f"Saving to {output_path}", percent=95)
        location = (writer or ExcelWriter()).write_table(str(output_path), table)
        self._done(table.row_count, table.column_count)
        return location

    # -- helpers ------------------------------------------------------------

    def _resolve_strategy(self, strategy: Optional[Union[MergeStrategy, str]]) -> MergeStrategy:
        if strategy is None:
            return self.settings.MERGE_DEFAULT_STRATEGY
        try:
            return MergeStrategy(strategy)
        except ValueError:
            valid = ", ".join(s.value for s in MergeStrategy)
            raise InvalidMergeArgumentError(f"Unknown merge strategy '{strategy}' (expected one of: {valid})")

    def _context(
        self,
        inputs: Sequence[MergeInput],
        key: str,
        cancel_token: Optional[CancellationToken],
    ) -> MergeContext:
        key_normalized = validate_merge_request(key, inputs, self.normalizer)
        self.reporter.emit("validate", f"Merging {len(inputs)} input(s) on key '{key}'", percent=0)
        return MergeContext(
            reader=self.reader,
            normalizer=self.normalizer,
            key_normalized=key_normalized,
            reporter=self.reporter,
            chunk_size=self.chunk_size,
            key_batch_size=self.key_batch_size,
            max_workers=self.max_workers,
            cancel_token=cancel_token,
        )

    def _done(self, rows: int, columns: int) -> None:
        self.reporter.emit("done", f"Merge completed: {rows} row(s) x {columns} column(s)", percent=100)
