"""
MergeContext: state and phases shared by the three merge strategies.

Holds the collaborators of one merge invocation (reader, normalizer,
cancellation token, progress reporter, tuning values) and implements the
phases every strategy needs:

- choose_sheets      - apply a FileSelection to a workbook's sheet listing
- read_header_pass   - headers of every selected sheet, failures aggregated
- build_layouts      - key validation + output schema
- stream_sheet       - chunked row stream of one sheet, errors wrapped
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from sheetmerge.base import BaseSheetReader
from sheetmerge.cancellation import CancellationToken, check_cancelled
from sheetmerge.errors import (
    FileReadError,
    FileReadFailure,
    MergeCancelledError,
    MergeError,
    NoEligibleSheetsError,
)
from sheetmerge.logger import get_logger
from sheetmerge.merge.schema import OutputSchemaBuilder, SheetLayout
from sheetmerge.merge.validation import (
    MergeInput,
    input_file_name,
    input_path,
    validate_key_presence,
)
from sheetmerge.models import FileSelection, Row, SheetHeaders
from sheetmerge.normalize import HeaderNormalizer
from sheetmerge.progress import ProgressReporter

logger = get_logger(__name__)


@dataclass
class MergeContext:
    reader: BaseSheetReader
    normalizer: HeaderNormalizer
    key_normalized: str
    reporter: ProgressReporter
    chunk_size: int = 1000
    key_batch_size: int = 100
    max_workers: Optional[int] = None
    cancel_token: Optional[CancellationToken] = None

    def check_cancelled(self) -> None:
        check_cancelled(self.cancel_token)

    def emit(self, stage: str, message: str, **kwargs) -> None:
        self.reporter.emit(stage, message, **kwargs)


# ---------------------------------------------------------------------------
# Sheet selection
# ---------------------------------------------------------------------------

def choose_sheets(entry: MergeInput, listing: Sequence[SheetHeaders]) -> List[SheetHeaders]:
    """
    Sheets of *listing* that *entry* selects, in selection order.

    A raw path selects every listed sheet. Selected names that are not
    in the listing (absent, or without a header row) are skipped.
    """
    if not isinstance(entry, FileSelection):
        return list(listing)

    by_name = {s.sheet_name: s for s in listing}
    by_lower = {s.sheet_name.lower(): s for s in reversed(listing)}
    chosen: List[SheetHeaders] = []
    for name in entry.selected_sheets:
        sheet = by_name.get(name) or by_lower.get(name.lower())
        if sheet is None:
            logger.warning(
                "Selected sheet %s:%s has no header row or no longer exists; skipped",
                entry.file_name, name,
            )
            continue
        chosen.append(sheet)
    return chosen


def active_inputs(inputs: Sequence[MergeInput]) -> List[MergeInput]:
    """Drop selections with no selected sheet."""
    return [
        e for e in inputs
        if not isinstance(e, FileSelection) or e.has_selected_sheets
    ]


def read_failure(entry: MergeInput, exc: BaseException) -> FileReadFailure:
    logger.error("Failed to read %s: %s", input_file_name(entry), exc, exc_info=True)
    return FileReadFailure(
        file_path=input_path(entry),
        file_name=input_file_name(entry),
        error=exc,
    )


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------

def read_header_pass(
    ctx: MergeContext,
    inputs: Sequence[MergeInput],
) -> List[Tuple[str, SheetHeaders]]:
    """
    Read header rows only (no data) for every selected sheet.

    Every file is attempted; failures are raised together as one
    FileReadError once all files have been tried.
    """
    entries = active_inputs(inputs)
    sheets: List[Tuple[str, SheetHeaders]] = []
    failures: List[FileReadFailure] = []

    for idx, entry in enumerate(entries, start=1):
        ctx.check_cancelled()
        path = input_path(entry)
        ctx.emit(
            "read_headers",
            f"Reading headers of {input_file_name(entry)}",
            current=idx, total=len(entries), verbose=True,
        )
        try:
            listing = ctx.reader.list_sheet_headers(path)
        except MergeCancelledError:
            raise
        except Exception as exc:
            failures.append(read_failure(entry, exc))
            continue
        for sheet in choose_sheets(entry, listing):
            sheets.append((path, sheet))

    if failures:
        raise FileReadError(failures)
    if not sheets:
        raise NoEligibleSheetsError("No sheet with a header row was found in the selected files.")

    ctx.emit("read_headers", f"Headers read for {len(sheets)} sheet(s)", percent=10)
    return sheets


def build_layouts(
    ctx: MergeContext,
    sheets: Sequence[Tuple[str, SheetHeaders]],
) -> OutputSchemaBuilder:
    """Validate the key in every sheet, then lay out the output columns."""
    validate_key_presence([s for _, s in sheets], ctx.key_normalized, ctx.normalizer)
    schema = OutputSchemaBuilder(ctx.normalizer, ctx.key_normalized)
    for path, sheet in sheets:
        schema.add_sheet(path, sheet)
    ctx.emit(
        "validate",
        f"Key column '{ctx.key_normalized}' found in all {len(sheets)} sheet(s); "
        f"{schema.column_count} output columns",
    )
    return schema


def stream_sheet(ctx: MergeContext, layout: SheetLayout) -> Iterator[List[Row]]:
    """
    Chunked rows of one sheet with a cancellation check per chunk.

    Reader failures surface as FileReadError naming the sheet's file.
    """
    try:
        for chunk in ctx.reader.iter_row_chunks(
            layout.file_path,
            layout.sheet_name,
            layout.headers,
            ctx.chunk_size,
            ctx.cancel_token,
        ):
            ctx.check_cancelled()
            yield chunk
    except (MergeCancelledError, MergeError):
        raise
    except Exception as exc:
        logger.error("Streaming %s failed: %s", layout.label, exc, exc_info=True)
        raise FileReadError([
            FileReadFailure(file_path=layout.file_path, file_name=layout.file_name, error=exc)
        ]) from exc
