"""
sheetmerge: merge rows of many Excel sheets on a shared key column.

Public API:
  - MergeEngine / MergeSession
  - FileSelection, SheetHeaders, TabularSheet, MergedTable, MergeStrategy
  - CancellationToken, MergeEvent, ProgressRecorder
  - error kinds from sheetmerge.errors
"""

from sheetmerge.cancellation import CancellationToken
from sheetmerge.errors import (
    FileReadError,
    FileReadFailure,
    InvalidMergeArgumentError,
    MergeCancelledError,
    MergeError,
    MergeInProgressError,
    MissingKeyColumnError,
    NoEligibleSheetsError,
)
from sheetmerge.memory import InMemoryCellSink
from sheetmerge.merge.engine import MergeEngine
from sheetmerge.models import (
    FileSelection,
    MergedTable,
    MergeStrategy,
    SessionState,
    SheetHeaders,
    TabularSheet,
)
from sheetmerge.normalize import HeaderNormalizer, normalize_header
from sheetmerge.progress import MergeEvent, ProgressRecorder
from sheetmerge.session import MergeSession

__version__ = "0.1.0"

__all__ = [
    "MergeEngine",
    "MergeSession",
    "CancellationToken",
    "HeaderNormalizer",
    "normalize_header",
    "InMemoryCellSink",
    "FileSelection",
    "SheetHeaders",
    "TabularSheet",
    "MergedTable",
    "MergeStrategy",
    "SessionState",
    "MergeEvent",
    "ProgressRecorder",
    "MergeError",
    "InvalidMergeArgumentError",
    "FileReadError",
    "FileReadFailure",
    "MissingKeyColumnError",
    "NoEligibleSheetsError",
    "MergeInProgressError",
    "MergeCancelledError",
]
