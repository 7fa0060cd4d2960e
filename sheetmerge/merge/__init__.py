"""
Merge core.

Public API:
  - MergeEngine         (validate, dispatch, persist)
  - BatchStrategy       (parallel full load)
  - StreamingStrategy   (chunked read, in-memory index)
  - DirectSinkStrategy  (two passes straight into a cell sink)
  - KeyIndexBuilder / OutputSchemaBuilder
"""

from sheetmerge.merge.batch import BatchStrategy
from sheetmerge.merge.direct import DirectSinkStrategy
from sheetmerge.merge.engine import MergeEngine
from sheetmerge.merge.index import KeyIndexBuilder, SheetKeyIndex
from sheetmerge.merge.schema import OutputSchemaBuilder, SheetLayout, output_column_name
from sheetmerge.merge.streaming import StreamingStrategy
from sheetmerge.merge.validation import MergeInput, validate_key_presence, validate_merge_request

__all__ = [
    "MergeEngine",
    "BatchStrategy",
    "StreamingStrategy",
    "DirectSinkStrategy",
    "KeyIndexBuilder",
    "SheetKeyIndex",
    "OutputSchemaBuilder",
    "SheetLayout",
    "output_column_name",
    "MergeInput",
    "validate_key_presence",
    "validate_merge_request",
]
