"""
Excel I/O subpackage.

Public API:
  - ExcelReader      (header listing, full loads, chunked streaming)
  - ExcelWriter      (persist a MergedTable)
  - ExcelCellSink    (random-access sink for the direct strategy)
  - DataCleaner      (cell -> text conversion)
  - ReaderConfig     (tunable reader settings)
"""

from sheetmerge.excel.config import DEFAULT_READER_CONFIG, ReaderConfig
from sheetmerge.excel.data_cleaner import DataCleaner
from sheetmerge.excel.reader import ExcelReader
from sheetmerge.excel.writer import ExcelCellSink, ExcelWriter

__all__ = [
    "ReaderConfig",
    "DEFAULT_READER_CONFIG",
    "DataCleaner",
    "ExcelReader",
    "ExcelWriter",
    "ExcelCellSink",
]
