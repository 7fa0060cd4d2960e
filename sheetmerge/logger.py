"""
Logging for sheetmerge.

Every module logs under the ``sheetmerge`` root logger, which writes to
stdout. What goes out at each level:

- INFO: merge start (inputs, output, strategy), progress events
  mirrored by ProgressReporter, keyless rows dropped per sheet and the
  saved output file
- WARNING: selected sheets that are missing, and sheets lacking the key
  column
- ERROR: per-file read failures, before they are aggregated into
  FileReadError
- DEBUG: per-sheet index and load totals, header listings and the
  direct strategy's value-pass totals

The CLI ``--verbose`` flag calls :func:`set_level` with ``DEBUG``.
"""

import logging
import sys
from typing import Optional, Union

# Default log format with timestamp, level, and module name
DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL = logging.INFO

ROOT_LOGGER_NAME = "sheetmerge"

# Global flag to track if root logger has been configured
_root_configured = False


def _configure_root_logger() -> None:
    """
    Attach a stdout handler to the project root logger.

    Runs once; the ``_root_configured`` flag prevents duplicate handlers.
    """
    global _root_configured
    if _root_configured:
        return

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)

    formatter = logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(DEFAULT_LEVEL)
    root_logger.addHandler(console_handler)
    root_logger.propagate = False

    _root_configured = True


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Return a logger for *name*, usually the caller's ``__name__``.

    Args:
        name: logger name
        level: optional level; inherits from the project root when omitted

    Example:
        logger = get_logger(__name__)
        logger.info("Merging %d sheets", len(sheets))
    """
    _configure_root_logger()

    logger = logging.getLogger(name)

    if level is not None:
        logger.setLevel(level)

    return logger


def set_level(level: Union[int, str], logger_name: Optional[str] = None) -> None:
    """
    Set the level of *logger_name*, or of the project root logger.

    Accepts either a numeric level or a level name such as ``"DEBUG"``.

    Example:
        set_level(logging.DEBUG)                          # every sheetmerge module
        set_level(logging.DEBUG, "sheetmerge.merge.direct")  # direct strategy only
    """
    if isinstance(level, str):
        name = level.strip().upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")
    _configure_root_logger()
    logger = logging.getLogger(logger_name or ROOT_LOGGER_NAME)
    logger.setLevel(level)
