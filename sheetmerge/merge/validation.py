"""
Merge validation.

validate_merge_request - argument checks that run before any I/O
validate_key_presence  - key-column check across every selected sheet;
                         collects all offenders before raising
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List, Sequence, Union

from sheetmerge.errors import InvalidMergeArgumentError, MissingKeyColumnError
from sheetmerge.logger import get_logger
from sheetmerge.models import FileSelection, SheetHeaders
from sheetmerge.normalize import HeaderNormalizer

logger = get_logger(__name__)

# A merge input is either an explicit selection or a raw path meaning
# "every sheet of this workbook".
MergeInput = Union[FileSelection, str, os.PathLike]


def input_path(entry: MergeInput) -> str:
    if isinstance(entry, FileSelection):
        return entry.file_path
    return os.fspath(entry)


def input_file_name(entry: MergeInput) -> str:
    if isinstance(entry, FileSelection):
        return entry.file_name
    return Path(os.fspath(entry)).name


def _has_selection(entry: MergeInput) -> bool:
    if isinstance(entry, FileSelection):
        return entry.has_selected_sheets
    return bool(str(os.fspath(entry)).strip())


def validate_merge_request(
    key: str,
    inputs: Sequence[MergeInput],
    normalizer: HeaderNormalizer,
) -> str:
    """
    Check the request and return the normalized key.

    Raises:
        InvalidMergeArgumentError: blank key, no inputs, or nothing selected
    """
    if key is None or str(key).strip() == "":
        raise InvalidMergeArgumentError("The key column must not be empty.")

    entries = list(inputs or [])
    if not entries:
        raise InvalidMergeArgumentError("At least one file selection is required.")
    for entry in entries:
        if not isinstance(entry, (FileSelection, str, os.PathLike)):
            raise InvalidMergeArgumentError(
                f"Unsupported merge input type: {type(entry).__name__}"
            )
    if not any(_has_selection(e) for e in entries):
        raise InvalidMergeArgumentError("No sheet is selected in any file.")

    return normalizer.normalize(key)


def find_sheets_missing_key(
    sheets: Iterable[SheetHeaders],
    key_normalized: str,
    normalizer: HeaderNormalizer,
) -> List[str]:
    """Labels (``file:sheet``) of every sheet without the key column."""
    missing: List[str] = []
    for sheet in sheets:
        normalized = {normalizer.normalize(h) for h in sheet.headers}
        if key_normalized not in normalized:
            missing.append(sheet.label)
    return missing


def validate_key_presence(
    sheets: Sequence[SheetHeaders],
    key_normalized: str,
    normalizer: HeaderNormalizer,
) -> None:
    """
    Raises:
        MissingKeyColumnError: listing every sheet that lacks the key
    """
    missing = find_sheets_missing_key(sheets, key_normalized, normalizer)
    if missing:
        logger.warning(
            "Key column '%s' missing from %d of %d sheet(s): %s",
            key_normalized, len(missing), len(sheets), missing,
        )
        raise MissingKeyColumnError(key_normalized, missing)
