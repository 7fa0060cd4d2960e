"""
Error kinds raised by the merge engine and the session.

Read failures and missing-key problems are collected before raising so a
single report names every offending file or sheet. Cancellation is kept
outside the MergeError hierarchy so callers can tell it apart from real
failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence


class MergeError(Exception):
    """Base class of every merge failure except cancellation."""


class InvalidMergeArgumentError(MergeError, ValueError):
    """Blank key, empty selection or an unusable key choice. Raised before any I/O."""


@dataclass(frozen=True)
class FileReadFailure:
    file_path: str
    file_name: str
    error: BaseException

    def describe(self) -> str:
        return f"{self.file_name}: {type(self.error).__name__}: {self.error}"


class FileReadError(MergeError):
    """One or more input workbooks could not be read."""

    def __init__(self, failures: Sequence[FileReadFailure]):
        self.failures: List[FileReadFailure] = list(failures)
        lines = "\n".join(f.describe() for f in self.failures)
        super().__init__(f"Failed to read {len(self.failures)} file(s):\n{lines}")

    @property
    def file_names(self) -> List[str]:
        return [f.file_name for f in self.failures]


class MissingKeyColumnError(MergeError):
    """The key column is absent from one or more selected sheets."""

    def __init__(self, key: str, sheets: Sequence[str]):
        self.key = key
        self.sheets: List[str] = list(sheets)
        lines = "\n".join(self.sheets)
        super().__init__(
            f"Key column '{key}' is missing from the following sheets:\n{lines}\n\n"
            "Check that the header matches in every sheet (accents, spaces, case) "
            "or choose a different key column."
        )


class NoEligibleSheetsError(MergeError):
    """No selected sheet has a header row."""


class MergeInProgressError(MergeError, RuntimeError):
    """A merge was requested while another one is still running."""


class MergeCancelledError(Exception):
    """The merge was cancelled through its CancellationToken."""
