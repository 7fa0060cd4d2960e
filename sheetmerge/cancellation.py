"""
Cooperative cancellation for long merges.
"""

from __future__ import annotations

import threading
from typing import Optional

from sheetmerge.errors import MergeCancelledError


class CancellationToken:
    """
    Thread-safe cancel flag polled by readers and merge strategies.

    The engine never times out on its own; a merge stops only when some
    other thread calls :meth:`cancel`.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self._reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise MergeCancelledError(self._reason or "Merge cancelled by the user.")


def check_cancelled(token: Optional[CancellationToken]) -> None:
    """Raise MergeCancelledError when *token* is set; no-op for None."""
    if token is not None:
        token.raise_if_cancelled()
