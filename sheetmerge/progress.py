"""
Progress event channel.

The engine and the session publish :class:`MergeEvent` objects to an
optional callback instead of printing status text. Every event is also
logged, so a caller that passes no callback still sees progress in the
log.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from sheetmerge.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class MergeEvent:
    """
    One progress notification.

    Attributes:
        stage: phase name (validate, read_headers, read_rows, index, count_keys,
               layout, write_values, emit_rows, persist, done, status)
        message: human-readable description
        current: items processed so far in this stage, if known
        total: items expected in this stage, if known
        percent: overall completion 0-100, if known
    """
    stage: str
    message: str
    current: Optional[int] = None
    total: Optional[int] = None
    percent: Optional[int] = None


ProgressCallback = Callable[[MergeEvent], None]


class ProgressReporter:
    """Fan-out helper: log the event, then forward it to the callback."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback

    def emit(
        self,
        stage: str,
        message: str,
        *,
        current: Optional[int] = None,
        total: Optional[int] = None,
        percent: Optional[int] = None,
        verbose: bool = False,
    ) -> MergeEvent:
        event = MergeEvent(stage=stage, message=message, current=current, total=total, percent=percent)
        if verbose:
            logger.debug("[%s] %s", stage, message)
        else:
            logger.info("[%s] %s", stage, message)
        if self._callback is not None:
            self._callback(event)
        return event


class ProgressRecorder:
    """Callable that keeps every event it receives. Handy for tests and CLIs."""

    def __init__(self) -> None:
        self.events: List[MergeEvent] = []

    def __call__(self, event: MergeEvent) -> None:
        self.events.append(event)

    def stages(self) -> List[str]:
        return [e.stage for e in self.events]

    def messages(self, stage: Optional[str] = None) -> List[str]:
        return [e.message for e in self.events if stage is None or e.stage == stage]
