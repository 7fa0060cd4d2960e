"""
MergeSession: interactive merge workflow without a UI framework.

Typical use:

    session = MergeSession()
    session.load_files(["ventas.xlsx", "stock.xlsx"])
    session.select_sheets("stock.xlsx", ["Enero"])
    session.confirm_selection()
    session.choose_key("codigo")
    session.run_merge("merged_data.xlsx")

State machine: idle -> ready -> running -> completed | failed | cancelled.
Only one merge may be in flight per session; :meth:`cancel` may be
called from any thread.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Union

from sheetmerge.base import BaseSheetReader
from sheetmerge.cancellation import CancellationToken
from sheetmerge.config import Settings, get_settings
from sheetmerge.errors import (
    FileReadFailure,
    InvalidMergeArgumentError,
    MergeCancelledError,
    MergeInProgressError,
)
from sheetmerge.logger import get_logger
from sheetmerge.merge.engine import MergeEngine
from sheetmerge.models import FileSelection, MergeStrategy, SessionState, SheetHeaders
from sheetmerge.normalize import HeaderNormalizer
from sheetmerge.progress import ProgressCallback, ProgressReporter

logger = get_logger(__name__)

DEFAULT_OUTPUT_NAME = "merged_data.xlsx"


class MergeSession:
    def __init__(
        self,
        reader: Optional[BaseSheetReader] = None,
        normalizer: Optional[HeaderNormalizer] = None,
        *,
        settings: Optional[Settings] = None,
        progress: Optional[ProgressCallback] = None,
        engine: Optional[MergeEngine] = None,
    ):
        self.settings = settings or get_settings()
        self.engine = engine or MergeEngine(
            reader, normalizer, settings=self.settings, progress=progress
        )
        self.reader = self.engine.reader
        self.normalizer = self.engine.normalizer
        self._reporter = ProgressReporter(progress)

        self.files: List[FileSelection] = []
        self.load_errors: List[FileReadFailure] = []
        self.common_columns: List[str] = []
        self.selected_key: Optional[str] = None
        self.result: Optional[str] = None
        self.last_error: Optional[BaseException] = None
        self.status: str = "No files loaded."

        self._state = SessionState.IDLE
        self._headers: Dict[str, List[SheetHeaders]] = {}
        self._merge_lock = threading.Lock()
        self._cancel_token: Optional[CancellationToken] = None

    # -- status -------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SessionState.RUNNING

    @property
    def can_merge(self) -> bool:
        return bool(self.files) and bool(self.selected_key) and not self.is_running

    def _set_status(self, message: str) -> None:
        self.status = message
        self._reporter.emit("status", message)

    # -- loading ------------------------------------------------------------

    def load_files(self, paths: Sequence[Union[str, Path]]) -> List[FileSelection]:
        """
        Read the sheet headers of *paths* concurrently and select every sheet.

        Files that fail to read are recorded in :attr:`load_errors`; files
        without any sheet that has a header row are left out.
        """
        self._require_idle_or_done()
        self.files = []
        self.load_errors = []
        self.common_columns = []
        self.selected_key = None
        self.result = None
        self.last_error = None
        self._headers = {}

        paths = [str(p) for p in paths]
        if not paths:
            self._state = SessionState.IDLE
            self._set_status("Selection cancelled.")
            return []

        self._set_status("Reading available sheets...")
        listings = self._read_headers(paths)

        for path in paths:
            listing = listings.get(path)
            if listing is None:
                continue
            if not listing:
                self._set_status(f"{Path(path).name}: no sheet with a header row")
                continue
            self._headers[path] = listing
            selection = FileSelection.with_all_sheets(path, [s.sheet_name for s in listing])
            self.files.append(selection)
            self._set_status(f"{selection.file_name}: {len(listing)} sheet(s) added")

        if not self.files:
            self._state = SessionState.IDLE
            self._set_status("No valid sheets found in the selected files.")
            return []

        self._state = SessionState.READY
        self.common_columns = self._compute_common_columns()
        if len(self.common_columns) == 1:
            self.selected_key = self.common_columns[0]
            self._set_status(f"Only one common column: '{self.selected_key}'.")
        elif self.common_columns:
            self._set_status(
                f"{len(self.common_columns)} common column(s) found; all sheets selected by default."
            )
        else:
            self._set_status("No columns in common across the selected sheets.")
        return list(self.files)

    def _read_headers(self, paths: List[str]) -> Dict[str, List[SheetHeaders]]:
        """Header listings by path; failures go to :attr:`load_errors`."""
        listings: Dict[str, List[SheetHeaders]] = {}
        with ThreadPoolExecutor(max_workers=self.settings.MERGE_MAX_WORKERS) as pool:
            futures = {path: pool.submit(self.reader.list_sheet_headers, path) for path in paths}
            for path, future in futures.items():
                try:
                    listings[path] = future.result()
                except Exception as exc:
                    logger.error("Failed to read headers of %s: %s", path, exc, exc_info=True)
                    self.load_errors.append(
                        FileReadFailure(file_path=path, file_name=Path(path).name, error=exc)
                    )
                    self._set_status(f"Error reading {Path(path).name}: {exc}")
        return listings

    # -- selection ----------------------------------------------------------

    def get_selection(self, file_path: Union[str, Path]) -> FileSelection:
        wanted = str(file_path)
        for selection in self.files:
            if selection.file_path == wanted or selection.file_name == wanted:
                return selection
        raise InvalidMergeArgumentError(f"File not loaded: {file_path}")

    def select_sheets(self, file_path: Union[str, Path], sheets: Sequence[str]) -> FileSelection:
        self._require_idle_or_done()
        selection = self.get_selection(file_path)
        try:
            selection.select(list(sheets))
        except ValueError as exc:
            raise InvalidMergeArgumentError(str(exc)) from exc
        return selection

    def select_all_sheets(self) -> None:
        self._require_idle_or_done()
        for selection in self.files:
            selection.select_all()
        self._set_status("All sheets selected.")

    def confirm_selection(self) -> List[str]:
        """Recompute the common columns for the current selection and pick the first."""
        self._require_idle_or_done()
        if not any(s.has_selected_sheets for s in self.files):
            self.common_columns = []
            self.selected_key = None
            self._set_status("No sheets selected.")
            return []

        self._set_status("Computing common columns...")
        self.common_columns = self._compute_common_columns()
        self.selected_key = self.common_columns[0] if self.common_columns else None
        if self.common_columns:
            self._set_status(f"Found {len(self.common_columns)} common column(s) in the selected sheets.")
        else:
            self._set_status("No columns in common across the selected sheets.")
        return list(self.common_columns)

    def _compute_common_columns(self) -> List[str]:
        sets: List[Set[str]] = []
        for selection in self.files:
            if not selection.has_selected_sheets:
                continue
            wanted = set(selection.selected_sheets)
            for sheet in self._headers.get(selection.file_path, []):
                if sheet.sheet_name not in wanted:
                    continue
                normalized = {self.normalizer.normalize(h) for h in sheet.headers}
                normalized.discard("")
                if normalized:
                    sets.append(normalized)
        if not sets:
            return []
        common = set.intersection(*sets)
        return sorted(common)

    def choose_key(self, column: str) -> str:
        normalized = self.normalizer.normalize(column)
        if normalized not in self.common_columns:
            raise InvalidMergeArgumentError(
                f"'{column}' is not a column shared by every selected sheet."
            )
        self.selected_key = normalized
        return normalized

    # -- merge --------------------------------------------------------------

    def run_merge(
        self,
        output_path: Optional[Union[str, Path]] = None,
        strategy: Optional[Union[MergeStrategy, str]] = None,
    ) -> str:
        """
        Merge the current selection on the chosen key into *output_path*.

        The outcome is kept in :attr:`result` / :attr:`last_error`; errors
        and cancellation are re-raised after the state is updated.
        """
        if not self._merge_lock.acquire(blocking=False):
            raise MergeInProgressError("A merge is already running.")
        try:
            if not self.files or not self.selected_key:
                raise InvalidMergeArgumentError("Load files and choose a key column before merging.")

            path = str(output_path) if output_path else DEFAULT_OUTPUT_NAME
            token = CancellationToken()
            self._cancel_token = token
            self.result = None
            self.last_error = None
            self._state = SessionState.RUNNING
            self._set_status("Starting merge...")

            try:
                self.result = self.engine.merge_to_file(
                    [s.model_copy(deep=True) for s in self.files],
                    self.selected_key,
                    path,
                    strategy=strategy,
                    cancel_token=token,
                )
            except MergeCancelledError as exc:
                self.last_error = exc
                self._state = SessionState.CANCELLED
                self._set_status("Merge cancelled.")
                raise
            except Exception as exc:
                self.last_error = exc
                self._state = SessionState.FAILED
                self._set_status(f"Merge failed: {exc}")
                raise

            self._state = SessionState.COMPLETED
            self._set_status(f"Merge completed: {self.result}")
            return self.result
        finally:
            self._cancel_token = None
            self._merge_lock.release()

    def cancel(self) -> bool:
        """Signal the in-flight merge to stop; False when none is running."""
        token = self._cancel_token
        if token is None or not self.is_running:
            return False
        token.cancel("Merge cancelled by the user.")
        self._set_status("Cancelling...")
        return True

    def _require_idle_or_done(self) -> None:
        if self.is_running:
            raise MergeInProgressError("Selection cannot change while a merge is running.")
