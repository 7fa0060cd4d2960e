import argparse
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from sheetmerge.config import get_settings
from sheetmerge.errors import (
    InvalidMergeArgumentError,
    MergeCancelledError,
    MergeError,
    MissingKeyColumnError,
)
from sheetmerge.excel.config import DEFAULT_READER_CONFIG
from sheetmerge.logger import set_level
from sheetmerge.merge.engine import MergeEngine
from sheetmerge.models import MergeStrategy
from sheetmerge.progress import MergeEvent
from sheetmerge.session import DEFAULT_OUTPUT_NAME, MergeSession

EXIT_OK = 0
EXIT_MERGE_ERROR = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130


def collect_source_paths(inputs: List[str]) -> List[str]:
    collected: List[str] = []
    for raw in inputs:
        path = Path(raw).expanduser()
        if path.is_dir():
            for child in sorted(path.rglob("*")):
                if child.is_file() and _is_workbook(child):
                    collected.append(str(child))
        elif path.is_file():
            if _is_workbook(path):
                collected.append(str(path))
            else:
                print(f"[warn] not an Excel workbook: {raw}")
        else:
            print(f"[warn] input not found: {raw}")
    return collected


def _is_workbook(path: Path) -> bool:
    # Excel lock files (~$name.xlsx) are rejected by is_supported
    return DEFAULT_READER_CONFIG.is_supported(path.name)


def parse_sheet_filters(values: Optional[List[str]]) -> Dict[str, List[str]]:
    """``["a.xlsx:Enero", "a.xlsx:Febrero"]`` -> ``{"a.xlsx": ["Enero", "Febrero"]}``"""
    filters: Dict[str, List[str]] = {}
    for value in values or []:
        file_part, sep, sheet = value.rpartition(":")
        if not sep or not file_part.strip() or not sheet.strip():
            raise ValueError(f"--sheets expects FILE:SHEET, got '{value}'")
        filters.setdefault(file_part.strip(), []).append(sheet.strip())
    return filters


def default_output_path(output_dir: str, timestamp: bool) -> str:
    name = DEFAULT_OUTPUT_NAME
    if timestamp:
        stem, suffix = Path(name).stem, Path(name).suffix
        name = f"{stem}_{datetime.now().strftime('%Y%m%d_%H%M%S')}{suffix}"
    return str(Path(output_dir).expanduser() / name)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Merge rows of several Excel workbooks on a shared key column."
    )
    parser.add_argument(
        "--inputs",
        nargs="+",
        required=True,
        help="Input workbooks or directories (.xlsx, .xlsm, .xls).",
    )
    parser.add_argument(
        "--key",
        default=None,
        help="Key column name; matched ignoring case, accents and extra spaces.",
    )
    parser.add_argument(
        "--sheets",
        nargs="+",
        default=None,
        help="Restrict a file to some sheets, as FILE:SHEET (repeatable).",
    )
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in MergeStrategy],
        default=None,
        help="Merge strategy (default: env MERGE_DEFAULT_STRATEGY or direct).",
    )
    parser.add_argument(
        "--output",
        default=None,
        help=f"Output workbook path (default: {DEFAULT_OUTPUT_NAME} in --output-dir).",
    )
    parser.add_argument(
        "--output-dir",
        default=".",
        help="Directory for the default output file.",
    )
    parser.add_argument(
        "--output-timestamp",
        action="store_true",
        help="Append a timestamp to the default output filename.",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Rows per streamed chunk (default: env MERGE_CHUNK_SIZE or 1000).",
    )
    parser.add_argument(
        "--list-columns",
        action="store_true",
        help="Print the columns shared by every selected sheet and exit.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print progress events and debug logging.",
    )
    return parser.parse_args(argv)


def print_event(event: MergeEvent) -> None:
    percent = f"{event.percent:3d}% " if event.percent is not None else ""
    print(f"[{event.stage}] {percent}{event.message}")


def apply_sheet_filters(session: MergeSession, filters: Dict[str, List[str]]) -> None:
    for file_ref, sheets in filters.items():
        session.select_sheets(file_ref, sheets)
    for selection in session.files:
        if selection.file_name not in filters and selection.file_path not in filters:
            continue
        if not selection.has_selected_sheets:
            print(f"[warn] no sheet selected in {selection.file_name}")
    session.confirm_selection()


def run_merge(session: MergeSession, output_path: str, strategy: Optional[str]) -> str:
    # The merge runs on a worker so Ctrl-C can cancel it cooperatively.
    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(session.run_merge, output_path, strategy)
        try:
            return future.result()
        except KeyboardInterrupt:
            session.cancel()
            return future.result()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    set_level("DEBUG" if args.verbose else settings.LOG_LEVEL)

    file_paths = collect_source_paths(args.inputs)
    if not file_paths:
        print("[error] no valid input files found.")
        return EXIT_USAGE

    try:
        filters = parse_sheet_filters(args.sheets)
        engine = MergeEngine(
            settings=settings,
            progress=print_event if args.verbose else None,
            chunk_size=args.chunk_size,
        )
    except ValueError as exc:
        print(f"[error] {exc}")
        return EXIT_USAGE

    session = MergeSession(engine=engine, settings=settings)
    session.load_files(file_paths)
    for failure in session.load_errors:
        print(f"[warn] could not read {failure.file_name}: {failure.error}")
    if not session.files:
        print("[error] no sheet with a header row found in the inputs.")
        return EXIT_MERGE_ERROR

    if filters:
        try:
            apply_sheet_filters(session, filters)
        except InvalidMergeArgumentError as exc:
            print(f"[error] {exc}")
            return EXIT_USAGE

    if args.list_columns:
        for column in session.common_columns:
            print(column)
        return EXIT_OK

    try:
        if args.key:
            session.choose_key(args.key)
        elif len(session.common_columns) == 1:
            session.choose_key(session.common_columns[0])
        else:
            raise InvalidMergeArgumentError("--key is required when the sheets share more than one column.")
    except InvalidMergeArgumentError as exc:
        print(f"[error] {exc}")
        if session.common_columns:
            print("Candidate key columns:")
            for column in session.common_columns:
                print(f"  {column}")
        else:
            print("The selected sheets have no column in common.")
        return EXIT_USAGE

    output_path = args.output or default_output_path(args.output_dir, args.output_timestamp)
    try:
        location = run_merge(session, output_path, args.strategy)
    except (MergeCancelledError, KeyboardInterrupt):
        print("[error] merge cancelled.")
        return EXIT_CANCELLED
    except (MissingKeyColumnError, InvalidMergeArgumentError) as exc:
        print(f"[error] {exc}")
        return EXIT_USAGE
    except (MergeError, ValueError, OSError) as exc:
        print(f"[error] {exc}")
        return EXIT_MERGE_ERROR

    print("Merged:", location)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
