import pytest

from conftest import FakeReader
from sheetmerge.errors import (
    FileReadError,
    InvalidMergeArgumentError,
    MissingKeyColumnError,
    NoEligibleSheetsError,
)
from sheetmerge.merge.engine import MergeEngine
from sheetmerge.models import FileSelection, MergeStrategy

STRATEGIES = [s.value for s in MergeStrategy]


@pytest.mark.parametrize("key", ["", "   ", None])
def test_blank_key_rejected_before_any_read(scenario_reader, key) -> None:
    engine = MergeEngine(scenario_reader)
    with pytest.raises(InvalidMergeArgumentError):
        engine.merge(["a.xlsx", "b.xlsx"], key)
    assert scenario_reader.calls == []


def test_empty_inputs_rejected(scenario_reader) -> None:
    with pytest.raises(InvalidMergeArgumentError):
        MergeEngine(scenario_reader).merge([], "id")


def test_selection_without_sheets_rejected(scenario_reader) -> None:
    selection = FileSelection(file_path="a.xlsx", available_sheets=["SheetA"], selected_sheets=[])
    with pytest.raises(InvalidMergeArgumentError):
        MergeEngine(scenario_reader).merge([selection], "id")
    assert scenario_reader.calls == []


def test_unknown_strategy_rejected(scenario_reader) -> None:
    with pytest.raises(InvalidMergeArgumentError):
        MergeEngine(scenario_reader).merge(["a.xlsx"], "id", strategy="parallel")


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_missing_key_reports_every_offending_sheet(strategy) -> None:
    reader = FakeReader({
        "a.xlsx": {"Enero": [["ID", "Total"], [1, 5]], "Febrero": [["Codigo", "Total"], [1, 6]]},
        "b.xlsx": {"Hoja1": [["Nombre"], ["x"]]},
        "c.xlsx": {"Hoja1": [["id", "Total"], [1, 7]]},
    })
    with pytest.raises(MissingKeyColumnError) as excinfo:
        MergeEngine(reader).merge(["a.xlsx", "b.xlsx", "c.xlsx"], "ID", strategy=strategy)

    err = excinfo.value
    assert err.key == "id"
    assert err.sheets == ["a.xlsx:Febrero", "b.xlsx:Hoja1"]
    assert "a.xlsx:Febrero\nb.xlsx:Hoja1" in str(err)


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_read_failures_aggregated(strategy) -> None:
    reader = FakeReader(
        {"a.xlsx": {"S": [["ID"], [1]]}, "b.xlsx": {}, "c.xlsx": {}},
        failing=["b.xlsx", "c.xlsx"],
    )
    with pytest.raises(FileReadError) as excinfo:
        MergeEngine(reader).merge(["a.xlsx", "b.xlsx", "c.xlsx"], "ID", strategy=strategy)

    err = excinfo.value
    assert err.file_names == ["b.xlsx", "c.xlsx"]
    assert all(isinstance(f.error, OSError) for f in err.failures)
    assert str(err).startswith("Failed to read 2 file(s):")


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_no_eligible_sheets(strategy) -> None:
    reader = FakeReader({"a.xlsx": {"Vacia": []}})
    with pytest.raises(NoEligibleSheetsError):
        MergeEngine(reader).merge(["a.xlsx"], "ID", strategy=strategy)


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_selected_sheet_missing_from_workbook_is_skipped(strategy) -> None:
    reader = FakeReader({"a.xlsx": {"Enero": [["ID", "Total"], [1, 5]]}})
    selection = FileSelection(
        file_path="a.xlsx",
        available_sheets=["Enero", "Borrada"],
        selected_sheets=["Enero", "Borrada"],
    )
    table = MergeEngine(reader).merge([selection], "id", strategy=strategy)
    assert table.headers == ["Key", "a:Enero:Total"]
    assert table.rows == [{"Key": "1", "a:Enero:Total": "5"}]
