import random
from datetime import datetime

import pytest

from conftest import FakeReader
from sheetmerge.merge.engine import MergeEngine
from sheetmerge.models import FileSelection, MergeStrategy


def _random_books(seed: int):
    rng = random.Random(seed)
    keys = [f"K{n:03d}" for n in range(40)]
    books = {}
    for f in range(3):
        sheets = {}
        for s in range(2):
            headers = ["Codigo"] + [f"Col{f}{s}{c}" for c in range(rng.randint(0, 3))]
            rng.shuffle(headers)
            rows = [headers]
            for _ in range(rng.randint(0, 60)):
                row = [f"v{rng.randint(0, 999)}" for _ in headers]
                row[headers.index("Codigo")] = rng.choice(keys + ["", None])
                rows.append(row)
            sheets[f"Hoja{s}"] = rows
        books[f"f{f}.xlsx"] = sheets
    return books


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_all_strategies_produce_the_same_table(seed) -> None:
    reader = FakeReader(_random_books(seed))
    engine = MergeEngine(reader, chunk_size=7, key_batch_size=3)
    inputs = ["f0.xlsx", "f1.xlsx", "f2.xlsx"]

    batch = engine.merge(inputs, "codigo", strategy=MergeStrategy.BATCH)
    streaming = engine.merge(inputs, "codigo", strategy=MergeStrategy.STREAMING)
    direct = engine.merge(inputs, "codigo", strategy=MergeStrategy.DIRECT)

    assert batch.headers == streaming.headers == direct.headers
    assert batch.rows == streaming.rows == direct.rows


@pytest.mark.parametrize("strategy", [s.value for s in MergeStrategy])
def test_scenario_is_identical_for_every_strategy(scenario_reader, strategy) -> None:
    table = MergeEngine(scenario_reader).merge(["a.xlsx", "b.xlsx"], "id", strategy=strategy)
    assert table.headers == ["Key", "a:SheetA:Name", "b:SheetB:City"]
    assert table.to_records() == [
        ["1", "Ann", "NYC"],
        ["1", None, "LA"],
        ["2", "Bob", None],
        ["3", None, "SF"],
    ]


@pytest.mark.parametrize("strategy", [s.value for s in MergeStrategy])
def test_merge_is_idempotent(strategy) -> None:
    reader = FakeReader(_random_books(3))
    engine = MergeEngine(reader)
    first = engine.merge(["f0.xlsx", "f1.xlsx"], "Codigo", strategy=strategy)
    second = engine.merge(["f0.xlsx", "f1.xlsx"], "Codigo", strategy=strategy)
    assert first == second


def test_sheet_order_follows_selection_order() -> None:
    reader = FakeReader({
        "a.xlsx": {
            "Uno": [["ID", "X"], [1, "u"]],
            "Dos": [["ID", "Y"], [1, "d"]],
        },
    })
    selection = FileSelection(
        file_path="a.xlsx",
        available_sheets=["Uno", "Dos"],
        selected_sheets=["Dos", "Uno"],
    )
    for strategy in MergeStrategy:
        table = MergeEngine(reader).merge([selection], "id", strategy=strategy)
        assert table.headers == ["Key", "a:Dos:Y", "a:Uno:X"]


def test_default_strategy_comes_from_settings(monkeypatch, scenario_reader) -> None:
    from sheetmerge.config import reset_settings

    monkeypatch.setenv("MERGE_DEFAULT_STRATEGY", "streaming")
    reset_settings()
    engine = MergeEngine(scenario_reader)
    engine.merge(["a.xlsx", "b.xlsx"], "id")

    assert scenario_reader.count_calls("iter_row_chunks") == 2
    assert scenario_reader.count_calls("read_sheet") == 0


def test_strategies_agree_on_real_workbooks(workbook_factory) -> None:
    ventas = workbook_factory("ventas.xlsx", {
        "Enero": [
            ["Código", None, "Fecha", "Monto", "Pagado"],
            ["A1", "x", datetime(2024, 1, 15), 10.0, True],
            ["A1", "#DIV/0!", datetime(2024, 1, 16, 9, 30), 2.5, False],
            ["#N/A", "huerfana", None, 3.0, None],
            [7.0, None, None, "#REF!", True],
        ],
    })
    stock = workbook_factory("stock.xlsx", {
        "Hoja": [
            [],
            ["  codigo ", "Cantidad"],
            ["7", 4.0],
            ["B2", "#VALUE!"],
        ],
    })
    engine = MergeEngine(chunk_size=2, key_batch_size=2)

    batch = engine.merge([ventas, stock], "codigo", strategy=MergeStrategy.BATCH)
    streaming = engine.merge([ventas, stock], "codigo", strategy=MergeStrategy.STREAMING)
    direct = engine.merge([ventas, stock], "codigo", strategy=MergeStrategy.DIRECT)

    assert batch.headers == streaming.headers == direct.headers
    assert batch.rows == streaming.rows == direct.rows
    assert batch.to_records() == [
        ["7", None, None, None, "TRUE", "4"],
        ["A1", "x", "2024-01-15", "10", "TRUE", None],
        ["A1", None, "2024-01-16 09:30:00", "2.5", "FALSE", None],
        ["B2", None, None, None, None, None],
    ]
