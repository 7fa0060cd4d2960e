import pytest
from openpyxl import load_workbook

from sheetmerge.excel import writer as writer_module
from sheetmerge.excel.writer import ExcelCellSink, ExcelWriter
from sheetmerge.models import MergedTable


def _sheet_values(path):
    wb = load_workbook(path)
    ws = wb.active
    return ws.title, [list(r) for r in ws.iter_rows(values_only=True)]


def _table():
    return MergedTable(
        headers=["Key", "a:S:Name", "b:S:City"],
        rows=[
            {"Key": "1", "a:S:Name": "Ann", "b:S:City": "NYC"},
            {"Key": "1", "a:S:Name": None, "b:S:City": "LA"},
        ],
    )


def test_write_table_creates_merged_sheet(tmp_path) -> None:
    out = tmp_path / "nested" / "dir" / "merged.xlsx"
    path = ExcelWriter().write_table(str(out), _table())

    assert path == str(out)
    title, values = _sheet_values(out)
    assert title == "Merged"
    assert values == [
        ["Key", "a:S:Name", "b:S:City"],
        ["1", "Ann", "NYC"],
        ["1", None, "LA"],
    ]


def test_values_stay_text(tmp_path) -> None:
    table = MergedTable(headers=["Key", "v"], rows=[{"Key": "00123", "v": "=SUM(A1:A2)"}])
    out = tmp_path / "text.xlsx"
    ExcelWriter().write_table(str(out), table)

    wb = load_workbook(out)
    cell = wb.active["B2"]
    assert cell.value == "=SUM(A1:A2)"
    assert cell.data_type == "s"
    assert wb.active["A2"].value == "00123"


def test_control_characters_are_stripped(tmp_path) -> None:
    table = MergedTable(headers=["Key"], rows=[{"Key": "a\x01b"}])
    out = tmp_path / "ctl.xlsx"
    ExcelWriter().write_table(str(out), table)
    assert _sheet_values(out)[1][1] == ["ab"]


def test_columns_are_auto_sized_and_capped(tmp_path) -> None:
    table = MergedTable(headers=["Key", "wide"], rows=[{"Key": "1", "wide": "x" * 500}])
    out = tmp_path / "widths.xlsx"
    ExcelWriter(max_column_width=40).write_table(str(out), table)

    ws = load_workbook(out).active
    assert ws.column_dimensions["A"].width == 8
    assert ws.column_dimensions["B"].width == 40


def test_sheet_name_from_settings(monkeypatch, tmp_path) -> None:
    from sheetmerge.config import reset_settings

    monkeypatch.setenv("OUTPUT_SHEET_NAME", "Consolidado")
    reset_settings()
    out = tmp_path / "named.xlsx"
    ExcelWriter().write_table(str(out), _table())
    assert _sheet_values(out)[0] == "Consolidado"


def test_row_limit_enforced(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(writer_module, "EXCEL_MAX_ROWS", 2)
    with pytest.raises(ValueError, match="at most"):
        ExcelWriter().write_table(str(tmp_path / "big.xlsx"), _table())


def test_cell_sink_accepts_out_of_order_writes(tmp_path) -> None:
    out = tmp_path / "sink.xlsx"
    sink = ExcelCellSink(str(out))
    sink.begin(["Key", "v"], 2)
    sink.write_cell(1, 1, "last")
    sink.write_row_values(0, 0, ["k0", "first"])
    sink.write_cell(1, 0, "k1")
    assert not out.exists()

    location = sink.finalize()

    assert location == str(out)
    assert _sheet_values(out)[1] == [["Key", "v"], ["k0", "first"], ["k1", "last"]]


def test_cell_sink_requires_begin(tmp_path) -> None:
    sink = ExcelCellSink(str(tmp_path / "x.xlsx"))
    with pytest.raises(RuntimeError):
        sink.write_cell(0, 0, "x")
    with pytest.raises(RuntimeError):
        sink.finalize()


def test_cell_sink_rejects_out_of_range(tmp_path) -> None:
    sink = ExcelCellSink(str(tmp_path / "x.xlsx"))
    sink.begin(["Key"], 1)
    with pytest.raises(IndexError):
        sink.write_cell(0, 1, "x")
    with pytest.raises(IndexError):
        sink.write_cell(-1, 0, "x")
