import pytest

from sheetmerge.merge.schema import OutputSchemaBuilder, output_column_name
from sheetmerge.models import SheetHeaders
from sheetmerge.normalize import DEFAULT_NORMALIZER


def _schema(key="id"):
    return OutputSchemaBuilder(DEFAULT_NORMALIZER, key)


def test_column_name_uses_file_stem() -> None:
    assert output_column_name("ventas 2024.xlsx", "Enero", "Total") == "ventas 2024:Enero:Total"


def test_key_first_then_sheets_in_processing_order() -> None:
    schema = _schema()
    schema.add_sheet("/data/a.xlsx", SheetHeaders(file_name="a.xlsx", sheet_name="SheetA", headers=["Name", "ID"]))
    schema.add_sheet("/data/b.xlsx", SheetHeaders(file_name="b.xlsx", sheet_name="SheetB", headers=["ID", "City", "Zip"]))

    assert schema.headers == ["Key", "a:SheetA:Name", "b:SheetB:City", "b:SheetB:Zip"]
    assert [l.column_offset for l in schema.layouts] == [1, 2]
    assert schema.column_count == 1 + (2 - 1) + (3 - 1)


def test_key_header_matched_by_normalized_form() -> None:
    schema = _schema("codigo cliente")
    layout = schema.add_sheet(
        "x.xlsx",
        SheetHeaders(file_name="x.xlsx", sheet_name="S", headers=[" Código  Cliente ", "Saldo"]),
    )
    assert layout.key_header == " Código  Cliente "
    assert layout.value_headers == ["Saldo"]
    assert layout.output_columns == ["x:S:Saldo"]


def test_original_header_text_kept_in_output() -> None:
    schema = _schema()
    schema.add_sheet("a.xlsx", SheetHeaders(file_name="a.xlsx", sheet_name="S", headers=["ID", "  Fecha Alta "]))
    assert schema.headers[-1] == "a:S:  Fecha Alta "


def test_key_only_sheet_adds_no_columns() -> None:
    schema = _schema()
    layout = schema.add_sheet("a.xlsx", SheetHeaders(file_name="a.xlsx", sheet_name="S", headers=["ID"]))
    assert layout.width == 0
    assert schema.headers == ["Key"]


def test_sheet_without_key_is_rejected() -> None:
    with pytest.raises(ValueError):
        _schema().add_sheet("a.xlsx", SheetHeaders(file_name="a.xlsx", sheet_name="S", headers=["Name"]))
