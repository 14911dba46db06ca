from __future__ import annotations

import json
from datetime import datetime
from io import BytesIO
from pathlib import Path

import pandas as pd
import pytest
from openpyxl import Workbook as OpenpyxlWorkbook

from price_list_merger import io as io_mod
from price_list_merger.errors import DecodeError
from price_list_merger.io import (
    cell_ref,
    decode_workbook,
    parse_cell_ref,
    parse_range_ref,
    range_ref,
    write_json,
)
from price_list_merger.models import CellRange, CellType, Sheet, Workbook


def _xlsx_bytes(wb: OpenpyxlWorkbook) -> bytes:
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _price_workbook() -> OpenpyxlWorkbook:
    wb = OpenpyxlWorkbook()
    ws = wb.active
    ws.title = "Prices"
    ws.append(["Code", "Cost", "Active", "Updated", "Check"])
    ws.append(["A-1", 12.5, True, datetime(2024, 1, 5), "#DIV/0!"])
    ws["B2"].number_format = "0.00"
    ws.column_dimensions["A"].width = 30
    ws.column_dimensions["C"].width = 15
    extra = wb.create_sheet("Notes")
    extra["B3"] = "see prices"
    return wb


# ── Addressing ───────────────────────────────────────────────────


def test_cell_ref_round_trips() -> None:
    assert cell_ref(0, 0) == "A1"
    assert cell_ref(1, 27) == "AB2"
    assert parse_cell_ref("ab2") == (1, 27)


def test_cell_ref_rejects_negative_coordinates() -> None:
    with pytest.raises(ValueError, match=">= 0"):
        cell_ref(-1, 0)


def test_range_ref() -> None:
    assert range_ref(CellRange(0, 0, 9, 5)) == "A1:F10"
    assert range_ref(CellRange(1, 1, 1, 1)) == "B2"
    assert parse_range_ref("A1:F10") == CellRange(0, 0, 9, 5)
    assert parse_range_ref("c3") == CellRange(2, 2, 2, 2)


def test_parse_range_ref_rejects_whole_columns() -> None:
    with pytest.raises(ValueError, match="Unbounded"):
        parse_range_ref("A:A")


# ── Decoding ─────────────────────────────────────────────────────


def test_decode_workbook_tags_cells() -> None:
    workbook = decode_workbook(_xlsx_bytes(_price_workbook()), "prices.xlsx")

    assert workbook.sheet_names == ["Prices", "Notes"]
    sheet = workbook.sheets["Prices"]
    assert sheet.used_range == CellRange(0, 0, 1, 4)
    assert sheet.get(0, 1).kind is CellType.STRING
    cost = sheet.get(1, 1)
    assert cost.kind is CellType.NUMBER
    assert cost.value == 12.5
    assert cost.number_format == "0.00"
    assert sheet.get(1, 2).kind is CellType.BOOLEAN
    assert sheet.get(1, 3).kind is CellType.DATE
    assert sheet.get(1, 4).kind is CellType.ERROR
    assert sheet.get(0, 0).number_format is None


def test_decode_workbook_keeps_column_widths() -> None:
    workbook = decode_workbook(_xlsx_bytes(_price_workbook()), "prices.xlsx")

    assert workbook.sheets["Prices"].column_widths == [30.0, None, 15.0]
    assert workbook.sheets["Notes"].column_widths is None


def test_decode_workbook_keeps_offset_range() -> None:
    workbook = decode_workbook(_xlsx_bytes(_price_workbook()), "prices.xlsx")

    assert workbook.sheets["Notes"].used_range == CellRange(2, 1, 2, 1)


def test_decode_workbook_rejects_empty_bytes() -> None:
    with pytest.raises(DecodeError, match="File is empty"):
        decode_workbook(b"", "prices.xlsx")


def test_decode_workbook_reports_last_failure() -> None:
    with pytest.raises(DecodeError, match="Failed to parse Excel file") as excinfo:
        decode_workbook(b"this is not a spreadsheet", "prices.xlsx")

    assert excinfo.value.file_name == "prices.xlsx"
    assert excinfo.value.__cause__ is not None


def test_decode_workbook_falls_back_to_next_strategy(monkeypatch: pytest.MonkeyPatch) -> None:
    fallback = Workbook()
    fallback.append_sheet("Recovered", Sheet.from_rows([["Cost"], [1]]))
    calls: list[str] = []

    def _broken(data: bytes, suffix: str) -> Workbook:
        calls.append("broken")
        raise KeyError("xl/workbook.xml")

    def _working(data: bytes, suffix: str) -> Workbook:
        calls.append(suffix)
        return fallback

    monkeypatch.setattr(
        io_mod, "DECODE_STRATEGIES", (("broken", _broken), ("working", _working))
    )

    assert decode_workbook(b"bytes", "Prices.XLSX") is fallback
    assert calls == ["broken", ".xlsx"]


def test_read_pandas_drops_missing_values() -> None:
    wb = OpenpyxlWorkbook()
    ws = wb.active
    ws.title = "Prices"
    ws.append(["Code", "Price"])
    ws.append(["A", 10])
    ws.append(["B", None])

    workbook = io_mod._read_pandas(_xlsx_bytes(wb), ".xlsx")

    sheet = workbook.sheets["Prices"]
    assert sheet.get(1, 1).kind is CellType.NUMBER
    assert sheet.get(1, 1).value == 10
    assert sheet.get(2, 1) is None
    assert sheet.used_range == CellRange(0, 0, 2, 1)


def test_read_pandas_missing_engine_is_actionable(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_read_excel(*_args: object, **_kwargs: object) -> dict[str, pd.DataFrame]:
        raise ImportError("Missing optional dependency 'xlrd'.")

    monkeypatch.setattr(pd, "read_excel", _fake_read_excel)

    with pytest.raises(ValueError, match="pip install xlrd"):
        io_mod._read_pandas(b"legacy", ".xls")


# ── Writing ──────────────────────────────────────────────────────


def test_write_json_is_sorted_and_atomic(tmp_path: Path) -> None:
    out = write_json(
        tmp_path / "nested" / "report.json",
        {"b": Path("x.xlsx"), "a": datetime(2024, 1, 2, 3, 4, 5)},
    )

    text = out.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert list(json.loads(text)) == ["a", "b"]
    assert json.loads(text)["a"] == "2024-01-02T03:04:05"
    assert not (tmp_path / "nested" / "report.json.tmp").exists()


def test_write_json_rejects_unknown_types(tmp_path: Path) -> None:
    with pytest.raises(TypeError, match="not JSON serializable"):
        write_json(tmp_path / "bad.json", {"value": object()})
