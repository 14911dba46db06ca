from __future__ import annotations

from datetime import date, datetime

import pytest

from price_list_merger.models import (
    Cell,
    CellRange,
    CellType,
    DataRange,
    FileObject,
    FileOutcome,
    FileStatus,
    MergeSummary,
    Sheet,
    ValidationResult,
    Workbook,
    WorksheetAnalysis,
)


@pytest.mark.parametrize(
    ("value", "kind"),
    [
        (None, CellType.BLANK),
        (True, CellType.BOOLEAN),
        (3, CellType.NUMBER),
        (2.5, CellType.NUMBER),
        ("3", CellType.STRING),
        (datetime(2024, 1, 1), CellType.DATE),
        (date(2024, 1, 1), CellType.DATE),
    ],
)
def test_cell_from_value_tags_kind(value: object, kind: CellType) -> None:
    assert Cell.from_value(value).kind is kind


def test_cell_is_empty() -> None:
    assert Cell.blank().is_empty
    assert Cell.text("").is_empty
    assert not Cell.number(0).is_empty


def test_cell_range_geometry() -> None:
    rng = CellRange(1, 2, 4, 3)

    assert (rng.n_rows, rng.n_cols) == (4, 2)
    assert rng.contains(4, 3)
    assert not rng.contains(0, 2)
    assert rng.widen(5) == CellRange(1, 2, 4, 8)
    assert rng.enclose(0, 9) == CellRange(0, 2, 4, 9)
    assert CellRange(3, 0, 2, 0).is_inverted
    assert CellRange(3, 0, 2, 0).n_rows == 0


def test_sheet_set_grows_used_range() -> None:
    sheet = Sheet()
    sheet.set(2, 3, Cell.text("x"))
    sheet.set(0, 5, Cell.number(1))

    assert sheet.used_range == CellRange(0, 3, 2, 5)
    with pytest.raises(ValueError, match=">= 0"):
        sheet.set(-1, 0, Cell.text("x"))


def test_sheet_copy_is_independent() -> None:
    sheet = Sheet.from_rows([["a", "b"]])
    sheet.column_widths = [10.0]

    clone = sheet.copy()
    clone.set(1, 0, Cell.text("c"))
    clone.column_widths.append(12.0)

    assert sheet.used_range == CellRange(0, 0, 0, 1)
    assert (1, 0) not in sheet.cells
    assert sheet.column_widths == [10.0]


def test_sheet_to_rows_fills_gaps() -> None:
    sheet = Sheet.from_rows([["a", None, "c"]], origin=(1, 1))

    assert sheet.to_rows() == [["a", None, "c"]]
    assert Sheet().to_rows() == []


def test_workbook_rejects_duplicate_sheet_names() -> None:
    workbook = Workbook(sheets=None)
    workbook.append_sheet("Prices", Sheet())

    assert workbook.sheets == {"Prices": Sheet()}
    with pytest.raises(ValueError, match="already exists"):
        workbook.append_sheet("Prices", Sheet())


def test_file_object_defaults() -> None:
    upload = FileObject(name="prices.xlsx", data=b"abc", status="processing")

    assert upload.size == 3
    assert upload.status is FileStatus.PROCESSING
    assert upload.cost_column_index == -1
    assert len(upload.id) == 32

    upload.mark_error("bad")

    assert upload.status is FileStatus.ERROR
    assert upload.errors == ["bad"]


def test_file_object_rejects_invalid_values() -> None:
    with pytest.raises(ValueError, match="size"):
        FileObject(name="x.xlsx", size=-1)
    with pytest.raises(TypeError, match="errors"):
        FileObject(name="x.xlsx", errors="oops")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        FileObject(name="x.xlsx", status="done")  # type: ignore[arg-type]


def test_validation_result() -> None:
    assert ValidationResult().is_valid
    assert not ValidationResult(errors=["File is empty"]).is_valid


def test_worksheet_analysis_validates_counts() -> None:
    data_range = DataRange(1, 3, 0, 2)

    with pytest.raises(ValueError, match="total_rows"):
        WorksheetAnalysis(True, 0, data_range, (), -1, -1, 3)
    with pytest.raises(ValueError, match="cost_column_index"):
        WorksheetAnalysis(True, 0, data_range, (), -2, 4, 3)


def test_file_outcome_to_dict_returns_list_copies() -> None:
    outcome = FileOutcome(file_name="a.xlsx", status="error", errors=["bad"])

    payload = outcome.to_dict()
    payload["errors"].append("worse")

    assert outcome.errors == ["bad"]


def test_merge_summary_rejects_more_sheets_than_files() -> None:
    with pytest.raises(ValueError, match="sheets_out"):
        MergeSummary(files_in=1, sheets_out=2)

    with pytest.raises(ValueError, match="files_in"):
        MergeSummary(files_in=-1)
