"""Worksheet structure analysis — header presence, column types, cost column."""

from __future__ import annotations

from price_list_merger.detect import detect_cost_column
from price_list_merger.errors import EmptyOrInvalidSheet
from price_list_merger.io import range_ref
from price_list_merger.markup import coerce_number
from price_list_merger.models import (
    CellRange,
    CellType,
    ColumnType,
    DataRange,
    Sheet,
    WorksheetAnalysis,
)

SAMPLE_ROWS = 100
TYPE_THRESHOLD = 0.7


def has_header_row(sheet: Sheet, rng: CellRange) -> bool:
    """True when strictly more than half of the first row's populated cells are text."""
    populated = [
        cell for _col, cell in sheet.iter_row(rng.min_row)
        if cell is not None and not cell.is_empty
    ]
    if not populated:
        return False
    strings = sum(1 for cell in populated if cell.kind is CellType.STRING)
    return strings > len(populated) * 0.5


def infer_column_type(sheet: Sheet, col: int, start_row: int, end_row: int) -> ColumnType:
    numbers = 0
    strings = 0
    total = 0
    for row in range(start_row, min(start_row + SAMPLE_ROWS, end_row + 1)):
        cell = sheet.get(row, col)
        if cell is None or cell.is_empty:
            continue
        total += 1
        if cell.kind is CellType.DATE or coerce_number(cell) is not None:
            numbers += 1
        else:
            strings += 1

    if total == 0:
        return "empty"
    if numbers / total >= TYPE_THRESHOLD:
        return "number"
    if strings / total >= TYPE_THRESHOLD:
        return "string"
    return "mixed"


def analyze_worksheet(sheet: Sheet) -> WorksheetAnalysis:
    """Derive structural metadata for *sheet*.

    Raises
    ------
    EmptyOrInvalidSheet
        If the sheet has no used range or the range is inverted.
    """
    rng = sheet.used_range
    if rng is None:
        raise EmptyOrInvalidSheet("Worksheet has no used range")
    if rng.is_inverted:
        raise EmptyOrInvalidSheet(f"Worksheet range is inverted: {range_ref(rng)}")

    has_headers = has_header_row(sheet, rng)
    start_row = rng.min_row + 1 if has_headers else rng.min_row
    column_types = tuple(
        infer_column_type(sheet, col, start_row, rng.max_row) for col in rng.cols()
    )

    return WorksheetAnalysis(
        has_headers=has_headers,
        header_row=rng.min_row,
        data_range=DataRange(
            start_row=start_row,
            end_row=rng.max_row,
            start_col=rng.min_col,
            end_col=rng.max_col,
        ),
        column_types=column_types,
        cost_column_index=detect_cost_column(sheet),
        total_rows=rng.n_rows,
        total_cols=rng.n_cols,
    )


def describe_range(sheet: Sheet) -> str:
    """A1-style description of the sheet's used range, for messages."""
    return "empty" if sheet.used_range is None else range_ref(sheet.used_range)
