"""I/O helpers — cell addressing, workbook decoding, JSON artifacts."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, cast

import pandas as pd
from openpyxl import load_workbook
from openpyxl.cell.cell import ERROR_CODES
from openpyxl.utils import column_index_from_string, get_column_letter
from openpyxl.utils.cell import coordinate_from_string, range_boundaries

from price_list_merger.errors import DecodeError
from price_list_merger.models import Cell, CellRange, Sheet, Workbook

logger = logging.getLogger(__name__)

# ── Addressing ───────────────────────────────────────────────────


def cell_ref(row: int, col: int) -> str:
    """Return the A1 reference for 0-based ``(row, col)``."""
    if row < 0 or col < 0:
        raise ValueError(f"Cell coordinates must be >= 0, got ({row}, {col})")
    return f"{get_column_letter(col + 1)}{row + 1}"


def parse_cell_ref(ref: str) -> tuple[int, int]:
    """Inverse of :func:`cell_ref`."""
    letters, row = coordinate_from_string(ref.strip().upper())
    return row - 1, column_index_from_string(letters) - 1


def range_ref(rng: CellRange) -> str:
    start = cell_ref(rng.min_row, rng.min_col)
    end = cell_ref(rng.max_row, rng.max_col)
    return start if start == end else f"{start}:{end}"


def parse_range_ref(ref: str) -> CellRange:
    """Inverse of :func:`range_ref`.  Whole-row/column references are rejected."""
    min_col, min_row, max_col, max_row = range_boundaries(ref.strip().upper())
    if None in (min_col, min_row, max_col, max_row):
        raise ValueError(f"Unbounded range reference: {ref!r}")
    return CellRange(
        cast(int, min_row) - 1,
        cast(int, min_col) - 1,
        cast(int, max_row) - 1,
        cast(int, max_col) - 1,
    )


# ── Decoding ─────────────────────────────────────────────────────


def _cell_from_openpyxl(value: Any, data_type: str, number_format: str | None) -> Cell:
    fmt = number_format if number_format and number_format != "General" else None
    if data_type == "e" or (isinstance(value, str) and value in ERROR_CODES):
        return Cell.error(str(value))
    return Cell.from_value(value, fmt)


def _enclose_cells(declared: CellRange | None, sheet: Sheet) -> CellRange | None:
    if not sheet.cells:
        return None
    rng = declared
    for row, col in sheet.cells:
        if rng is None:
            rng = CellRange(row, col, row, col)
        elif not rng.contains(row, col):
            rng = rng.enclose(row, col)
    return rng


def _column_widths(ws: Any) -> list[float | None] | None:
    dimensions = getattr(ws, "column_dimensions", None)
    if not dimensions:
        return None
    declared: dict[int, float] = {}
    for key, dim in dimensions.items():
        if not dim.customWidth or dim.width is None:
            continue
        start = dim.min or column_index_from_string(key)
        end = dim.max or start
        for idx in range(start, end + 1):
            declared[idx - 1] = float(dim.width)
    if not declared:
        return None
    widths: list[float | None] = [None] * (max(declared) + 1)
    for idx, width in declared.items():
        widths[idx] = width
    return widths


def _declared_range(ws: Any) -> CellRange | None:
    try:
        min_col, min_row, max_col, max_row = range_boundaries(ws.calculate_dimension())
    except (TypeError, ValueError):
        return None
    if None in (min_col, min_row, max_col, max_row):
        return None
    return CellRange(min_row - 1, min_col - 1, max_row - 1, max_col - 1)


def _sheet_from_worksheet(ws: Any) -> Sheet:
    # Iterating a full worksheet materializes cells from A1, so the declared
    # dimension has to be read first.
    declared = _declared_range(ws)
    sheet = Sheet()
    for row in ws.iter_rows():
        for cell in row:
            if cell.value is None:
                continue
            sheet.cells[(cell.row - 1, cell.column - 1)] = _cell_from_openpyxl(
                cell.value, cell.data_type, cell.number_format
            )

    sheet.used_range = _enclose_cells(declared, sheet)
    sheet.column_widths = _column_widths(ws)
    return sheet


def _read_openpyxl(data: bytes, *, read_only: bool) -> Workbook:
    wb = load_workbook(BytesIO(data), read_only=read_only, data_only=True, keep_links=False)
    try:
        workbook = Workbook()
        for ws in wb.worksheets:
            workbook.append_sheet(ws.title, _sheet_from_worksheet(ws))
        return workbook
    finally:
        if read_only:
            wb.close()


def _read_full(data: bytes, suffix: str) -> Workbook:
    return _read_openpyxl(data, read_only=False)


def _read_streaming(data: bytes, suffix: str) -> Workbook:
    return _read_openpyxl(data, read_only=True)


def _plain_value(val: Any) -> Any:
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        return val
    if isinstance(val, pd.Timestamp):
        return val.to_pydatetime()
    item = getattr(val, "item", None)
    if callable(item):
        return item()
    return val


def _read_pandas(data: bytes, suffix: str) -> Workbook:
    engine = "xlrd" if suffix == ".xls" else "openpyxl"
    read_excel = cast(Callable[..., dict[str, pd.DataFrame]], getattr(pd, "read_excel"))
    try:
        frames = read_excel(BytesIO(data), sheet_name=None, header=None, engine=engine)
    except ImportError as exc:
        raise ValueError(
            f"Reading {suffix or 'this file'} requires the '{engine}' package. "
            f"Either convert to .xlsx or add dependency: pip install {engine}"
        ) from exc

    workbook = Workbook()
    for name, frame in frames.items():
        rows = [
            [_plain_value(val) for val in row]
            for row in frame.itertuples(index=False, name=None)
        ]
        workbook.append_sheet(str(name), Sheet.from_rows(rows))
    return workbook


DecodeStrategy = Callable[[bytes, str], Workbook]

DECODE_STRATEGIES: tuple[tuple[str, DecodeStrategy], ...] = (
    ("openpyxl", _read_full),
    ("openpyxl-read-only", _read_streaming),
    ("pandas", _read_pandas),
)


def decode_workbook(data: bytes, file_name: str = "") -> Workbook:
    """Decode spreadsheet bytes, trying each strategy in order.

    Raises
    ------
    DecodeError
        If *data* is empty or every strategy failed; the message carries
        the last strategy's error.
    """
    if not data:
        raise DecodeError("File is empty", file_name=file_name or None)

    suffix = Path(file_name).suffix.lower()
    last_exc: Exception | None = None
    for name, strategy in DECODE_STRATEGIES:
        try:
            workbook = strategy(data, suffix)
        except Exception as exc:  # codecs raise anything from BadZipFile to KeyError
            logger.debug("Decode strategy %s failed for %s: %s", name, file_name, exc)
            last_exc = exc
            continue
        if last_exc is not None:
            logger.info("Decoded %s with fallback strategy %s", file_name, name)
        return workbook

    raise DecodeError(
        f"Failed to parse Excel file: {last_exc}", file_name=file_name or None
    ) from last_exc


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
