"""Master workbook writer — encodes a Workbook to .xlsx bytes and files."""

from __future__ import annotations

from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any

from openpyxl import Workbook as OpenpyxlWorkbook
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from price_list_merger.errors import NoValidWorksheets
from price_list_merger.models import Cell, CellType, Sheet, Workbook
from price_list_merger.utils import compact_timestamp

MASTER_FILE_PREFIX = "Supplier_Master_"


# ── Helpers ──────────────────────────────────────────────────────


def _excel_value(cell: Cell) -> Any:
    if isinstance(cell.value, datetime) and cell.value.tzinfo:
        return cell.value.replace(tzinfo=None)
    return cell.value


def _write_sheet(ws: Worksheet, sheet: Sheet) -> None:
    for (row, col), cell in sorted(sheet.cells.items()):
        if cell.value is None and not cell.number_format:
            continue
        target = ws.cell(row=row + 1, column=col + 1)
        target.value = _excel_value(cell)
        if cell.kind is CellType.STRING and target.data_type == "f":
            # Text that looks like a formula stays text.
            target.data_type = "s"
        if cell.number_format:
            target.number_format = cell.number_format

    for idx, width in enumerate(sheet.column_widths or []):
        if width is not None:
            ws.column_dimensions[get_column_letter(idx + 1)].width = width


def _apply_properties(wb: OpenpyxlWorkbook, properties: dict[str, Any]) -> None:
    for key in ("title", "subject", "creator", "created"):
        value = properties.get(key)
        if value is None:
            continue
        if isinstance(value, datetime) and value.tzinfo:
            value = value.replace(tzinfo=None)
        setattr(wb.properties, key, value)


# ── Public API ───────────────────────────────────────────────────


def master_file_name(now: datetime | None = None) -> str:
    """Return ``Supplier_Master_<YYYYMMDD_HHMMSS>.xlsx``."""
    return f"{MASTER_FILE_PREFIX}{compact_timestamp(now)}.xlsx"


def encode_workbook(workbook: Workbook) -> bytes:
    """Serialize *workbook* to .xlsx bytes (values, number formats, widths)."""
    if not workbook.sheet_names:
        raise NoValidWorksheets("Workbook contains no sheets")

    wb = OpenpyxlWorkbook()
    active_sheet = wb.active
    if active_sheet is not None:
        wb.remove(active_sheet)  # remove default sheet

    sheets = workbook.sheets or {}
    for name in workbook.sheet_names:
        ws = wb.create_sheet(title=name)
        sheet = sheets.get(name)
        if sheet is not None:
            _write_sheet(ws, sheet)

    _apply_properties(wb, workbook.properties)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def write_master_workbook(
    out_dir: Path, workbook: Workbook, file_name: str | None = None
) -> Path:
    """Write the master workbook into *out_dir* and return the path."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    name = file_name or master_file_name()
    if not name.lower().endswith(".xlsx"):
        name = f"{name}.xlsx"
    report_path = out_dir / name

    payload = encode_workbook(workbook)
    tmp_path = report_path.with_name(f"{report_path.stem}.tmp.xlsx")
    tmp_path.write_bytes(payload)
    tmp_path.replace(report_path)
    return report_path
