"""Master workbook assembly — one marked-up sheet per supplier file."""

from __future__ import annotations

import logging
import re
from collections.abc import Collection, Sequence
from datetime import datetime, timezone
from typing import Any

from price_list_merger import __version__
from price_list_merger.errors import NoValidWorksheets
from price_list_merger.markup import add_markup_columns
from price_list_merger.models import (
    FileObject,
    FileStatus,
    MasterWorkbook,
    Sheet,
    SheetEntry,
    ValidationResult,
    Workbook,
)

logger = logging.getLogger(__name__)

SHEET_NAME_LENGTH = 25
DEFAULT_SHEET_NAME = "Sheet"

_EXTENSION_RE = re.compile(r"\.(xlsx|xlsm|xltx|xltm|xls)$", re.IGNORECASE)
# ":" is rejected by Excel as well as the bracket/slash/wildcard set.
_ILLEGAL_SHEET_CHARS_RE = re.compile(r"[/\\?*\[\]:]")


# ── Sheet names ──────────────────────────────────────────────────


def clean_sheet_name(base_name: str) -> str:
    cleaned = _EXTENSION_RE.sub("", base_name)
    cleaned = _ILLEGAL_SHEET_CHARS_RE.sub("_", cleaned)
    return cleaned[:SHEET_NAME_LENGTH] or DEFAULT_SHEET_NAME


def resolve_sheet_name(base_name: str, existing_names: Collection[str]) -> str:
    """Return a sheet name derived from *base_name* that is not in *existing_names*.

    Collisions get ``_2``, ``_3``, ... appended.  *existing_names* is not
    modified; the caller records the chosen name.
    """
    cleaned = clean_sheet_name(base_name)
    if cleaned not in existing_names:
        return cleaned

    counter = 2
    while f"{cleaned}_{counter}" in existing_names:
        counter += 1
    return f"{cleaned}_{counter}"


# ── Helpers ──────────────────────────────────────────────────────


def master_properties(now: datetime | None = None) -> dict[str, Any]:
    return {
        "title": "Supplier Price List Master",
        "subject": "Combined supplier price lists with markup calculations",
        "creator": f"price-list-merger {__version__}",
        "created": now or datetime.now(timezone.utc),
    }


def locate_primary_sheet(workbook: Workbook) -> Sheet | None:
    """Return the first-listed sheet, falling back to a case-insensitive
    name match and then to any sheet at all."""
    sheets = workbook.sheets or {}
    primary = workbook.sheet_names[0]
    sheet = sheets.get(primary)
    if sheet is not None:
        return sheet

    available = list(sheets)
    logger.warning("Direct access to worksheet %r failed; available: %s", primary, available)
    lowered = primary.lower()
    for key in available:
        if key.lower() == lowered:
            logger.info("Using worksheet %r (case-insensitive match)", key)
            return sheets[key]
    if available:
        logger.info("Using first available worksheet %r", available[0])
        return sheets[available[0]]
    return None


def validate_workbook(workbook: Workbook | None) -> ValidationResult:
    """Check that *workbook* has at least one sheet with data."""
    result = ValidationResult()
    if workbook is None:
        result.errors.append("Workbook is missing")
        return result
    if not workbook.sheet_names:
        result.errors.append("Workbook contains no sheets")
        return result
    sheets = workbook.sheets or {}
    if not any(
        sheet is not None and sheet.used_range is not None
        for sheet in (sheets.get(name) for name in workbook.sheet_names)
    ):
        result.errors.append("Workbook contains no data")
    return result


def _skip(master: MasterWorkbook, upload: FileObject, reason: str) -> None:
    logger.warning("Skipping %s: %s", upload.name, reason)
    master.warnings.append(f"{upload.name}: {reason}")


def _build_sheet(master: MasterWorkbook, source: Sheet, upload: FileObject) -> tuple[Sheet, bool]:
    if upload.cost_column_index == -1:
        logger.info("No cost column detected for %s; copying sheet unchanged", upload.name)
        return source.copy(), False
    try:
        return add_markup_columns(source, upload.cost_column_index), True
    except Exception as exc:
        logger.warning("Failed to add markup columns for %s: %s", upload.name, exc)
        master.warnings.append(f"{upload.name}: markup not applied: {exc}")
        return source.copy(), False


def _append_file(master: MasterWorkbook, upload: FileObject, used_names: list[str]) -> None:
    workbook = upload.workbook
    if upload.status is not FileStatus.COMPLETED or workbook is None:
        _skip(
            master,
            upload,
            f"status={upload.status.value}, has_workbook={workbook is not None}",
        )
        return
    if not workbook.sheet_names:
        _skip(master, upload, "no worksheets found")
        return
    if workbook.sheets is None:
        _skip(master, upload, "no sheet data found")
        return

    source = locate_primary_sheet(workbook)
    if source is None:
        _skip(master, upload, "no accessible worksheet")
        return
    if source.used_range is None or source.used_range.is_inverted:
        _skip(master, upload, f"worksheet {workbook.sheet_names[0]!r} is empty")
        return

    sheet_name = resolve_sheet_name(upload.name, used_names)
    sheet, markup_applied = _build_sheet(master, source, upload)
    master.append_sheet(sheet_name, sheet)
    used_names.append(sheet_name)
    master.entries.append(
        SheetEntry(
            sheet_name=sheet_name,
            file_id=upload.id,
            file_name=upload.name,
            cost_column_index=upload.cost_column_index,
            markup_applied=markup_applied,
        )
    )
    logger.info("Added worksheet %r from %s", sheet_name, upload.name)


# ── Public API ───────────────────────────────────────────────────


def assemble(files: Sequence[FileObject], *, now: datetime | None = None) -> MasterWorkbook:
    """Build the master workbook from ingested *files*, in input order.

    Unusable files are skipped and itemized in ``MasterWorkbook.warnings``.

    Raises
    ------
    NoValidWorksheets
        If no file produced a sheet.
    """
    master = MasterWorkbook(properties=master_properties(now))
    used_names: list[str] = []

    for upload in files:
        try:
            _append_file(master, upload, used_names)
        except Exception as exc:  # one bad file must not abort the batch
            _skip(master, upload, f"error processing file: {exc}")

    if not master.sheet_names:
        raise NoValidWorksheets("No valid worksheets to include in master workbook")

    logger.info("Master workbook created with %d worksheets", len(master.sheet_names))
    return master
