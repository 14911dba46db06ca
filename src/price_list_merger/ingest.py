"""File ingestion — validate, decode and analyze one supplier file at a time."""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from price_list_merger import MAX_FILE_SIZE, MAX_FILES, VALID_EXTENSIONS, VALID_MIME_TYPES
from price_list_merger.analyze import analyze_worksheet
from price_list_merger.errors import DecodeError, FileValidationError, PriceListError
from price_list_merger.io import decode_workbook
from price_list_merger.models import FileObject, FileStatus, ProcessedFile, Sheet, ValidationResult

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


def validate_file(name: str, size: int, mime_type: str | None = None) -> ValidationResult:
    """Apply the acceptance policy: size limits and a spreadsheet extension.

    A MIME type outside the known spreadsheet types is only a warning.
    """
    result = ValidationResult()
    suffix = Path(name).suffix.lower()
    if suffix not in VALID_EXTENSIONS:
        result.errors.append(
            "Invalid file type. Please select an Excel file (.xlsx or .xls). "
            f"Got: {suffix or 'no extension'}"
        )
    if size > MAX_FILE_SIZE:
        result.errors.append(
            f"File size exceeds maximum limit of {MAX_FILE_SIZE // _MB}MB. "
            f"Got: {round(size / _MB)}MB"
        )
    if size == 0:
        result.errors.append("File is empty")
    if mime_type and mime_type not in VALID_MIME_TYPES:
        result.warnings.append(f"Unexpected MIME type {mime_type!r}; processing anyway")
    return result


def load_upload(path: Path) -> FileObject:
    """Read *path* from disk into a pending :class:`FileObject`."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    mime_type, _encoding = mimetypes.guess_type(path.name)
    return FileObject(name=path.name, data=path.read_bytes(), mime_type=mime_type or "")


def sheet_to_frame(sheet: Sheet) -> pd.DataFrame:
    """Tabular view of *sheet*: blank rows dropped, missing cells as ``""``."""
    rows = sheet.to_rows()
    if not rows:
        return pd.DataFrame()
    frame = pd.DataFrame(rows, dtype=object)
    frame = frame.dropna(how="all").fillna("")
    return frame.reset_index(drop=True)


def process_file(upload: FileObject) -> ProcessedFile:
    """Validate, decode and analyze the first sheet of *upload*.

    Raises
    ------
    FileValidationError
        If the file fails the acceptance policy.
    DecodeError
        If the bytes cannot be decoded or hold no worksheet.
    EmptyOrInvalidSheet
        If the first worksheet has no used range.
    """
    validation = validate_file(upload.name, upload.size or 0, upload.mime_type)
    for warning in validation.warnings:
        logger.warning("%s: %s", upload.name, warning)
    if not validation.is_valid:
        raise FileValidationError("; ".join(validation.errors), file_name=upload.name)

    workbook = decode_workbook(upload.data, upload.name)
    if not workbook.sheet_names:
        raise DecodeError("No worksheets found in file", file_name=upload.name)
    sheet_name = workbook.sheet_names[0]
    sheet = (workbook.sheets or {}).get(sheet_name)
    if sheet is None:
        raise DecodeError("Failed to access worksheet", file_name=upload.name)

    analysis = analyze_worksheet(sheet)
    data = sheet_to_frame(sheet)
    headers = [str(value) for value in data.iloc[0]] if not data.empty else []
    return ProcessedFile(
        workbook=workbook,
        sheet_name=sheet_name,
        analysis=analysis,
        headers=headers,
        data=data,
    )


def ingest_files(uploads: Sequence[FileObject]) -> dict[str, ProcessedFile]:
    """Process *uploads* sequentially, updating each one's status in place.

    Per-file failures are recorded on the :class:`FileObject` and do not stop
    the batch.  Returns processed results keyed by file id.
    """
    if len(uploads) > MAX_FILES:
        raise FileValidationError(f"Too many files: {len(uploads)} (maximum {MAX_FILES})")

    processed: dict[str, ProcessedFile] = {}
    for upload in uploads:
        upload.status = FileStatus.PROCESSING
        try:
            result = process_file(upload)
        except PriceListError as exc:
            logger.warning("Failed to process %s: %s", upload.name, exc.message)
            upload.mark_error(exc.message)
            continue
        except Exception as exc:  # one bad file must not abort the batch
            logger.exception("Unexpected error processing %s", upload.name)
            upload.mark_error(f"Unexpected error processing file: {exc}")
            continue

        upload.workbook = result.workbook
        upload.cost_column_index = result.analysis.cost_column_index
        upload.status = FileStatus.COMPLETED
        if upload.cost_column_index == -1:
            logger.info("No cost column detected in %s", upload.name)
        processed[upload.id] = result
    return processed
