"""Merge summary building and persistence."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from price_list_merger import __version__
from price_list_merger.io import write_json
from price_list_merger.models import FileObject, FileOutcome, MasterWorkbook, MergeSummary
from price_list_merger.utils import sha256_bytes, utcnow_iso


def summarize_merge(
    uploads: Sequence[FileObject],
    master: MasterWorkbook | None = None,
    *,
    created_at: str | None = None,
    output_path: Path | None = None,
    error_message: str = "",
) -> MergeSummary:
    """Build the per-file audit record for one merge run."""
    entries = {entry.file_id: entry for entry in master.entries} if master else {}

    outcomes: list[FileOutcome] = []
    warnings: list[str] = []
    for upload in uploads:
        entry = entries.get(upload.id)
        outcomes.append(
            FileOutcome(
                file_name=upload.name,
                status=upload.status.value,
                size=upload.size or 0,
                sha256=sha256_bytes(upload.data) if upload.data else "",
                sheet_name=entry.sheet_name if entry else None,
                cost_column_index=upload.cost_column_index,
                markup_applied=entry.markup_applied if entry else False,
                errors=list(upload.errors),
            )
        )
        warnings.extend(f"{upload.name}: {message}" for message in upload.errors)
    if master is not None:
        warnings.extend(master.warnings)

    return MergeSummary(
        version=__version__,
        created_at_utc=created_at or utcnow_iso(),
        status="failed" if error_message else "success",
        error_message=error_message,
        output_path=str(output_path.resolve()) if output_path else "",
        files_in=len(uploads),
        sheets_out=len(master.sheet_names) if master else 0,
        files=outcomes,
        warnings=warnings,
    )


def write_merge_summary(out_dir: Path, summary: MergeSummary) -> Path:
    """Write ``merge_report.json`` into *out_dir* and return the path."""
    return write_json(out_dir / "merge_report.json", summary.to_dict())
