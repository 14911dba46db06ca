from __future__ import annotations

import json
from pathlib import Path

from price_list_merger import __version__
from price_list_merger.models import FileObject, FileStatus, MasterWorkbook, Sheet, SheetEntry
from price_list_merger.qc import summarize_merge, write_merge_summary
from price_list_merger.utils import sha256_bytes


def _batch() -> tuple[list[FileObject], MasterWorkbook]:
    good = FileObject(name="good.xlsx", data=b"good", status=FileStatus.COMPLETED, cost_column_index=1)
    bad = FileObject(name="bad.xlsx", data=b"bad")
    bad.mark_error("Failed to parse Excel file: not a zip")
    master = MasterWorkbook()
    master.append_sheet("good", Sheet.from_rows([["Cost"], [1]]))
    master.entries.append(SheetEntry("good", good.id, good.name, 1, True))
    master.warnings.append("bad.xlsx: status=error, has_workbook=False")
    return [good, bad], master


def test_summarize_merge_itemizes_files() -> None:
    uploads, master = _batch()

    summary = summarize_merge(uploads, master, created_at="2024-01-01T00:00:00+00:00")

    assert summary.status == "success"
    assert summary.version == __version__
    assert (summary.files_in, summary.sheets_out) == (2, 1)
    good, bad = summary.files
    assert good.sheet_name == "good"
    assert good.markup_applied is True
    assert good.sha256 == sha256_bytes(b"good")
    assert bad.status == "error"
    assert bad.sheet_name is None
    assert summary.warnings == [
        "bad.xlsx: Failed to parse Excel file: not a zip",
        "bad.xlsx: status=error, has_workbook=False",
    ]


def test_summarize_merge_failure() -> None:
    uploads, _master = _batch()

    summary = summarize_merge(uploads, error_message="No valid worksheets")

    assert summary.status == "failed"
    assert summary.sheets_out == 0
    assert summary.output_path == ""


def test_write_merge_summary_writes_expected_contract(tmp_path: Path) -> None:
    uploads, master = _batch()
    summary = summarize_merge(
        uploads,
        master,
        created_at="2024-01-01T00:00:00+00:00",
        output_path=tmp_path / "master.xlsx",
    )

    out = write_merge_summary(tmp_path, summary)

    assert out == tmp_path / "merge_report.json"
    data = json.loads(out.read_text(encoding="utf-8"))
    assert set(data) == {
        "created_at_utc",
        "error_message",
        "files",
        "files_in",
        "output_path",
        "sheets_out",
        "status",
        "tool",
        "version",
        "warnings",
    }
    assert data["tool"] == "price-list-merger"
    assert data["output_path"] == str((tmp_path / "master.xlsx").resolve())
    assert [item["file_name"] for item in data["files"]] == ["good.xlsx", "bad.xlsx"]
