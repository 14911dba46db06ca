"""CLI entry point for price-list-merger."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table as RichTable

from price_list_merger import MAX_FILES, __version__
from price_list_merger.analyze import describe_range
from price_list_merger.errors import FileValidationError, NoValidWorksheets
from price_list_merger.ingest import ingest_files, load_upload
from price_list_merger.io import cell_ref
from price_list_merger.master import assemble, validate_workbook
from price_list_merger.models import FileObject, FileStatus, MasterWorkbook, ProcessedFile
from price_list_merger.qc import summarize_merge, write_merge_summary
from price_list_merger.report import write_master_workbook
from price_list_merger.utils import utcnow_iso

app = typer.Typer(
    name="plmerge",
    help="price-list-merger — Merge supplier price lists into one marked-up master workbook.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"price-list-merger v{__version__}")
        raise typer.Exit()


def _configure_logging(*, quiet: bool, verbose: bool) -> None:
    level = logging.ERROR if quiet else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
        force=True,
    )


def _load_uploads(inputs: Sequence[Path]) -> list[FileObject]:
    if len(inputs) > MAX_FILES:
        raise FileValidationError(f"Too many files: {len(inputs)} (maximum {MAX_FILES})")
    return [load_upload(path) for path in inputs]


def _cost_column_label(upload: FileObject, processed: ProcessedFile | None) -> str:
    if upload.cost_column_index == -1 or processed is None:
        return "-"
    ref = cell_ref(processed.analysis.header_row, upload.cost_column_index)
    header = ""
    sheet = (upload.workbook.sheets or {}).get(processed.sheet_name) if upload.workbook else None
    if sheet is not None:
        cell = sheet.get(processed.analysis.header_row, upload.cost_column_index)
        header = "" if cell is None else str(cell.value)
    return f"{ref} {escape(header)}".strip()


def _status_label(upload: FileObject) -> str:
    if upload.status is FileStatus.COMPLETED:
        return "[green]ok[/green]"
    return f"[red]{upload.status.value}[/red]"


def _print_failures(uploads: Sequence[FileObject]) -> None:
    for upload in uploads:
        for message in upload.errors:
            console.print(f"  [yellow]![/yellow] {escape(upload.name)}: {escape(message)}")


def _fail(
    out_dir: Path,
    uploads: Sequence[FileObject],
    created_at: str,
    message: str,
    *,
    code: int,
) -> NoReturn:
    summary = summarize_merge(uploads, created_at=created_at, error_message=message)
    summary_path = write_merge_summary(out_dir, summary)
    _err(escape(message))
    console.print(f"  Summary -> {summary_path}")
    raise typer.Exit(code=code)


def _merge_table(
    uploads: Sequence[FileObject],
    processed: dict[str, ProcessedFile],
    master: MasterWorkbook,
) -> RichTable:
    entries = {entry.file_id: entry for entry in master.entries}
    tbl = RichTable(title="Merge Summary", show_lines=True)
    tbl.add_column("File", style="bold")
    tbl.add_column("Status")
    tbl.add_column("Cost column")
    tbl.add_column("Sheet")
    tbl.add_column("Markup")
    for upload in uploads:
        entry = entries.get(upload.id)
        tbl.add_row(
            escape(upload.name),
            _status_label(upload),
            _cost_column_label(upload, processed.get(upload.id)),
            escape(entry.sheet_name) if entry else "[dim]skipped[/dim]",
            "yes" if entry and entry.markup_applied else "no",
        )
    return tbl


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """price-list-merger CLI."""


# ── merge command ────────────────────────────────────────────────


@app.command()
def merge(
    inputs: list[Path] = typer.Argument(
        ...,
        help="Supplier price list files (.xlsx, .xls).",
        exists=True, readable=True, dir_okay=False,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for the master workbook + merge report.",
    ),
    output: str | None = typer.Option(
        None, "--output",
        help="Master workbook file name (default: Supplier_Master_<timestamp>.xlsx).",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log every ingestion and assembly step.",
    ),
) -> None:
    """Merge supplier price lists into one master workbook with markup columns."""
    _configure_logging(quiet=quiet, verbose=verbose)
    echo = _printer(quiet)
    created_at = utcnow_iso()
    out_dir.mkdir(parents=True, exist_ok=True)

    try:
        uploads = _load_uploads(inputs)
    except (FileValidationError, OSError) as exc:
        _fail(out_dir, [], created_at, str(exc), code=2)

    if not quiet:
        console.print(Panel(
            f"[bold]price-list-merger[/bold] v{__version__}\n"
            f"Inputs: {len(uploads)} file(s)\nOutput: {out_dir}",
            title="Merge Start", border_style="blue",
        ))

    try:
        # ── Ingest ───────────────────────────────────────────────
        echo("[blue]>[/blue] Reading supplier files …")
        processed = ingest_files(uploads)
        ok = sum(1 for upload in uploads if upload.status is FileStatus.COMPLETED)
        echo(f"  {ok} of {len(uploads)} file(s) readable")
        _print_failures(uploads)

        # ── Assemble ─────────────────────────────────────────────
        echo("[blue]>[/blue] Building master workbook …")
        try:
            master = assemble(uploads)
        except NoValidWorksheets as exc:
            _fail(
                out_dir,
                uploads,
                created_at,
                f"{exc}. Re-upload at least one readable price list.",
                code=2,
            )

        for warning in master.warnings:
            echo(f"  [yellow]![/yellow] {escape(warning)}")

        validation = validate_workbook(master)
        if not validation.is_valid:
            _fail(
                out_dir,
                uploads,
                created_at,
                f"Master workbook is not writable: {'; '.join(validation.errors)}",
                code=2,
            )

        # ── Write ────────────────────────────────────────────────
        report_path = write_master_workbook(out_dir, master, output)
        echo(f"  Master workbook -> {report_path}")

        summary = summarize_merge(
            uploads, master, created_at=created_at, output_path=report_path
        )
        summary_path = write_merge_summary(out_dir, summary)
        echo(f"  Summary         -> {summary_path}")

        if not quiet:
            console.print(_merge_table(uploads, processed, master))
            console.print(Panel(
                f"[green]Done[/green] — {len(master.sheet_names)} sheet(s) -> {report_path}",
                title="Merge Complete", border_style="green",
            ))
    except typer.Exit:
        raise
    except Exception as exc:
        _fail(out_dir, uploads, created_at, f"Unexpected internal error: {exc}", code=1)


# ── inspect command ──────────────────────────────────────────────


@app.command()
def inspect(
    inputs: list[Path] = typer.Argument(
        ...,
        help="Supplier price list files (.xlsx, .xls).",
        exists=True, readable=True, dir_okay=False,
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Only report failures.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log every ingestion step.",
    ),
) -> None:
    """Detect cost columns without writing a master workbook.

    Exit 0 = at least one file is usable, exit 2 = none are.
    """
    _configure_logging(quiet=quiet, verbose=verbose)
    try:
        uploads = _load_uploads(inputs)
    except (FileValidationError, OSError) as exc:
        _err(escape(str(exc)))
        raise typer.Exit(code=2)

    processed = ingest_files(uploads)

    if not quiet:
        tbl = RichTable(title="Price List Inspection", show_lines=True)
        tbl.add_column("File", style="bold")
        tbl.add_column("Status")
        tbl.add_column("Range")
        tbl.add_column("Headers")
        tbl.add_column("Cost column")
        tbl.add_column("Column types")
        for upload in uploads:
            result = processed.get(upload.id)
            if result is None:
                tbl.add_row(escape(upload.name), _status_label(upload), "-", "-", "-", "-")
                continue
            sheet = (result.workbook.sheets or {})[result.sheet_name]
            tbl.add_row(
                escape(upload.name),
                _status_label(upload),
                describe_range(sheet),
                "yes" if result.analysis.has_headers else "no",
                _cost_column_label(upload, result),
                ", ".join(result.analysis.column_types),
            )
        console.print(tbl)
    _print_failures(uploads)

    if not processed:
        _err("No readable price lists.")
        raise typer.Exit(code=2)
