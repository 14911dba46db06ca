"""Data models / typed containers used across the package."""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from numbers import Integral, Real
from typing import Any, Literal

import pandas as pd

ColumnType = Literal["empty", "number", "string", "mixed"]


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


# ── Cells ────────────────────────────────────────────────────────


class CellType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    BLANK = "blank"
    ERROR = "error"
    DATE = "date"


@dataclass(frozen=True)
class Cell:
    """A tagged cell value plus its optional display format."""

    value: Any
    kind: CellType
    number_format: str | None = None

    @classmethod
    def text(cls, value: str, number_format: str | None = None) -> Cell:
        return cls(value, CellType.STRING, number_format)

    @classmethod
    def number(cls, value: float, number_format: str | None = None) -> Cell:
        return cls(value, CellType.NUMBER, number_format)

    @classmethod
    def boolean(cls, value: bool, number_format: str | None = None) -> Cell:
        return cls(value, CellType.BOOLEAN, number_format)

    @classmethod
    def blank(cls, number_format: str | None = None) -> Cell:
        return cls(None, CellType.BLANK, number_format)

    @classmethod
    def error(cls, code: str) -> Cell:
        return cls(code, CellType.ERROR)

    @classmethod
    def from_value(cls, value: Any, number_format: str | None = None) -> Cell:
        """Tag a raw codec value.  ``bool`` is checked before numbers."""
        if value is None:
            return cls.blank(number_format)
        if isinstance(value, bool):
            return cls.boolean(value, number_format)
        if isinstance(value, (datetime, date, time)):
            return cls(value, CellType.DATE, number_format)
        if isinstance(value, Real):
            return cls.number(value, number_format)
        if isinstance(value, str):
            return cls.text(value, number_format)
        return cls.text(str(value), number_format)

    @property
    def is_empty(self) -> bool:
        return self.kind is CellType.BLANK or self.value is None or self.value == ""


# ── Sheets / workbooks ───────────────────────────────────────────


@dataclass(frozen=True)
class CellRange:
    """Inclusive, 0-based rectangle of cells."""

    min_row: int
    min_col: int
    max_row: int
    max_col: int

    @property
    def is_inverted(self) -> bool:
        return self.max_row < self.min_row or self.max_col < self.min_col

    @property
    def n_rows(self) -> int:
        return max(self.max_row - self.min_row + 1, 0)

    @property
    def n_cols(self) -> int:
        return max(self.max_col - self.min_col + 1, 0)

    def rows(self) -> range:
        return range(self.min_row, self.max_row + 1)

    def cols(self) -> range:
        return range(self.min_col, self.max_col + 1)

    def contains(self, row: int, col: int) -> bool:
        return self.min_row <= row <= self.max_row and self.min_col <= col <= self.max_col

    def widen(self, extra_cols: int) -> CellRange:
        return CellRange(self.min_row, self.min_col, self.max_row, self.max_col + extra_cols)

    def enclose(self, row: int, col: int) -> CellRange:
        return CellRange(
            min(self.min_row, row),
            min(self.min_col, col),
            max(self.max_row, row),
            max(self.max_col, col),
        )


@dataclass
class Sheet:
    """Sparse cell map bounded by a declared used range.

    Contract invariant: ``used_range`` encloses every populated cell.
    A sheet without a used range is empty.
    """

    cells: dict[tuple[int, int], Cell] = field(default_factory=dict)
    used_range: CellRange | None = None
    column_widths: list[float | None] | None = None

    def get(self, row: int, col: int) -> Cell | None:
        return self.cells.get((row, col))

    def set(self, row: int, col: int, cell: Cell) -> None:
        if row < 0 or col < 0:
            raise ValueError(f"Cell coordinates must be >= 0, got ({row}, {col})")
        self.cells[(row, col)] = cell
        if self.used_range is None:
            self.used_range = CellRange(row, col, row, col)
        elif not self.used_range.contains(row, col):
            self.used_range = self.used_range.enclose(row, col)

    def copy(self) -> Sheet:
        widths = None if self.column_widths is None else list(self.column_widths)
        return Sheet(cells=dict(self.cells), used_range=self.used_range, column_widths=widths)

    def iter_row(self, row: int) -> Iterator[tuple[int, Cell | None]]:
        if self.used_range is None:
            return
        for col in self.used_range.cols():
            yield col, self.get(row, col)

    def to_rows(self) -> list[list[Any]]:
        """Return raw values for the used range, ``None`` where no cell exists."""
        if self.used_range is None or self.used_range.is_inverted:
            return []
        rows: list[list[Any]] = []
        for row in self.used_range.rows():
            rows.append([
                None if cell is None else cell.value for _col, cell in self.iter_row(row)
            ])
        return rows

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Any]], *, origin: tuple[int, int] = (0, 0)) -> Sheet:
        """Build a sheet from a 2-D list; ``None`` values leave the cell absent."""
        sheet = cls()
        row0, col0 = origin
        for r_idx, values in enumerate(rows):
            for c_idx, value in enumerate(values):
                if value is None:
                    continue
                sheet.set(row0 + r_idx, col0 + c_idx, Cell.from_value(value))
        return sheet


@dataclass
class Workbook:
    """Ordered collection of named sheets.

    ``sheets`` may be ``None`` when a codec produced sheet names without
    sheet data.
    """

    sheet_names: list[str] = field(default_factory=list)
    sheets: dict[str, Sheet] | None = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)

    def append_sheet(self, name: str, sheet: Sheet) -> None:
        if name in self.sheet_names:
            raise ValueError(f"Worksheet with name {name!r} already exists")
        if self.sheets is None:
            self.sheets = {}
        self.sheet_names.append(name)
        self.sheets[name] = sheet


@dataclass(frozen=True)
class SheetEntry:
    """Where one master sheet came from."""

    sheet_name: str
    file_id: str
    file_name: str
    cost_column_index: int
    markup_applied: bool


@dataclass
class MasterWorkbook(Workbook):
    """Assembler output: one sheet per usable supplier file."""

    entries: list[SheetEntry] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# ── Analysis ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class ColumnDetectionResult:
    column_index: int
    confidence: float
    column_name: str
    pattern: str


@dataclass(frozen=True)
class DataRange:
    start_row: int
    end_row: int
    start_col: int
    end_col: int


@dataclass(frozen=True)
class WorksheetAnalysis:
    """Structural metadata derived once per ingested sheet."""

    has_headers: bool
    header_row: int
    data_range: DataRange
    column_types: tuple[ColumnType, ...]
    cost_column_index: int
    total_rows: int
    total_cols: int

    def __post_init__(self) -> None:
        _to_non_negative_int(self.total_rows, "total_rows")
        _to_non_negative_int(self.total_cols, "total_cols")
        if self.cost_column_index < -1:
            raise ValueError("cost_column_index must be >= -1")

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_headers": self.has_headers,
            "header_row": self.header_row,
            "data_range": {
                "start_row": self.data_range.start_row,
                "end_row": self.data_range.end_row,
                "start_col": self.data_range.start_col,
                "end_col": self.data_range.end_col,
            },
            "column_types": list(self.column_types),
            "cost_column_index": self.cost_column_index,
            "total_rows": self.total_rows,
            "total_cols": self.total_cols,
        }


# ── Files ────────────────────────────────────────────────────────


class FileStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class FileObject:
    """One user-supplied file through ``pending -> processing -> completed | error``."""

    name: str
    data: bytes = b""
    size: int | None = None
    mime_type: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    workbook: Workbook | None = None
    cost_column_index: int = -1
    errors: list[str] = field(default_factory=list)
    status: FileStatus = FileStatus.PENDING

    def __post_init__(self) -> None:
        if self.size is None:
            self.size = len(self.data)
        self.size = _to_non_negative_int(self.size, "size")
        self.errors = _to_string_list(self.errors, "errors")
        self.status = FileStatus(self.status)

    def mark_error(self, message: str) -> None:
        self.errors.append(message)
        self.status = FileStatus.ERROR


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.errors = _to_string_list(self.errors, "errors")
        self.warnings = _to_string_list(self.warnings, "warnings")

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class ProcessedFile:
    """Ingestion output for one file: decoded workbook plus tabular view."""

    workbook: Workbook
    sheet_name: str
    analysis: WorksheetAnalysis
    headers: list[str]
    data: pd.DataFrame


# ── Run summary ──────────────────────────────────────────────────


@dataclass
class FileOutcome:
    file_name: str
    status: str
    size: int = 0
    sha256: str = ""
    sheet_name: str | None = None
    cost_column_index: int = -1
    markup_applied: bool = False
    errors: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.size = _to_non_negative_int(self.size, "size")
        self.errors = _to_string_list(self.errors, "errors")

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "status": self.status,
            "size": self.size,
            "sha256": self.sha256,
            "sheet_name": self.sheet_name,
            "cost_column_index": self.cost_column_index,
            "markup_applied": self.markup_applied,
            "errors": list(self.errors),
        }


@dataclass
class MergeSummary:
    """Audit record for a single merge run.

    Contract invariant: ``sheets_out <= files_in``.
    """

    tool: str = "price-list-merger"
    version: str = ""
    created_at_utc: str = ""
    status: str = "success"
    error_message: str = ""
    output_path: str = ""
    files_in: int = 0
    sheets_out: int = 0
    files: list[FileOutcome] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.files_in = _to_non_negative_int(self.files_in, "files_in")
        self.sheets_out = _to_non_negative_int(self.sheets_out, "sheets_out")
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.sheets_out > self.files_in:
            raise ValueError("sheets_out must be <= files_in")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "created_at_utc": self.created_at_utc,
            "status": self.status,
            "error_message": self.error_message,
            "output_path": self.output_path,
            "files_in": self.files_in,
            "sheets_out": self.sheets_out,
            "files": [outcome.to_dict() for outcome in self.files],
            "warnings": list(self.warnings),
        }
