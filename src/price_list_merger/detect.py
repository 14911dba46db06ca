"""Cost column detection — score header cells against known price headers."""

from __future__ import annotations

import re

from price_list_merger.models import CellType, ColumnDetectionResult, Sheet

# Tested in order; a header is scored by its first matching pattern only.
COST_COLUMN_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"cost", re.IGNORECASE),
    re.compile(r"price", re.IGNORECASE),
    re.compile(r"cost[\s_]?price", re.IGNORECASE),
    re.compile(r"unit[\s_]?price", re.IGNORECASE),
    re.compile(r"selling[\s_]?price", re.IGNORECASE),
    re.compile(r"wholesale[\s_]?price", re.IGNORECASE),
    re.compile(r"supplier[\s_]?price", re.IGNORECASE),
    re.compile(r"base[\s_]?price", re.IGNORECASE),
)


def header_confidence(header: str) -> float:
    """Confidence that a header already known to match a pattern holds unit cost."""
    lowered = header.lower()
    if lowered == "cost":
        return 0.95
    if lowered == "price":
        return 0.90
    if "cost price" in lowered:
        return 0.90
    if "unit price" in lowered:
        return 0.85
    return 0.70


def match_header(header: str) -> re.Pattern[str] | None:
    for pattern in COST_COLUMN_PATTERNS:
        if pattern.fullmatch(header):
            return pattern
    return None


def score_columns(sheet: Sheet) -> list[ColumnDetectionResult]:
    """Return one candidate per header cell matching a cost pattern, in column order."""
    rng = sheet.used_range
    if rng is None or rng.is_inverted:
        return []

    results: list[ColumnDetectionResult] = []
    for col, cell in sheet.iter_row(rng.min_row):
        if cell is None or cell.kind is not CellType.STRING or not cell.value:
            continue
        header = str(cell.value).strip()
        pattern = match_header(header)
        if pattern is None:
            continue
        results.append(
            ColumnDetectionResult(
                column_index=col,
                confidence=header_confidence(header),
                column_name=header,
                pattern=pattern.pattern,
            )
        )
    return results


def detect_cost_column(sheet: Sheet) -> int:
    """Return the index of the most likely unit-cost column, or ``-1``.

    Ties keep the left-most column.
    """
    best: ColumnDetectionResult | None = None
    for candidate in score_columns(sheet):
        if best is None or candidate.confidence > best.confidence:
            best = candidate
    return -1 if best is None else best.column_index
