"""Markup calculation and markup-column injection — pure functions, no side effects."""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Context, Decimal
from numbers import Real

from price_list_merger import (
    MARKUP_COLUMN_WIDTH,
    MARKUP_LABELS,
    MARKUP_NUMBER_FORMAT,
    MARKUP_PERCENTAGES,
    MARKUP_PRECISION,
    NA_MARKER,
)
from price_list_merger.errors import CostColumnNotFound, InvalidSheet
from price_list_merger.models import Cell, CellType, Sheet

_THOUSANDS_COMMA_RE = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d+)?$")
_QUANTUM = Decimal(1).scaleb(-MARKUP_PRECISION)


# ── Coercion ─────────────────────────────────────────────────────


def _is_valid_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


def parse_decimal(text: str) -> float | None:
    """Parse a decimal string such as ``" 12.50 "`` or ``"1,234.5"``."""
    token = text.strip()
    if _THOUSANDS_COMMA_RE.fullmatch(token):
        token = token.replace(",", "")
    try:
        value = float(token)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def coerce_number(cell: Cell | None) -> float | None:
    """Return the numeric value of *cell*, or ``None`` when it has none.

    Number cells pass through; text cells are parsed as decimals.  Blank,
    boolean, date and error cells never coerce.
    """
    if cell is None or cell.is_empty:
        return None
    if cell.kind is CellType.NUMBER:
        return float(cell.value) if _is_valid_number(cell.value) else None
    if cell.kind is CellType.STRING:
        return parse_decimal(str(cell.value))
    return None


# ── Calculator ───────────────────────────────────────────────────


def calculate_markup(cost: float, rate: float) -> float | None:
    """Return ``cost * (1 + rate)`` rounded half-up to 2 decimals.

    Returns ``None`` for a non-numeric, non-finite or negative *cost* or
    *rate*, and when the result does not fit in a float.  Never raises.
    """
    if not _is_valid_number(cost) or not _is_valid_number(rate):
        return None
    if cost < 0 or rate < 0:
        return None
    base = Decimal(str(cost))
    factor = 1 + Decimal(str(rate))
    # Precision grows with magnitude so the product and the 2-place quantize stay exact.
    exact = Context(prec=max(28, len(base.as_tuple().digits) + len(factor.as_tuple().digits)))
    marked_up = exact.multiply(base, factor)
    rounding = Context(
        prec=max(exact.prec, marked_up.adjusted() + MARKUP_PRECISION + 2),
        rounding=ROUND_HALF_UP,
    )
    result = float(marked_up.quantize(_QUANTUM, context=rounding))
    return result if math.isfinite(result) else None


# ── Injector ─────────────────────────────────────────────────────


def markup_cells(cost_cell: Cell | None) -> list[Cell]:
    """Markup cells for one data row, or ``N/A`` markers when the cost is unusable."""
    not_available = [Cell.text(NA_MARKER) for _ in MARKUP_PERCENTAGES]
    cost = coerce_number(cost_cell)
    if cost is None:
        return not_available

    values = [calculate_markup(cost, rate) for rate in MARKUP_PERCENTAGES]
    if any(value is None for value in values):
        return not_available
    return [Cell.number(value, MARKUP_NUMBER_FORMAT) for value in values]


def add_markup_columns(sheet: Sheet, cost_column_index: int) -> Sheet:
    """Return a copy of *sheet* with one markup column per rate appended.

    Original cells are copied verbatim.  Labels go on the first row of the
    used range; every later row gets the markups of its cost cell.

    Raises
    ------
    CostColumnNotFound
        If *cost_column_index* is ``-1`` (or any negative index).
    InvalidSheet
        If the sheet has no usable range.
    """
    if cost_column_index < 0:
        raise CostColumnNotFound("Cost column not found")
    rng = sheet.used_range
    if rng is None or rng.is_inverted:
        raise InvalidSheet("Invalid worksheet provided")

    result = sheet.copy()
    first_new_col = rng.max_col + 1

    for offset, label in enumerate(MARKUP_LABELS):
        result.cells[(rng.min_row, first_new_col + offset)] = Cell.text(label)

    for row in range(rng.min_row + 1, rng.max_row + 1):
        cells = markup_cells(sheet.get(row, cost_column_index))
        for offset, cell in enumerate(cells):
            result.cells[(row, first_new_col + offset)] = cell

    result.used_range = rng.widen(len(MARKUP_PERCENTAGES))

    if sheet.column_widths is not None:
        widths = list(sheet.column_widths[: first_new_col])
        widths.extend([None] * (first_new_col - len(widths)))
        widths.extend([MARKUP_COLUMN_WIDTH] * len(MARKUP_PERCENTAGES))
        result.column_widths = widths

    return result
