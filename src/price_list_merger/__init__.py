"""price-list-merger — Merge supplier price lists into one marked-up master workbook."""

__version__ = "0.1.0"

MARKUP_PERCENTAGES: tuple[float, ...] = (0.05, 0.10, 0.15, 0.20, 0.30)
MARKUP_LABELS: tuple[str, ...] = (
    "5% Markup",
    "10% Markup",
    "15% Markup",
    "20% Markup",
    "30% Markup",
)
MARKUP_PRECISION = 2
MARKUP_NUMBER_FORMAT = "0.00"
MARKUP_COLUMN_WIDTH = 12.0
NA_MARKER = "N/A"

MAX_FILE_SIZE = 50 * 1024 * 1024
MAX_FILES = 100
VALID_EXTENSIONS: tuple[str, ...] = (".xlsx", ".xlsm", ".xltx", ".xltm", ".xls")
VALID_MIME_TYPES: tuple[str, ...] = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
)
