"""Error taxonomy for price-list ingestion and master workbook assembly.

Hierarchy::

    PriceListError (ValueError)
    ├── FileValidationError   file rejected before decoding
    ├── DecodeError           no decode strategy produced a workbook
    ├── EmptyOrInvalidSheet   sheet has no (or an inverted) used range
    │   └── InvalidSheet      raised by the markup injector
    ├── CostColumnNotFound    injector called without a cost column
    └── NoValidWorksheets     assembler produced zero sheets

Per-file errors are recovered by the caller; only ``NoValidWorksheets``
is terminal for a batch.
"""

from __future__ import annotations


class PriceListError(ValueError):
    """Base class for all price-list errors."""

    def __init__(self, message: str, *, file_name: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.file_name = file_name

    def __str__(self) -> str:
        if self.file_name:
            return f"{self.file_name}: {self.message}"
        return self.message


class FileValidationError(PriceListError):
    """File is too large, empty, or has an unsupported extension."""


class DecodeError(PriceListError):
    """Bytes could not be turned into a workbook by any strategy."""


class EmptyOrInvalidSheet(PriceListError):
    """Sheet has no used range, or the range is inverted."""


class InvalidSheet(EmptyOrInvalidSheet):
    """Sheet handed to the markup injector has no used range."""


class CostColumnNotFound(PriceListError):
    """Markup injection requested without a detected cost column."""


class NoValidWorksheets(PriceListError):
    """Every input file was unusable; the master workbook would be empty."""
