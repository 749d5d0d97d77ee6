"""Exception types raised by sheet operations."""

from __future__ import annotations


class SpreadsheetError(Exception):
    """Base class for every error raised by sheetcalc."""


class InvalidNameError(SpreadsheetError, ValueError):
    """A cell name is not one or more letters followed by one or more digits."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid cell name: {name!r}")
        self.name = name


class FormulaFormatError(SpreadsheetError, ValueError):
    """Formula text could not be parsed."""


class CircularReferenceError(SpreadsheetError, ValueError):
    """Installing a formula would make a cell depend on itself."""

    def __init__(self, cell: str) -> None:
        super().__init__(f"Circular reference detected involving: {cell}")
        self.cell = cell


class SpreadsheetReadWriteError(SpreadsheetError, OSError):
    """Reading, decoding or writing a saved sheet failed."""
