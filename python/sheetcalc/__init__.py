"""sheetcalc — an incremental recalculation engine for a grid of named cells.

Usage::

    from sheetcalc import Spreadsheet, load_spreadsheet

    sheet = Spreadsheet()
    sheet.set_contents("A1", "5")
    sheet.set_contents("B1", "=A1*2")
    sheet.set_contents("C1", "=B1+A1")
    print(sheet["C1"])          # 15.0
    sheet.save("budget.json")

    sheet = load_spreadsheet("budget.json")
"""

from __future__ import annotations

import os

from sheetcalc._exceptions import (
    CircularReferenceError,
    FormulaFormatError,
    InvalidNameError,
    SpreadsheetError,
    SpreadsheetReadWriteError,
)
from sheetcalc._spreadsheet import Spreadsheet
from sheetcalc.calc import Formula, FormulaError, FunctionRegistry

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CircularReferenceError",
    "Formula",
    "FormulaError",
    "FormulaFormatError",
    "FunctionRegistry",
    "InvalidNameError",
    "Spreadsheet",
    "SpreadsheetError",
    "SpreadsheetReadWriteError",
    "load_spreadsheet",
]


def load_spreadsheet(
    filename: str | os.PathLike[str],
    name: str | None = None,
    functions: FunctionRegistry | None = None,
) -> Spreadsheet:
    """Open a sheet saved with :meth:`Spreadsheet.save`.

    Parameters
    ----------
    name : str, optional
        Name for the new sheet. Defaults to the file's stem.
    functions : FunctionRegistry, optional
        Extra formula functions available to the sheet's cells.
    """
    if name is None:
        name = os.path.splitext(os.path.basename(os.fspath(filename)))[0]
    sheet = Spreadsheet(name, functions)
    sheet.load(filename)
    return sheet
