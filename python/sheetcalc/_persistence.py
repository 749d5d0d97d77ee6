"""JSON codec for saved sheets.

A saved sheet looks like::

    {
      "Cells": {
        "A1": {"StringForm": "5"},
        "B1": {"StringForm": "=A1*2"}
      }
    }

Each cell's string form is what ``set_contents`` would accept to recreate
it: ``=`` plus the canonical formula, the canonical number text, or the
literal text.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from typing import Any

from sheetcalc._exceptions import SpreadsheetReadWriteError
from sheetcalc._utils import format_number
from sheetcalc.calc._formula import Formula

FORMULA_MARKER = "="
CELLS_KEY = "Cells"
STRING_FORM_KEY = "StringForm"


def string_form(contents: str | float | Formula) -> str:
    """Render cell contents in the form ``set_contents`` accepts."""
    if isinstance(contents, Formula):
        return FORMULA_MARKER + str(contents)
    if isinstance(contents, float):
        return format_number(contents)
    return contents


def dumps(cells: Mapping[str, str | float | Formula]) -> str:
    """Serialize a name -> contents mapping to indented JSON."""
    doc = {
        CELLS_KEY: {
            name: {STRING_FORM_KEY: string_form(contents)}
            for name, contents in cells.items()
        }
    }
    return json.dumps(doc, indent=2)


def loads(text: str) -> dict[str, str]:
    """Decode a saved sheet into a name -> string form mapping.

    Raises SpreadsheetReadWriteError for invalid JSON or an unexpected shape.
    Names and string forms are not validated here; replaying them through
    ``set_contents`` does that.
    """
    try:
        doc: Any = json.loads(text)
    except ValueError as e:
        raise SpreadsheetReadWriteError(f"Error loading the spreadsheet: invalid JSON: {e}") from e

    if not isinstance(doc, dict) or not isinstance(doc.get(CELLS_KEY), dict):
        raise SpreadsheetReadWriteError(
            f"Error loading the spreadsheet: expected an object with a {CELLS_KEY!r} object"
        )

    entries: dict[str, str] = {}
    for name, record in doc[CELLS_KEY].items():
        if not isinstance(record, dict) or not isinstance(record.get(STRING_FORM_KEY), str):
            raise SpreadsheetReadWriteError(
                f"Error loading the spreadsheet: cell {name!r} has no {STRING_FORM_KEY!r} string"
            )
        entries[name] = record[STRING_FORM_KEY]
    return entries


def read_file(filename: str | os.PathLike[str]) -> dict[str, str]:
    """Read and decode a saved sheet from disk."""
    try:
        with open(filename, encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SpreadsheetReadWriteError(f"Error loading the spreadsheet: {e}") from e
    return loads(text)


def write_file(filename: str | os.PathLike[str], text: str) -> None:
    try:
        with open(filename, "w", encoding="utf-8") as f:
            f.write(text)
    except OSError as e:
        raise SpreadsheetReadWriteError(f"Error saving the spreadsheet: {e}") from e
