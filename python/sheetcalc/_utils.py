"""Cell-name and number helpers shared by the sheet and the formula parser."""

from __future__ import annotations

import math
import re

from sheetcalc._exceptions import InvalidNameError

_NAME_RE = re.compile(r"[A-Za-z]+[0-9]+")

# Decimal literal with optional sign and exponent. ``float()`` alone would also
# accept "nan", "inf" and underscores, which are text in a cell.
_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def is_valid_name(name: str) -> bool:
    return _NAME_RE.fullmatch(name) is not None


def canonical_name(name: str) -> str:
    """Return the uppercase form of *name*, raising InvalidNameError if malformed."""
    if not isinstance(name, str) or not is_valid_name(name):
        raise InvalidNameError(name)
    return name.upper()


def parse_number(text: str) -> float | None:
    """Parse *text* as a decimal number, or return None if it is not one."""
    stripped = text.strip()
    if not _NUMBER_RE.fullmatch(stripped):
        return None
    value = float(stripped)
    # Overflowing literals such as 1e999 stay text.
    if not math.isfinite(value):
        return None
    return value


def format_number(value: float) -> str:
    """Canonical decimal text: ``2.0`` -> ``"2"``, ``1e3`` -> ``"1000"``, ``0.5`` -> ``"0.5"``."""
    if value == 0:
        return "0"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)
