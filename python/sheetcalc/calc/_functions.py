"""Formula error values and builtin function implementations."""

from __future__ import annotations

import math
from typing import Any, Callable


# ---------------------------------------------------------------------------
# FormulaError: typed error values that propagate through formula chains
# ---------------------------------------------------------------------------


class FormulaError:
    """Evaluation error carried as a cell's value instead of being raised.

    Use ``FormulaError.of(code)`` to get a cached singleton for each error code.
    Errors only compare equal to other errors, so a text cell holding
    ``"#REF!"`` is never mistaken for one; compare ``err.code`` for the string.
    """

    __slots__ = ("code",)
    _cache: dict[str, FormulaError] = {}

    REF: FormulaError
    VALUE: FormulaError
    DIV0: FormulaError
    NUM: FormulaError
    NAME: FormulaError

    def __init__(self, code: str) -> None:
        self.code = code

    @classmethod
    def of(cls, code: str) -> FormulaError:
        canon = code.upper()
        if canon not in cls._cache:
            cls._cache[canon] = cls(canon)
        return cls._cache[canon]

    def __repr__(self) -> str:
        return f"FormulaError({self.code!r})"

    def __str__(self) -> str:
        return self.code

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FormulaError):
            return self.code == other.code
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.code)


# Singletons
FormulaError.REF = FormulaError.of("#REF!")
FormulaError.VALUE = FormulaError.of("#VALUE!")
FormulaError.DIV0 = FormulaError.of("#DIV/0!")
FormulaError.NUM = FormulaError.of("#NUM!")
FormulaError.NAME = FormulaError.of("#NAME?")


def is_error(val: Any) -> bool:
    """Return True if *val* is a FormulaError instance."""
    return isinstance(val, FormulaError)


def first_error(*values: Any) -> FormulaError | None:
    """Return the first FormulaError found in *values*, or None."""
    for v in values:
        if isinstance(v, FormulaError):
            return v
    return None


# ---------------------------------------------------------------------------
# Builtin implementations - pure Python, no external deps.
# Each takes a list of already-evaluated float arguments; errors among the
# arguments are propagated by the evaluator before the call.
# ---------------------------------------------------------------------------


def _require(name: str, args: list[float], low: int, high: int | None = None) -> None:
    high = low if high is None else high
    if len(args) < low or len(args) > high:
        if low == high:
            raise ValueError(f"{name} requires exactly {low} argument{'s' if low != 1 else ''}")
        raise ValueError(f"{name} requires {low} to {high} arguments")


def _builtin_sum(args: list[float]) -> float:
    return math.fsum(args)


def _builtin_average(args: list[float]) -> float | FormulaError:
    if not args:
        return FormulaError.DIV0
    return math.fsum(args) / len(args)


def _builtin_min(args: list[float]) -> float:
    if not args:
        return 0.0
    return min(args)


def _builtin_max(args: list[float]) -> float:
    if not args:
        return 0.0
    return max(args)


def _builtin_abs(args: list[float]) -> float:
    _require("ABS", args, 1)
    return abs(args[0])


def _builtin_round(args: list[float]) -> float:
    _require("ROUND", args, 1, 2)
    digits = int(args[1]) if len(args) > 1 else 0
    # Round half away from zero, not Python's banker's rounding.
    factor = 10.0 ** digits
    scaled = abs(args[0]) * factor
    rounded = math.floor(scaled + 0.5) / factor
    return math.copysign(rounded, args[0])


def _builtin_int(args: list[float]) -> float:
    _require("INT", args, 1)
    return float(math.floor(args[0]))


def _builtin_mod(args: list[float]) -> float | FormulaError:
    _require("MOD", args, 2)
    if args[1] == 0:
        return FormulaError.DIV0
    # Result has the sign of the divisor
    return args[0] - args[1] * math.floor(args[0] / args[1])


def _builtin_power(args: list[float]) -> float | FormulaError:
    _require("POWER", args, 2)
    base, exponent = args
    if base < 0 and not float(exponent).is_integer():
        return FormulaError.NUM
    if base == 0 and exponent < 0:
        return FormulaError.DIV0
    return float(base ** exponent)


def _builtin_sqrt(args: list[float]) -> float | FormulaError:
    _require("SQRT", args, 1)
    if args[0] < 0:
        return FormulaError.NUM
    return math.sqrt(args[0])


def _builtin_sign(args: list[float]) -> float:
    _require("SIGN", args, 1)
    if args[0] > 0:
        return 1.0
    if args[0] < 0:
        return -1.0
    return 0.0


_BUILTINS: dict[str, Callable[[list[float]], float | FormulaError]] = {
    "SUM": _builtin_sum,
    "AVERAGE": _builtin_average,
    "MIN": _builtin_min,
    "MAX": _builtin_max,
    "ABS": _builtin_abs,
    "ROUND": _builtin_round,
    "INT": _builtin_int,
    "MOD": _builtin_mod,
    "POWER": _builtin_power,
    "SQRT": _builtin_sqrt,
    "SIGN": _builtin_sign,
}


class FunctionRegistry:
    """Registry of callable function implementations.

    Starts with builtins and can be extended with custom functions. A custom
    function receives the list of evaluated numeric arguments and returns a
    number or a FormulaError; raising ValueError yields ``#VALUE!``.
    """

    def __init__(self) -> None:
        self._functions: dict[str, Callable[..., Any]] = dict(_BUILTINS)

    def register(self, name: str, func: Callable[..., Any]) -> None:
        self._functions[name.upper()] = func

    def get(self, name: str) -> Callable[..., Any] | None:
        return self._functions.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._functions

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._functions.keys())
