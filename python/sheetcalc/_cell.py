"""Cell — immutable contents plus a derived, recomputable value."""

from __future__ import annotations

from typing import Union

from sheetcalc.calc._evaluator import FormulaEvaluator, Lookup
from sheetcalc.calc._formula import Formula
from sheetcalc.calc._functions import FormulaError

Contents = Union[str, float, Formula]
Value = Union[str, float, FormulaError]


class Cell:
    """A stored, non-empty cell.

    Contents never change; a new contents means a new Cell. Text and number
    cells are their own value. A formula cell is evaluated on construction
    and again by :meth:`recalculate` whenever something it reads may have
    changed.
    """

    __slots__ = ("_contents", "_value")

    def __init__(
        self,
        contents: Contents,
        lookup: Lookup | None = None,
        evaluator: FormulaEvaluator | None = None,
    ) -> None:
        self._contents = contents
        if isinstance(contents, Formula):
            if lookup is None:
                raise ValueError("A formula cell needs a lookup to evaluate against")
            self._value: Value = contents.evaluate(lookup, evaluator)
        else:
            self._value = contents

    @property
    def contents(self) -> Contents:
        return self._contents

    @property
    def value(self) -> Value:
        return self._value

    @property
    def is_formula(self) -> bool:
        return isinstance(self._contents, Formula)

    def recalculate(self, lookup: Lookup, evaluator: FormulaEvaluator | None = None) -> None:
        """Re-evaluate a formula cell; no-op for text and numbers."""
        if isinstance(self._contents, Formula):
            self._value = self._contents.evaluate(lookup, evaluator)

    def __repr__(self) -> str:
        return f"<Cell contents={self._contents!r} value={self._value!r}>"
