"""Formula: a parsed, canonicalized formula that can be evaluated against a lookup."""

from __future__ import annotations

from sheetcalc.calc._evaluator import FormulaEvaluator, Lookup
from sheetcalc.calc._functions import FormulaError
from sheetcalc.calc._parser import canonical_text, parse, references


class Formula:
    """An immutable arithmetic formula over numbers, cell names and functions.

    ``Formula("a1 + 2.0")`` parses eagerly and raises FormulaFormatError on
    malformed text. Variables are normalized to uppercase and two formulas
    compare equal when their canonical texts match::

        >>> f = Formula("a1 + 2.0")
        >>> str(f), sorted(f.variables)
        ('A1+2', ['A1'])
    """

    __slots__ = ("_text", "_tree", "_variables")

    def __init__(self, text: str) -> None:
        tree, tokens = parse(text)
        self._tree = tree
        self._text = canonical_text(tokens)
        self._variables = frozenset(references(tree))

    @property
    def variables(self) -> frozenset[str]:
        """Distinct cell names the formula reads."""
        return self._variables

    def evaluate(
        self,
        lookup: Lookup,
        evaluator: FormulaEvaluator | None = None,
    ) -> float | FormulaError:
        """Evaluate against *lookup*; failures come back as FormulaError values."""
        ev = evaluator if evaluator is not None else FormulaEvaluator()
        return ev.evaluate(self._text, self._tree, lookup)

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Formula({self._text!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Formula):
            return self._text == other._text
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._text)
