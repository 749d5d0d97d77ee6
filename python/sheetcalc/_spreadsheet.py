"""Spreadsheet — the cell store, its reference graph and the recalculation loop."""

from __future__ import annotations

import logging
import os

from sheetcalc import _persistence
from sheetcalc._cell import Cell, Contents, Value
from sheetcalc._exceptions import CircularReferenceError, SpreadsheetReadWriteError
from sheetcalc._persistence import FORMULA_MARKER
from sheetcalc._utils import canonical_name, parse_number
from sheetcalc.calc._evaluator import FormulaEvaluator
from sheetcalc.calc._formula import Formula
from sheetcalc.calc._functions import FunctionRegistry
from sheetcalc.calc._graph import DependencyGraph
from sheetcalc.calc._planner import RecalcPlanner

logger = logging.getLogger(__name__)


class Spreadsheet:
    """An unbounded grid of named cells holding text, numbers or formulas.

    Cell names are case-insensitive (``a1`` and ``A1`` are the same cell)
    and must be letters followed by digits. Every change recomputes exactly
    the cells downstream of it, in dependency order::

        sheet = Spreadsheet()
        sheet.set_contents("A1", "5")
        sheet.set_contents("B1", "=A1*2")
        sheet.set_contents("A1", "7")   # -> ["A1", "B1"]
        sheet["B1"]                     # -> 14.0

    A change that would make a cell depend on itself raises
    CircularReferenceError and leaves the sheet exactly as it was.
    """

    __slots__ = ("_name", "_cells", "_graph", "_planner", "_evaluator", "_changed")

    def __init__(self, name: str = "default", functions: FunctionRegistry | None = None) -> None:
        self._name = name
        self._cells: dict[str, Cell] = {}
        self._graph = DependencyGraph()
        self._planner = RecalcPlanner(self._graph)
        self._evaluator = FormulaEvaluator(functions)
        self._changed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def changed(self) -> bool:
        """True if the sheet was modified since it was created, loaded or saved."""
        return self._changed

    @property
    def functions(self) -> FunctionRegistry:
        return self._evaluator.functions

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_nonempty_cells(self) -> set[str]:
        """Canonical names of every cell with non-empty contents."""
        return set(self._cells)

    def get_contents(self, name: str) -> Contents:
        """Text, float or Formula stored in *name*; ``""`` if the cell is empty."""
        cell = self._cells.get(canonical_name(name))
        return cell.contents if cell is not None else ""

    def get_value(self, name: str) -> Value:
        """Text, float or FormulaError shown by *name*; ``""`` if the cell is empty."""
        cell = self._cells.get(canonical_name(name))
        return cell.value if cell is not None else ""

    def __getitem__(self, name: str) -> Value:
        return self.get_value(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.upper() in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_contents(self, name: str, content: str) -> list[str]:
        """Set *name* from user-entered text and recalculate what depends on it.

        *content* is a number if it parses as one, a formula if it starts
        with ``=``, and text otherwise; empty text clears the cell.

        Returns *name* (canonical) followed by every cell that depends on it
        directly or indirectly, in the order they were recalculated.

        Raises InvalidNameError, FormulaFormatError or CircularReferenceError
        without changing anything.
        """
        name = canonical_name(name)
        number = parse_number(content)
        if number is not None:
            affected = self._set_value_cell(name, Cell(number))
        elif content.startswith(FORMULA_MARKER):
            formula = Formula(content[len(FORMULA_MARKER):])
            affected = self._set_formula_cell(name, formula)
        elif content:
            affected = self._set_value_cell(name, Cell(content))
        else:
            affected = self._set_value_cell(name, None)

        for dependent in affected[1:]:
            cell = self._cells.get(dependent)
            if cell is not None:
                cell.recalculate(self._lookup, self._evaluator)

        self._changed = True
        logger.debug("Set %s; recalculated %d dependent cell(s)", name, len(affected) - 1)
        return affected

    def _set_value_cell(self, name: str, cell: Cell | None) -> list[str]:
        """Store a text or number cell (or remove the cell when *cell* is None)."""
        if cell is None:
            self._cells.pop(name, None)
        else:
            self._cells[name] = cell
        self._graph.replace_dependees(name, ())
        # Cannot cycle: name no longer reads anything.
        return self._planner.plan(name)

    def _set_formula_cell(self, name: str, formula: Formula) -> list[str]:
        previous = self._graph.get_dependees(name)
        self._graph.replace_dependees(name, formula.variables)
        try:
            affected = self._planner.plan(name)
            cell = Cell(formula, self._lookup, self._evaluator)
        except CircularReferenceError:
            self._graph.replace_dependees(name, previous)
            logger.debug("Rejected %s=%s: circular reference", name, formula)
            raise
        except Exception:
            self._graph.replace_dependees(name, previous)
            raise
        self._cells[name] = cell
        return affected

    def _lookup(self, name: str) -> float:
        """Numeric value of *name* for formula evaluation.

        Raises KeyError for an empty cell and ValueError for a cell whose
        value is not a number.
        """
        cell = self._cells.get(name)
        if cell is None:
            raise KeyError(name)
        value = cell.value
        if not isinstance(value, float):
            raise ValueError(f"{name} does not hold a number")
        return value

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_json(self) -> str:
        """Serialize every non-empty cell's contents. Does not clear :attr:`changed`."""
        return _persistence.dumps({name: cell.contents for name, cell in self._cells.items()})

    def save(self, filename: str | os.PathLike[str]) -> None:
        """Write the sheet to *filename* as JSON and clear :attr:`changed`."""
        _persistence.write_file(filename, self.to_json())
        self._changed = False
        logger.info("Saved %d cell(s) to %s", len(self._cells), filename)

    def load(self, filename: str | os.PathLike[str]) -> None:
        """Replace this sheet's cells with those saved in *filename*.

        Entries are replayed through :meth:`set_contents`, so names, formulas
        and cycles are checked exactly as for live edits. The current cells
        are only replaced once the whole file has loaded; on any failure a
        SpreadsheetReadWriteError is raised and the sheet is unchanged.
        """
        entries = _persistence.read_file(filename)
        scratch = Spreadsheet(self._name, self._evaluator.functions)
        try:
            for cell_name, form in entries.items():
                scratch.set_contents(cell_name, form)
        except Exception as e:
            logger.warning("Rejected %s: %s", filename, e)
            raise SpreadsheetReadWriteError(f"Error loading the spreadsheet: {e}") from e

        self._cells = scratch._cells
        self._graph = scratch._graph
        self._planner = scratch._planner
        self._changed = False
        logger.info("Loaded %d cell(s) from %s", len(self._cells), filename)

    def __repr__(self) -> str:
        return f"<Spreadsheet {self._name!r} cells={len(self._cells)} changed={self._changed}>"
