"""FormulaEvaluator: walks a parsed formula tree against a cell-value lookup.

Unresolvable references never raise: the lookup's ``KeyError`` (absent
cell) and ``ValueError`` (non-numeric cell) become ``#REF!`` and ``#VALUE!``
error values, so recalculating a chain of cells cannot abort partway.

When the ``formulas`` library is installed (via ``sheetcalc[calc]``), a
formula calling a function the registry does not know is handed to the
library before falling back to ``#NAME?``.
"""

from __future__ import annotations

import inspect
import logging
import math
from functools import lru_cache
from typing import Any, Callable

from sheetcalc.calc._functions import FormulaError, FunctionRegistry, first_error
from sheetcalc.calc._parser import BinaryOp, Call, CellRef, Node, Number, UnaryOp

logger = logging.getLogger(__name__)

Lookup = Callable[[str], float]

# ---------------------------------------------------------------------------
# formulas library availability
# ---------------------------------------------------------------------------

_formulas_available: bool | None = None


def _check_formulas() -> bool:
    global _formulas_available
    if _formulas_available is None:
        try:
            import formulas  # noqa: F401

            _formulas_available = True
        except ImportError:
            _formulas_available = False
    return _formulas_available


# Compiled formulas kept per process; formulas' compile step is the slow part.
COMPILED_CACHE_SIZE = 256


@lru_cache(maxsize=COMPILED_CACHE_SIZE)
def _compile_formula(text: str) -> Any | None:
    """Compile formula *text* (no leading ``=``) with the ``formulas`` library, or None."""
    import formulas as fm

    try:
        result = fm.Parser().ast("=" + text)
        if result and len(result) > 1:
            return result[1].compile()
    except Exception:
        logger.debug("formulas: cannot compile %r", text)
    return None


class _UnsupportedFunction(Exception):
    """Raised inside a walk when the registry has no such function."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name


def _binary_op(left: float | FormulaError, op: str, right: float | FormulaError) -> float | FormulaError:
    """Evaluate an arithmetic binary operation."""
    # Error propagation: if either operand is an error, propagate it
    err = first_error(left, right)
    if err is not None:
        return err
    if op == '+':
        return left + right
    if op == '-':
        return left - right
    if op == '*':
        return left * right
    if op == '/':
        return FormulaError.DIV0 if right == 0 else left / right
    raise ValueError(f"Unknown operator {op!r}")


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class FormulaEvaluator:
    """Evaluates parsed formulas.

    Usage::

        evaluator = FormulaEvaluator()
        value = evaluator.evaluate(formula, lookup)
    """

    def __init__(self, functions: FunctionRegistry | None = None) -> None:
        self._functions = functions if functions is not None else FunctionRegistry()

    @property
    def functions(self) -> FunctionRegistry:
        return self._functions

    def evaluate(self, text: str, node: Node, lookup: Lookup) -> float | FormulaError:
        """Evaluate the tree *node* of formula *text* (no leading ``=``)."""
        try:
            result = self._eval(node, lookup)
        except _UnsupportedFunction as e:
            logger.debug("Unsupported function %s in %r", e.name, text)
            if not _check_formulas():
                return FormulaError.NAME
            return self._formulas_fallback(text, lookup)
        if isinstance(result, float) and not math.isfinite(result):
            return FormulaError.NUM
        return result

    def _eval(self, node: Node, lookup: Lookup) -> float | FormulaError:
        """Post-order walk with an explicit stack; operands land on *values*.

        Long operator chains build left-deep trees, so native recursion
        would be bounded by the formula's length.
        """
        values: list[float | FormulaError] = []
        stack: list[tuple[Node, bool]] = [(node, False)]

        while stack:
            current, expanded = stack.pop()
            if isinstance(current, Number):
                values.append(current.value)
            elif isinstance(current, CellRef):
                values.append(self._resolve_cell_ref(current.name, lookup))
            elif not expanded:
                if isinstance(current, Call) and not self._functions.has(current.name):
                    raise _UnsupportedFunction(current.name)
                stack.append((current, True))
                # Children pushed right-to-left so the leftmost is evaluated first.
                if isinstance(current, UnaryOp):
                    stack.append((current.operand, False))
                elif isinstance(current, BinaryOp):
                    stack.append((current.right, False))
                    stack.append((current.left, False))
                elif isinstance(current, Call):
                    stack.extend((arg, False) for arg in reversed(current.args))
                else:
                    raise TypeError(f"Unknown formula node {current!r}")
            elif isinstance(current, UnaryOp):
                val = values.pop()
                if not isinstance(val, FormulaError) and current.op == '-':
                    val = -val
                values.append(val)
            elif isinstance(current, BinaryOp):
                right = values.pop()
                left = values.pop()
                values.append(_binary_op(left, current.op, right))
            else:
                count = len(current.args)
                args = values[len(values) - count:]
                del values[len(values) - count:]
                values.append(self._call_function(current.name, args))

        return values[0]

    @staticmethod
    def _resolve_cell_ref(name: str, lookup: Lookup) -> float | FormulaError:
        try:
            return float(lookup(name))
        except KeyError:
            logger.debug("Undefined variable %s", name)
            return FormulaError.REF
        except (ValueError, TypeError):
            logger.debug("Variable %s is not a number", name)
            return FormulaError.VALUE

    # ------------------------------------------------------------------
    # Function dispatch
    # ------------------------------------------------------------------

    def _call_function(self, name: str, args: list[float | FormulaError]) -> float | FormulaError:
        """Apply a registered function to evaluated arguments.

        Registered functions may be user code; whatever they raise becomes
        ``#VALUE!`` so a recalculation pass never stops partway.
        """
        func = self._functions.get(name)
        if func is None:
            raise _UnsupportedFunction(name)
        err = first_error(*args)
        if err is not None:
            return err
        try:
            result = func(args)
            if isinstance(result, FormulaError):
                return result
            return float(result)
        except Exception as e:
            logger.debug("Error evaluating %s: %s", name, e)
            return FormulaError.VALUE

    # ------------------------------------------------------------------
    # formulas library fallback
    # ------------------------------------------------------------------

    def _formulas_fallback(self, text: str, lookup: Lookup) -> float | FormulaError:
        """Evaluate a formula via the ``formulas`` library.

        Compiles the formula into a callable, resolves its cell reference
        parameters through *lookup*, and returns the scalar result.
        """
        import numpy as np

        compiled = _compile_formula(text)
        if compiled is None:
            return FormulaError.NAME

        # The compiled function's signature names the cell references it needs.
        try:
            params = list(inspect.signature(compiled).parameters.keys())
        except (ValueError, TypeError):
            params = []

        args: list[Any] = []
        for param in params:
            val = self._resolve_cell_ref(param.upper(), lookup)
            if isinstance(val, FormulaError):
                return val
            args.append(np.float64(val))

        try:
            raw = compiled(*args)
        except Exception as e:
            logger.debug("formulas: error evaluating %r: %s", text, e)
            return FormulaError.VALUE
        return self._normalize_formulas_result(raw)

    @staticmethod
    def _normalize_formulas_result(raw: Any) -> float | FormulaError:
        """Convert a ``formulas`` library result to a float or FormulaError."""
        val = raw
        # numpy array with single element
        if hasattr(val, 'shape') and hasattr(val, 'flat'):
            if val.size != 1:
                return FormulaError.VALUE
            val = val.flat[0]
        # numpy scalar types
        if hasattr(val, 'item') and not isinstance(val, (int, float)):
            try:
                val = val.item()
            except (ValueError, TypeError):
                pass
        if isinstance(val, bool):
            return float(val)
        if isinstance(val, (int, float)):
            if not math.isfinite(val):
                return FormulaError.NUM
            return float(val)
        # formulas reports errors as XlError objects whose text is the code
        code = str(val)
        if code.startswith('#'):
            return FormulaError.of(code)
        return FormulaError.VALUE
