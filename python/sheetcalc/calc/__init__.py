"""sheetcalc.calc - Reference graph, recalculation planning and formula evaluation."""

from sheetcalc.calc._evaluator import FormulaEvaluator
from sheetcalc.calc._formula import Formula
from sheetcalc.calc._functions import FormulaError, FunctionRegistry, is_error
from sheetcalc.calc._graph import DependencyGraph
from sheetcalc.calc._planner import RecalcPlanner

__all__ = [
    "DependencyGraph",
    "Formula",
    "FormulaError",
    "FormulaEvaluator",
    "FunctionRegistry",
    "RecalcPlanner",
    "is_error",
]
