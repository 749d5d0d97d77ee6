"""Tests for sheetcalc.calc formula evaluation."""

from __future__ import annotations

from typing import Callable

import pytest

from sheetcalc.calc import Formula, FormulaError, FormulaEvaluator, FunctionRegistry
from sheetcalc.calc import _evaluator


def _lookup(values: dict[str, object]) -> Callable[[str], float]:
    """Lookup with the sheet's contract: KeyError if absent, ValueError if not numeric."""

    def lookup(name: str) -> float:
        value = values[name]
        if not isinstance(value, float):
            raise ValueError(name)
        return value

    return lookup


def _eval(source: str, values: dict[str, object] | None = None, **kwargs: object) -> object:
    return Formula(source).evaluate(_lookup(values or {}), **kwargs)


@pytest.fixture
def no_formulas_lib(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(_evaluator, "_formulas_available", False)


class TestArithmetic:
    def test_precedence(self) -> None:
        assert _eval("1+2*3") == 7.0

    def test_parentheses(self) -> None:
        assert _eval("(1+2)*3") == 9.0

    def test_left_associative_division(self) -> None:
        assert _eval("8/4/2") == 1.0

    def test_unary_minus(self) -> None:
        assert _eval("-A1", {"A1": 5.0}) == -5.0
        assert _eval("--A1", {"A1": 5.0}) == 5.0

    def test_references(self) -> None:
        assert _eval("(A1+B1)/2", {"A1": 3.0, "B1": 4.0}) == 3.5

    def test_result_is_float(self) -> None:
        assert isinstance(_eval("2+2"), float)

    def test_long_operator_chain(self) -> None:
        assert _eval("+".join(["A1"] * 5000), {"A1": 2.0}) == 10000.0

    def test_long_mixed_chain(self) -> None:
        source = "10" + "-A1*2" * 2000
        assert _eval(source, {"A1": 0.5}) == -1990.0

    def test_long_chain_inside_function(self) -> None:
        source = "ABS(" + "-".join(["A1"] * 3000) + ")"
        assert _eval(source, {"A1": 1.0}) == 2998.0


class TestErrorValues:
    def test_division_by_zero(self) -> None:
        assert _eval("1/0") is FormulaError.DIV0
        assert _eval("A1/(B1-B1)", {"A1": 1.0, "B1": 2.0}) is FormulaError.DIV0

    def test_missing_reference(self) -> None:
        assert _eval("Z9+1") is FormulaError.REF

    def test_non_numeric_reference(self) -> None:
        assert _eval("A1*2", {"A1": "hello"}) is FormulaError.VALUE

    def test_error_valued_reference(self) -> None:
        assert _eval("A1*2", {"A1": FormulaError.DIV0}) is FormulaError.VALUE

    def test_first_error_wins(self) -> None:
        assert _eval("Z9/0") is FormulaError.REF
        assert _eval("1/0+Z9") is FormulaError.DIV0

    def test_overflow(self) -> None:
        assert _eval("1e308*10") is FormulaError.NUM

    def test_error_in_function_argument(self) -> None:
        assert _eval("SUM(1, Z9)") is FormulaError.REF

    def test_wrong_arity(self) -> None:
        assert _eval("ABS(1, 2)") is FormulaError.VALUE

    def test_unknown_function(self, no_formulas_lib: None) -> None:
        assert _eval("NOSUCHFUNC(1)") is FormulaError.NAME


class TestFunctions:
    def test_nested(self) -> None:
        values = {"A1": 3.0, "A2": -5.0, "A3": 7.0}
        assert _eval("MAX(SUM(A1, A2, A3), ABS(A2))", values) == 5.0

    def test_round_in_expression(self) -> None:
        assert _eval("ROUND(A1/3, 2)*3", {"A1": 10.0}) == pytest.approx(9.99)

    def test_custom_function(self) -> None:
        registry = FunctionRegistry()
        registry.register("double", lambda args: args[0] * 2)
        evaluator = FormulaEvaluator(registry)
        assert _eval("DOUBLE(A1)+1", {"A1": 4.0}, evaluator=evaluator) == 9.0

    def test_custom_function_not_global(self, no_formulas_lib: None) -> None:
        registry = FunctionRegistry()
        registry.register("TRIPLE", lambda args: args[0] * 3)
        assert _eval("TRIPLE(1)") is FormulaError.NAME

    def test_custom_function_raising(self) -> None:
        def strict(args: list[float]) -> float:
            raise ValueError("nope")

        registry = FunctionRegistry()
        registry.register("STRICT", strict)
        assert _eval("STRICT(1)", evaluator=FormulaEvaluator(registry)) is FormulaError.VALUE

    def test_custom_function_bad_arguments(self) -> None:
        registry = FunctionRegistry()
        registry.register("FIRST", lambda args: args[0])
        evaluator = FormulaEvaluator(registry)
        assert _eval("FIRST()+A1", {"A1": 1.0}, evaluator=evaluator) is FormulaError.VALUE
        assert _eval("FIRST(A1)+A1", {"A1": 1.0}, evaluator=evaluator) == 2.0

    def test_custom_function_non_numeric_result(self) -> None:
        registry = FunctionRegistry()
        registry.register("LABEL", lambda args: "total")
        assert _eval("LABEL(1)", evaluator=FormulaEvaluator(registry)) is FormulaError.VALUE


class TestFormulasFallback:
    """Functions outside the registry are handed to the formulas library."""

    def test_constant_sln(self) -> None:
        pytest.importorskip("formulas")
        assert _eval("SLN(30000,7500,10)") == 2250.0

    def test_constant_pmt(self) -> None:
        pytest.importorskip("formulas")
        assert _eval("PMT(0.05/12,360,200000)") == pytest.approx(-1073.6432460242797, abs=0.01)

    def test_cell_reference_argument(self) -> None:
        pytest.importorskip("formulas")
        assert _eval("SLN(A1,7500,10)", {"A1": 30000.0}) == 2250.0

    def test_missing_reference_argument(self) -> None:
        pytest.importorskip("formulas")
        assert _eval("SLN(A1,7500,10)") is FormulaError.REF

    def test_compiled_formulas_are_bounded(self) -> None:
        info = _evaluator._compile_formula.cache_info()
        assert info.maxsize == _evaluator.COMPILED_CACHE_SIZE

    def test_compiled_formula_shared_across_evaluators(self) -> None:
        pytest.importorskip("formulas")
        _evaluator._compile_formula.cache_clear()
        first = FormulaEvaluator()
        second = FormulaEvaluator()
        assert _eval("SLN(30000,7500,10)", evaluator=first) == 2250.0
        assert _eval("SLN(30000,7500,10)", evaluator=second) == 2250.0
        info = _evaluator._compile_formula.cache_info()
        assert (info.misses, info.hits) == (1, 1)


class TestFormulaError:
    def test_codes_are_canonical(self) -> None:
        assert FormulaError.of("#ref!") is FormulaError.REF
        assert FormulaError.of("#div/0!").code == "#DIV/0!"

    def test_not_equal_to_its_code(self) -> None:
        assert FormulaError.REF != "#REF!"
        assert "#VALUE!" != FormulaError.VALUE
        assert FormulaError.REF == FormulaError.of("#REF!")
        assert FormulaError.REF != FormulaError.NAME

    def test_text(self) -> None:
        assert str(FormulaError.NAME) == "#NAME?"
        assert repr(FormulaError.VALUE) == "FormulaError('#VALUE!')"
