"""Tests for Cell and the name/number helpers."""

from __future__ import annotations

import pytest

from sheetcalc import InvalidNameError
from sheetcalc._cell import Cell
from sheetcalc._utils import canonical_name, format_number, is_valid_name, parse_number
from sheetcalc.calc import Formula, FormulaError


class TestCell:
    def test_text_is_its_own_value(self) -> None:
        cell = Cell("hello")
        assert cell.contents == "hello"
        assert cell.value == "hello"
        assert not cell.is_formula

    def test_number_is_its_own_value(self) -> None:
        cell = Cell(2.5)
        assert cell.value == 2.5

    def test_formula_evaluates_on_construction(self) -> None:
        cell = Cell(Formula("A1*2"), lambda name: 21.0)
        assert cell.is_formula
        assert cell.value == 42.0

    def test_formula_needs_lookup(self) -> None:
        with pytest.raises(ValueError):
            Cell(Formula("1+1"))

    def test_recalculate_formula(self) -> None:
        values = {"A1": 1.0}
        cell = Cell(Formula("A1+1"), values.__getitem__)
        values["A1"] = 10.0
        cell.recalculate(values.__getitem__)
        assert cell.value == 11.0

    def test_recalculate_absorbs_missing_reference(self) -> None:
        values = {"A1": 1.0}
        cell = Cell(Formula("A1+1"), values.__getitem__)
        del values["A1"]
        cell.recalculate(values.__getitem__)
        assert cell.value is FormulaError.REF

    def test_recalculate_is_noop_for_values(self) -> None:
        def boom(name: str) -> float:
            raise AssertionError("lookup should not be called")

        cell = Cell(3.0)
        cell.recalculate(boom)
        assert cell.value == 3.0

    def test_contents_is_read_only(self) -> None:
        cell = Cell("x")
        with pytest.raises(AttributeError):
            cell.contents = "y"  # type: ignore[misc]


class TestNames:
    @pytest.mark.parametrize("name", ["A1", "a1", "ZZ99", "abc123", "x0"])
    def test_valid(self, name: str) -> None:
        assert is_valid_name(name)
        assert canonical_name(name) == name.upper()

    @pytest.mark.parametrize("name", ["", "A", "1", "1A", "A1A", "A-1", " A1", "A1 "])
    def test_invalid(self, name: str) -> None:
        assert not is_valid_name(name)
        with pytest.raises(InvalidNameError) as exc:
            canonical_name(name)
        assert exc.value.name == name

    def test_non_string(self) -> None:
        with pytest.raises(InvalidNameError):
            canonical_name(None)  # type: ignore[arg-type]


class TestNumbers:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("5", 5.0), ("-2.5", -2.5), (" .5 ", 0.5), ("1e3", 1000.0), ("+7", 7.0), ("3.", 3.0)],
    )
    def test_parse(self, text: str, expected: float) -> None:
        assert parse_number(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "nan", "inf", "-Infinity", "1_0", "1e", "1e999", "=1"])
    def test_not_numbers(self, text: str) -> None:
        assert parse_number(text) is None

    @pytest.mark.parametrize(
        ("value", "text"),
        [(2.0, "2"), (-3.0, "-3"), (0.5, "0.5"), (1e3, "1000"), (1e-7, "1e-07"), (0.0, "0")],
    )
    def test_format(self, value: float, text: str) -> None:
        assert format_number(value) == text

    def test_format_parses_back(self) -> None:
        for value in (1 / 3, 1e20, -2.5e-9, 123456789.125):
            assert parse_number(format_number(value)) == value
