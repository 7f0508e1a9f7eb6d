"""Tests for the expression evaluator, value coercion and function library."""

import math
from typing import Any

import pytest

from formcalc._expr import (
    ErrorKind,
    ExpressionTypeError,
    UnresolvedReferenceError,
    ValueContext,
    as_number,
    compile_expression,
    display_string,
    evaluate,
    truthy,
)


def run(source: str, **values: Any) -> Any:
    """Compile and evaluate ``source`` against keyword values."""
    return evaluate(compile_expression(source).tree, ValueContext.from_values(values))


class TestArithmetic:
    """Tests for arithmetic operators."""

    def test_precedence(self) -> None:
        assert run("2 + 3 * 4") == 14
        assert run("(2 + 3) * 4") == 20

    def test_numeric_strings_are_coerced(self) -> None:
        assert run("x * 2", x="70") == 140
        assert run("x - 1", x=" 2.5 ") == 1.5

    def test_division(self) -> None:
        assert run("7 / 2") == 3.5

    def test_division_by_zero_is_nan(self) -> None:
        assert math.isnan(run("x / 0", x=5))
        assert math.isnan(run("x % 0", x=5))

    def test_nan_propagates(self) -> None:
        assert math.isnan(run("x / 0 + 1", x=1))

    def test_modulo_sign_follows_dividend(self) -> None:
        assert run("-7 % 3") == -1
        assert run("7 % 3") == 1

    def test_unary_minus(self) -> None:
        assert run("-x", x=4) == -4

    def test_plus_concatenates_strings(self) -> None:
        assert run("'Hello, ' + name", name="Ada") == "Hello, Ada"
        assert run("'n=' + 2") == "n=2"
        assert run("'x' + true") == "xtrue"

    def test_plus_adds_numeric_strings(self) -> None:
        assert run("a + b", a="1", b="2") == 3

    def test_none_is_not_a_number(self) -> None:
        with pytest.raises(ExpressionTypeError, match="empty value"):
            run("x * 2", x=None)

    def test_boolean_is_not_a_number(self) -> None:
        with pytest.raises(ExpressionTypeError):
            run("x + 1", x=True)

    def test_non_numeric_string_in_arithmetic(self) -> None:
        with pytest.raises(ExpressionTypeError, match="string 'abc'") as exc_info:
            run("x * 2", x="abc")
        assert exc_info.value.kind == ErrorKind.TYPE


class TestComparisonAndLogic:
    """Tests for comparison, logical and conditional expressions."""

    def test_loose_numeric_equality(self) -> None:
        assert run("x == 70", x="70") is True
        assert run("x != 70", x=70.0) is False

    def test_plain_equality(self) -> None:
        assert run("x == 'a'", x="a") is True
        assert run("x == null", x=None) is True
        assert run("x == 1", x="one") is False

    def test_ordering(self) -> None:
        assert run("x >= 18", x=18) is True
        assert run("a < b", a="apple", b="banana") is True

    def test_ordering_mixed_types_is_error(self) -> None:
        with pytest.raises(ExpressionTypeError, match="Cannot compare"):
            run("x < 1", x="abc")

    def test_and_or_return_deciding_operand(self) -> None:
        assert run("a || 'default'", a="") == "default"
        assert run("a && b", a=1, b="yes") == "yes"
        assert run("a && b", a=0, b="yes") == 0

    def test_short_circuit_skips_right_side(self) -> None:
        # The right-hand side would fail to resolve if it were evaluated.
        assert run("false && missing") is False
        assert run("true || missing") is True

    def test_not(self) -> None:
        assert run("!x", x="") is True
        assert run("!x", x=3) is False

    def test_ternary(self) -> None:
        assert run("age >= 18 ? 'adult' : 'minor'", age=20) == "adult"
        assert run("age >= 18 ? 'adult' : 'minor'", age=10) == "minor"


class TestReferences:
    """Tests for identifier resolution against the context."""

    def test_unknown_identifier(self) -> None:
        with pytest.raises(UnresolvedReferenceError, match="'missing'") as exc_info:
            run("missing + 1")
        assert exc_info.value.kind == ErrorKind.UNRESOLVED_REFERENCE

    def test_value_attribute(self) -> None:
        assert run("price.value * 2", price=5) == 10

    def test_valid_and_required_attributes(self) -> None:
        context = ValueContext.from_values({"name": ""}, required=["name"])
        tree = compile_expression("name.valid || name.required").tree
        assert evaluate(tree, context) is True
        assert evaluate(compile_expression("name.valid").tree, context) is False

    def test_dotted_field_id_longest_prefix(self) -> None:
        context = ValueContext.from_values({"result": 1, "result.total": 41})
        assert evaluate(compile_expression("result.total + 1").tree, context) == 42

    def test_unknown_attribute(self) -> None:
        with pytest.raises(UnresolvedReferenceError):
            run("price.colour", price=5)

    def test_restricted_context_hides_other_fields(self) -> None:
        context = ValueContext.from_values({"a": 1, "secret": 2}).restrict(["a"])
        with pytest.raises(UnresolvedReferenceError):
            evaluate(compile_expression("a + secret").tree, context)


class TestFunctions:
    """Tests for the function library."""

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("abs(-3)", 3),
            ("round(2.5)", 3),
            ("round(-2.5)", -2),
            ("round(22.857, 1)", 22.9),
            ("floor(2.7)", 2),
            ("ceil(2.1)", 3),
            ("sqrt(16)", 4.0),
            ("pow(2, 10)", 1024),
            ("pow(1.75, 2)", 3.0625),
            ("min(3, 1, 2)", 1),
            ("max(3, '7', 2)", 7),
            ("parseFloat('3.5kg')", 3.5),
            ("parseInt('42px')", 42),
            ("parseInt(7.9)", 7),
            ("parseInt('ff', 16)", 255),
            ("isNaN('abc')", True),
            ("isNaN('12')", False),
            ("isFinite(1 / 0)", False),
            ("isFinite(3)", True),
            ("toString(2.0)", "2"),
            ("length('hello')", 5),
            ("length(3)", 0),
            ("if(1 > 0, 'yes', 'no')", "yes"),
        ],
    )
    def test_results(self, source: str, expected: Any) -> None:
        assert run(source) == expected

    def test_sqrt_of_negative_is_nan(self) -> None:
        assert math.isnan(run("sqrt(-1)"))

    def test_parse_float_without_number_is_nan(self) -> None:
        assert math.isnan(run("parseFloat('abc')"))

    def test_min_with_nan_is_nan(self) -> None:
        assert math.isnan(run("min(1, 0 / 0)"))

    def test_pow_overflow_is_infinite(self) -> None:
        assert run("pow(10.0, 400)") == math.inf

    def test_round_with_extreme_digits(self) -> None:
        assert run("round(x, d)", x=5, d=-400) == 0
        assert run("round(1.5, 400)") == 1.5
        assert run("round(1e300, 300)") == 1e300

    def test_big_integer_division_overflows_to_infinity(self) -> None:
        assert run("pow(pow(x, 64), 64) / 3", x=10) == math.inf
        assert run("-pow(pow(x, 64), 64) / 3", x=10) == -math.inf

    def test_big_integer_times_float_overflows_to_infinity(self) -> None:
        assert run("pow(pow(x, 64), 64) * 1.5", x=10) == math.inf
        assert run("pow(pow(x, 64), 64) * -1.5", x=10) == -math.inf

    def test_big_integer_modulo(self) -> None:
        assert run("pow(pow(x, 64), 64) % 7", x=10) == pow(10, 4096, 7)
        assert run("-pow(pow(x, 64), 64) % 7", x=10) == -pow(10, 4096, 7)
        assert math.isnan(run("pow(pow(x, 64), 64) % 1.5", x=10))

    def test_function_argument_type_error(self) -> None:
        with pytest.raises(ExpressionTypeError, match="abs"):
            run("abs('abc')")


class TestCoercion:
    """Tests for as_number, truthy and display_string."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(3, 3), (2.5, 2.5), ("70", 70), (" 1.5 ", 1.5), ("", None), ("abc", None), ("nan", None), (True, None)],
    )
    def test_as_number(self, value: Any, expected: Any) -> None:
        assert as_number(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, False), (False, False), (0, False), (math.nan, False), ("", False), ("0", True), (-1, True)],
    )
    def test_truthy(self, value: Any, expected: bool) -> None:
        assert truthy(value) is expected

    def test_truthy_rejects_non_scalars(self) -> None:
        with pytest.raises(ExpressionTypeError):
            truthy([1])

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, ""),
            (True, "true"),
            (False, "false"),
            (22.0, "22"),
            (22.9, "22.9"),
            (math.nan, "NaN"),
            (math.inf, "Infinity"),
            ("text", "text"),
        ],
    )
    def test_display_string(self, value: Any, expected: str) -> None:
        assert display_string(value) == expected
