"""Tests for template interpolation."""

import math

from formcalc._expr import ValueContext
from formcalc._template import interpolate, template_references


class TestTemplateReferences:
    def test_ordered_unique(self) -> None:
        assert template_references("{{b}} {{ a }} {{b}}") == ("b", "a")

    def test_dotted(self) -> None:
        assert template_references("Total: {{result.total}}") == ("result.total",)

    def test_no_placeholders(self) -> None:
        assert template_references("plain text") == ()


class TestInterpolate:
    def test_replaces_values(self) -> None:
        context = ValueContext.from_values({"firstName": "Ada", "lastName": "Lovelace"})
        assert interpolate("Hello, {{firstName}} {{lastName}}", context) == "Hello, Ada Lovelace"

    def test_whitespace_tolerant(self) -> None:
        context = ValueContext.from_values({"x": 3})
        assert interpolate("x is {{  x  }}", context) == "x is 3"

    def test_unknown_id_renders_empty(self) -> None:
        context = ValueContext.from_values({"x": 3})
        assert interpolate("[{{removed}}]", context) == "[]"

    def test_display_strings(self) -> None:
        context = ValueContext.from_values({"n": None, "b": True, "f": 22.0, "nan": math.nan})
        assert interpolate("{{n}}|{{b}}|{{f}}|{{nan}}", context) == "|true|22|NaN"

    def test_attribute_placeholders(self) -> None:
        context = ValueContext.from_values({"email": ""}, required=["email"])
        assert interpolate("valid={{email.valid}}", context) == "valid=false"

    def test_unbalanced_braces_left_alone(self) -> None:
        context = ValueContext.from_values({"x": 1})
        assert interpolate("{x} {{x}", context) == "{x} {{x}"
