"""Tests for the form schema models."""

import pytest
from pydantic import ValidationError

from formcalc._schema import ExpressionMode, ExpressionSpec, FieldChange, FieldDescriptor, FormSchema


class TestExpressionSpec:
    """Tests for ExpressionSpec validation."""

    def test_camel_case_wire_names(self) -> None:
        spec = ExpressionSpec.model_validate(
            {
                "expression": "a + b",
                "mode": "value",
                "dependencies": ["a", "b"],
                "evaluateOnChange": False,
                "debounceMs": 300,
                "defaultValue": 0,
                "errorMessage": "Could not compute",
            },
        )
        assert spec.evaluate_on_change is False
        assert spec.debounce_ms == 300
        assert spec.default_value == 0
        assert spec.error_message == "Could not compute"

    def test_snake_case_names(self) -> None:
        spec = ExpressionSpec.model_validate({"expression": "1", "debounce_ms": 50})
        assert spec.debounce_ms == 50

    def test_defaults(self) -> None:
        spec = ExpressionSpec(expression="1")
        assert spec.mode == ExpressionMode.VALUE
        assert spec.dependencies == ()
        assert spec.evaluate_on_change is True
        assert spec.debounce_ms == 0

    def test_source_alias(self) -> None:
        assert ExpressionSpec.model_validate({"source": "x * 2"}).expression == "x * 2"

    def test_dependencies_deduplicated_in_order(self) -> None:
        spec = ExpressionSpec.model_validate({"expression": "a", "dependencies": ["b", "a", "b"]})
        assert spec.dependencies == ("b", "a")

    def test_negative_debounce_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ExpressionSpec.model_validate({"expression": "1", "debounceMs": -1})

    def test_unknown_mode_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ExpressionSpec.model_validate({"expression": "1", "mode": "colour"})

    def test_frozen(self) -> None:
        spec = ExpressionSpec(expression="1")
        with pytest.raises(ValidationError):
            spec.debounce_ms = 5  # type: ignore[misc]


class TestExpressionMode:
    def test_boolean_modes(self) -> None:
        assert {m for m in ExpressionMode if m.is_boolean} == {
            ExpressionMode.VISIBILITY,
            ExpressionMode.DISABLED,
            ExpressionMode.REQUIRED,
            ExpressionMode.VALIDATION,
        }

    def test_textual_modes(self) -> None:
        assert ExpressionMode("helperText").is_textual
        assert ExpressionMode.LABEL.is_textual
        assert not ExpressionMode.TEXT.is_textual


class TestFormSchema:
    """Tests for FormSchema validation."""

    def test_fields_in_declaration_order(self) -> None:
        schema = FormSchema.model_validate({"fields": [{"id": "b"}, {"id": "a"}]})
        assert schema.field_ids == ("b", "a")

    def test_duplicate_ids_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate field ids: a"):
            FormSchema.model_validate({"fields": [{"id": "a"}, {"id": "a"}]})

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FieldDescriptor.model_validate({"id": ""})

    def test_get_field(self) -> None:
        schema = FormSchema.model_validate(
            {"fields": [{"id": "x"}, {"id": "y", "expression": {"expression": "x", "dependencies": ["x"]}}]},
        )
        assert schema.get_field("y").is_derived
        assert not schema.get_field("x").is_derived
        with pytest.raises(KeyError, match="Field not found: z"):
            schema.get_field("z")


class TestFieldChange:
    def test_wire_names(self) -> None:
        change = FieldChange.model_validate({"fieldId": "x", "newValue": 3, "atMs": 100})
        assert (change.field_id, change.new_value, change.at_ms) == ("x", 3, 100)
