"""Form schema input models.

These are the structures supplied by the form-definition loader. They accept
the camelCase names used in form JSON (``debounceMs``, ``defaultValue``, ...)
as well as snake_case names, and are immutable once validated.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Scalar = bool | int | float | str | None


class ExpressionMode(StrEnum):
    """How an expression's result affects its field."""

    VALUE = "value"  # Sets the field value
    VISIBILITY = "visibility"  # Shows or hides the field
    TEXT = "text"  # Interpolates {{fieldId}} placeholders into display text
    DISABLED = "disabled"  # Enables or disables the field
    REQUIRED = "required"  # Makes the field required
    VALIDATION = "validation"  # Marks the field valid or invalid
    LABEL = "label"  # Sets the field label
    HELPER_TEXT = "helperText"  # Sets the field helper text

    @property
    def is_boolean(self) -> bool:
        """Whether results in this mode are coerced to booleans."""
        return self in _BOOLEAN_MODES

    @property
    def is_textual(self) -> bool:
        """Whether results in this mode are rendered as strings."""
        return self in (ExpressionMode.LABEL, ExpressionMode.HELPER_TEXT)


_BOOLEAN_MODES = frozenset(
    {ExpressionMode.VISIBILITY, ExpressionMode.DISABLED, ExpressionMode.REQUIRED, ExpressionMode.VALIDATION},
)


class _SchemaModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ExpressionSpec(_SchemaModel):
    """Declaration of how a field is derived from other fields.

    Attributes:
        expression: Expression source, or the template for ``text`` mode.
            ``source`` is accepted as an alternative name.
        mode: How the result affects the field.
        dependencies: Field ids the expression may read, in declaration order.
            Evaluation never reads a field outside this list.
        evaluate_on_change: Re-evaluate when a dependency changes. When False
            the field is only computed by full evaluations.
        debounce_ms: Quiet period after the last change before re-evaluation.
        default_value: Value shown until a first successful evaluation.
        error_message: User-facing message replacing evaluation error text.

    """

    expression: str = Field(validation_alias=AliasChoices("expression", "source"))
    mode: ExpressionMode = ExpressionMode.VALUE
    dependencies: tuple[str, ...] = ()
    evaluate_on_change: bool = True
    debounce_ms: int = Field(default=0, ge=0)
    default_value: Scalar = None
    error_message: str | None = None

    @field_validator("dependencies", mode="before")
    @classmethod
    def _dedupe_dependencies(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(dict.fromkeys(value))
        return value


class FieldDescriptor(_SchemaModel):
    """A single field of a form, optionally derived through an expression."""

    id: str = Field(min_length=1)
    expression: ExpressionSpec | None = None
    required: bool = False

    @property
    def is_derived(self) -> bool:
        return self.expression is not None


class FormSchema(_SchemaModel):
    """All fields of a form, in declaration order."""

    fields: tuple[FieldDescriptor, ...] = ()

    @model_validator(mode="after")
    def _check_unique_ids(self) -> FormSchema:
        seen: set[str] = set()
        duplicates: list[str] = []
        for descriptor in self.fields:
            if descriptor.id in seen:
                duplicates.append(descriptor.id)
            seen.add(descriptor.id)
        if duplicates:
            msg = f"Duplicate field ids: {', '.join(sorted(set(duplicates)))}"
            raise ValueError(msg)
        return self

    @property
    def field_ids(self) -> tuple[str, ...]:
        return tuple(descriptor.id for descriptor in self.fields)

    def get_field(self, field_id: str) -> FieldDescriptor:
        """Get a field by id.

        Raises:
            KeyError: If no field has the given id.

        """
        for descriptor in self.fields:
            if descriptor.id == field_id:
                return descriptor
        msg = f"Field not found: {field_id}"
        raise KeyError(msg)


class FieldChange(_SchemaModel):
    """A raw value-change event from an input widget.

    ``at_ms`` places the event on a timeline when changes are replayed.
    """

    field_id: str = Field(min_length=1)
    new_value: Scalar = None
    at_ms: int = Field(default=0, ge=0)
