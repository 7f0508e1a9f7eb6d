"""Result types produced by evaluating form fields."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from formcalc._expr import ErrorKind


@dataclass(frozen=True, slots=True)
class EvaluationError:
    """Why a field could not be computed.

    Attributes:
        kind: Category of the failure.
        message: User-facing message (the field's ``error_message`` when set).
        detail: Underlying error text, kept for logs and diagnostics.

    """

    kind: ErrorKind
    message: str
    detail: str = ""

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


@dataclass(frozen=True, slots=True)
class EvaluationResult:
    """Outcome of evaluating one field.

    On failure ``value`` holds the fallback value (the last successfully
    computed value, else the field's default) and ``fallback`` is True.
    """

    field_id: str
    value: Any
    error: EvaluationError | None = None
    fallback: bool = False
    timestamp: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class PassResult:
    """Result of one propagation pass.

    Attributes:
        values: Value of every field of the form after the pass.
        results: One EvaluationResult per evaluated field, in emission order.
        order: Evaluation order of the acyclic part of the pass.
        cycle_members: Fields of the pass left at their fallback because they
            sit on a dependency cycle.

    """

    values: dict[str, Any] = field(default_factory=dict)
    results: list[EvaluationResult] = field(default_factory=list)
    order: tuple[str, ...] = ()
    cycle_members: frozenset[str] = frozenset()

    @property
    def success(self) -> bool:
        """Check if every evaluated field succeeded."""
        return all(result.ok for result in self.results)

    @property
    def errors(self) -> list[EvaluationResult]:
        return [result for result in self.results if not result.ok]

    def get_value(self, field_id: str) -> Any:
        """Get a field value after the pass.

        Raises:
            KeyError: If the form has no such field.

        """
        return self.values[field_id]

    def result_for(self, field_id: str) -> EvaluationResult | None:
        """Return the result of ``field_id`` if it was evaluated in this pass."""
        for result in self.results:
            if result.field_id == field_id:
                return result
        return None
