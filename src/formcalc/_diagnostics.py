"""Field-scoped diagnostics reported to the schema validity reporter."""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum, auto


class DiagnosticKind(StrEnum):
    """What a diagnostic is about."""

    UNKNOWN_DEPENDENCY = auto()  # Declared dependency names no field of the form
    CYCLE = auto()  # Field is part of a dependency cycle
    PARSE_ERROR = auto()  # Expression source is malformed
    UNDECLARED_REFERENCE = auto()  # Expression reads a field not in its dependencies
    EVALUATION_ERROR = auto()  # Expression failed while evaluating


class Severity(StrEnum):
    ERROR = auto()
    WARNING = auto()


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A structured, field-scoped message.

    Attributes:
        kind: What the diagnostic is about.
        field_id: The field the message is attached to.
        message: Human-readable description.
        severity: ERROR blocks the field; WARNING does not.
        related: Other field ids involved (cycle members, unknown ids).

    """

    kind: DiagnosticKind
    field_id: str
    message: str
    severity: Severity = Severity.ERROR
    related: tuple[str, ...] = ()

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def __str__(self) -> str:
        return f"[{self.kind}] {self.field_id}: {self.message}"


def errors_only(diagnostics: Iterable[Diagnostic]) -> list[Diagnostic]:
    return [d for d in diagnostics if d.is_error]
