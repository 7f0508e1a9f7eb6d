"""Exceptions raised by the expression layer."""

from enum import StrEnum, auto


class ErrorKind(StrEnum):
    """The kind of error that prevented a field from being computed."""

    PARSE = auto()  # Malformed expression source
    UNRESOLVED_REFERENCE = auto()  # Identifier not present in the value context
    CYCLE = auto()  # Field participates in a dependency cycle
    TYPE = auto()  # Operand or result of the wrong type
    SCHEMA = auto()  # Field blocked by a schema error (e.g. unknown dependency)


class ExpressionError(Exception):
    """Base class for errors raised while compiling or evaluating an expression."""

    kind: ErrorKind = ErrorKind.TYPE


class ExpressionParseError(ExpressionError):
    """Expression source does not conform to the grammar.

    Attributes:
        pos: Character offset of the offending token in the source.
        token: Text of the offending token (empty at end of input).

    """

    kind = ErrorKind.PARSE

    def __init__(self, message: str, pos: int = 0, token: str = "") -> None:
        super().__init__(message)
        self.pos = pos
        self.token = token


class UnresolvedReferenceError(ExpressionError):
    """An identifier could not be resolved against the value context."""

    kind = ErrorKind.UNRESOLVED_REFERENCE

    def __init__(self, name: str) -> None:
        super().__init__(f"Unresolved reference: '{name}'")
        self.name = name


class ExpressionTypeError(ExpressionError):
    """An operand or result has a type the operation cannot handle."""

    kind = ErrorKind.TYPE
