"""Syntax tree nodes of the expression language.

All nodes are frozen, so a compiled tree can be shared between evaluations
of the same field without copying.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeAlias


class BinaryOp(StrEnum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    EQ = "=="
    NE = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    AND = "&&"
    OR = "||"


class UnaryOp(StrEnum):
    NEG = "-"
    NOT = "!"


@dataclass(frozen=True, slots=True)
class Literal:
    value: Any


@dataclass(frozen=True, slots=True)
class FieldRef:
    """Reference to a field, optionally dotted (``price.value``, ``result.total``)."""

    path: tuple[str, ...]
    pos: int = 0

    @property
    def name(self) -> str:
        return ".".join(self.path)


@dataclass(frozen=True, slots=True)
class UnaryExpr:
    op: UnaryOp
    operand: Expr


@dataclass(frozen=True, slots=True)
class BinaryExpr:
    op: BinaryOp
    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class Conditional:
    """Ternary ``condition ? then_expr : else_expr``."""

    condition: Expr
    then_expr: Expr
    else_expr: Expr


@dataclass(frozen=True, slots=True)
class FuncCall:
    name: str
    args: tuple[Expr, ...]


Expr: TypeAlias = Literal | FieldRef | UnaryExpr | BinaryExpr | Conditional | FuncCall
