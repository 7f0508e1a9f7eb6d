"""Tree-walking evaluator for the expression language.

Evaluation is pure: no I/O, no side effects, no host-language ``eval``.
Only the closed set of node types produced by the parser is handled.
"""

import math
from typing import Any

from ._ast import BinaryExpr, BinaryOp, Conditional, Expr, FieldRef, FuncCall, Literal, UnaryExpr, UnaryOp
from ._coerce import as_number, describe, display_string, is_scalar, to_number, truthy
from ._context import ValueContext
from ._errors import ExpressionError, ExpressionTypeError
from ._functions import FUNCTIONS


def evaluate(expr: Expr, context: ValueContext) -> Any:
    """Evaluate a syntax tree against a value context.

    Args:
        expr: Root of a tree produced by the parser.
        context: Snapshots of the fields the expression may read.

    Returns:
        The computed scalar. Division by zero yields ``math.nan``.

    Raises:
        UnresolvedReferenceError: If a referenced field is not in the context.
        ExpressionTypeError: If an operand cannot be used by its operation.

    """
    match expr:
        case Literal(value=value):
            return value
        case FieldRef(path=path):
            return context.resolve(path)
        case UnaryExpr():
            return _evaluate_unary(expr, context)
        case BinaryExpr():
            return _evaluate_binary(expr, context)
        case Conditional(condition=condition, then_expr=then_expr, else_expr=else_expr):
            branch = then_expr if truthy(evaluate(condition, context)) else else_expr
            return evaluate(branch, context)
        case FuncCall(name=name, args=args):
            function = FUNCTIONS.get(name)
            if function is None:
                msg = f"Unknown function '{name}'"
                raise ExpressionError(msg)
            return function(*(evaluate(arg, context) for arg in args))
        case _:
            msg = f"Unknown expression node: {type(expr).__name__}"
            raise ExpressionError(msg)


def _evaluate_unary(expr: UnaryExpr, context: ValueContext) -> Any:
    operand = evaluate(expr.operand, context)
    if expr.op == UnaryOp.NOT:
        return not truthy(operand)
    return -to_number(operand, operation="-")


def _evaluate_binary(expr: BinaryExpr, context: ValueContext) -> Any:  # noqa: PLR0911
    # Logical operators short-circuit and yield the deciding operand.
    if expr.op == BinaryOp.AND:
        left = evaluate(expr.left, context)
        return evaluate(expr.right, context) if truthy(left) else left
    if expr.op == BinaryOp.OR:
        left = evaluate(expr.left, context)
        return left if truthy(left) else evaluate(expr.right, context)

    left = evaluate(expr.left, context)
    right = evaluate(expr.right, context)

    match expr.op:
        case BinaryOp.ADD:
            return _add(left, right)
        case BinaryOp.SUB:
            return to_number(left, operation="-") - to_number(right, operation="-")
        case BinaryOp.MUL:
            factor_a = to_number(left, operation="*")
            factor_b = to_number(right, operation="*")
            try:
                return factor_a * factor_b
            except OverflowError:
                return _signed_inf(factor_a, factor_b)
        case BinaryOp.DIV:
            dividend = to_number(left, operation="/")
            divisor = to_number(right, operation="/")
            if divisor == 0:
                return math.nan
            try:
                return dividend / divisor
            except OverflowError:
                return _signed_inf(dividend, divisor)
        case BinaryOp.MOD:
            dividend = to_number(left, operation="%")
            divisor = to_number(right, operation="%")
            if divisor == 0:
                return math.nan
            if isinstance(dividend, int) and isinstance(divisor, int):
                # Sign follows the dividend.
                result = abs(dividend) % abs(divisor)
                return -result if dividend < 0 else result
            try:
                return math.fmod(dividend, divisor)
            except OverflowError:
                return math.nan
        case BinaryOp.EQ:
            return _loose_equals(left, right)
        case BinaryOp.NE:
            return not _loose_equals(left, right)
        case BinaryOp.LT | BinaryOp.GT | BinaryOp.LE | BinaryOp.GE:
            return _compare(expr.op, left, right)
        case _:
            msg = f"Unknown binary operator: {expr.op}"
            raise ExpressionError(msg)


def _add(left: Any, right: Any) -> Any:
    """Add numbers, or concatenate when either side is a non-numeric string."""
    left_number = as_number(left)
    right_number = as_number(right)
    if left_number is not None and right_number is not None:
        return left_number + right_number
    if (isinstance(left, str) or isinstance(right, str)) and is_scalar(left) and is_scalar(right):
        return display_string(left) + display_string(right)
    msg = f"Cannot add {describe(left)} and {describe(right)}"
    raise ExpressionTypeError(msg)


def _signed_inf(a: float, b: float) -> float:
    """Infinity with the sign of ``a * b``, for results beyond the float range."""
    return math.inf if (a < 0) == (b < 0) else -math.inf


def _loose_equals(left: Any, right: Any) -> bool:
    left_number = as_number(left)
    right_number = as_number(right)
    if left_number is not None and right_number is not None:
        return left_number == right_number
    return left == right


def _compare(op: BinaryOp, left: Any, right: Any) -> bool:
    left_number = as_number(left)
    right_number = as_number(right)
    if left_number is not None and right_number is not None:
        a: Any = left_number
        b: Any = right_number
    elif isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        msg = f"Cannot compare {describe(left)} with {describe(right)} using '{op}'"
        raise ExpressionTypeError(msg)

    match op:
        case BinaryOp.LT:
            return a < b
        case BinaryOp.GT:
            return a > b
        case BinaryOp.LE:
            return a <= b
        case _:
            return a >= b
