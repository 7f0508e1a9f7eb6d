"""Expression language for derived form fields.

A small closed grammar (arithmetic, comparisons, logical operators, ternary
conditionals and a fixed function library) with an explicit tokenizer,
recursive descent parser and tree-walking evaluator.

Usage:
    compiled = compile_expression("y * 2 + 5")
    evaluate(compiled.tree, ValueContext.from_values({"y": 3}))
    # 11
"""

from ._coerce import as_number, display_string, truthy
from ._context import FieldSnapshot, ValueContext, match_field_id
from ._errors import ErrorKind, ExpressionError, ExpressionParseError, ExpressionTypeError, UnresolvedReferenceError
from ._evaluator import evaluate
from ._functions import FUNCTIONS
from ._parser import CompiledExpression, compile_expression, extract_references, parse_expression

__all__ = [
    "FUNCTIONS",
    "CompiledExpression",
    "ErrorKind",
    "ExpressionError",
    "ExpressionParseError",
    "ExpressionTypeError",
    "FieldSnapshot",
    "UnresolvedReferenceError",
    "ValueContext",
    "as_number",
    "compile_expression",
    "display_string",
    "evaluate",
    "extract_references",
    "match_field_id",
    "parse_expression",
    "truthy",
]
