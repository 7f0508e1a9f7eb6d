"""Value coercion rules shared by the evaluator and the template interpolator."""

import math
from typing import Any, TypeAlias

from ._errors import ExpressionTypeError

Number: TypeAlias = int | float


def as_number(value: Any) -> Number | None:
    """Return ``value`` as a number when the conversion is unambiguous, else None.

    Numbers pass through (booleans excluded). Strings holding a decimal
    literal, possibly surrounded by whitespace, are converted; the empty
    string is not a number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        # float() also accepts "nan"/"inf"; those are words, not form input.
        return number if math.isfinite(number) else None
    return None


def to_number(value: Any, *, operation: str) -> Number:
    """Coerce ``value`` to a number or raise ExpressionTypeError."""
    number = as_number(value)
    if number is None:
        msg = f"Cannot use {describe(value)} as a number in '{operation}'"
        raise ExpressionTypeError(msg)
    return number


def truthy(value: Any) -> bool:
    """Truthiness of a scalar: False for None, False, 0, NaN and ""."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return value != ""
    msg = f"Cannot use {describe(value)} as a boolean"
    raise ExpressionTypeError(msg)


def is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (bool, int, float, str))


def display_string(value: Any) -> str:
    """Render a value the way a form displays it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def describe(value: Any) -> str:
    if value is None:
        return "an empty value"
    if isinstance(value, str):
        return f"string {value!r}"
    return f"{type(value).__name__} {value!r}"
