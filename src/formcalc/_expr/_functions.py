"""The fixed library of functions callable from expressions.

The set is closed: the parser rejects calls to any other name, and every
function is pure and bounded.
"""

import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ._coerce import Number, as_number, display_string, to_number, truthy
from ._errors import ExpressionTypeError


@dataclass(frozen=True, slots=True)
class Function:
    """A library function and its accepted number of arguments."""

    name: str
    impl: Callable[..., Any]
    min_args: int
    max_args: int | None

    def check_arity(self, count: int) -> str | None:
        """Return an error message when ``count`` arguments are not accepted."""
        if count < self.min_args or (self.max_args is not None and count > self.max_args):
            if self.max_args is None:
                expected = f"at least {self.min_args}"
            elif self.min_args == self.max_args:
                expected = str(self.min_args)
            else:
                expected = f"{self.min_args} to {self.max_args}"
            return f"{self.name}() takes {expected} argument(s), got {count}"
        return None

    def __call__(self, *args: Any) -> Any:
        message = self.check_arity(len(args))
        if message is not None:
            raise ExpressionTypeError(message)
        return self.impl(*args)


FUNCTIONS: dict[str, Function] = {}

# Larger integer exponents fall back to float pow so results stay bounded.
_MAX_INT_EXPONENT = 64


def _register(name: str, min_args: int, max_args: int | None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(impl: Callable[..., Any]) -> Callable[..., Any]:
        FUNCTIONS[name] = Function(name=name, impl=impl, min_args=min_args, max_args=max_args)
        return impl

    return decorator


def _is_finite_number(x: Number) -> bool:
    return isinstance(x, int) or math.isfinite(x)


@_register("abs", 1, 1)
def _abs(x: Any) -> Number:
    return abs(to_number(x, operation="abs"))


@_register("round", 1, 2)
def _round(x: Any, digits: Any = 0) -> Number:
    # Halves round towards positive infinity: round(2.5) == 3, round(-2.5) == -2.
    value = to_number(x, operation="round")
    ndigits = int(to_number(digits, operation="round"))
    if not _is_finite_number(value):
        return value
    if ndigits == 0:
        return math.floor(value + 0.5)
    try:
        scale = 10.0**ndigits
        return math.floor(value * scale + 0.5) / scale
    except OverflowError:
        # More digits than a float holds.
        return value
    except ZeroDivisionError:
        # Rounded to a power of ten far above any float.
        return 0


@_register("floor", 1, 1)
def _floor(x: Any) -> Number:
    value = to_number(x, operation="floor")
    return math.floor(value) if _is_finite_number(value) else value


@_register("ceil", 1, 1)
def _ceil(x: Any) -> Number:
    value = to_number(x, operation="ceil")
    return math.ceil(value) if _is_finite_number(value) else value


@_register("sqrt", 1, 1)
def _sqrt(x: Any) -> float:
    value = to_number(x, operation="sqrt")
    if value < 0 or math.isnan(value):
        return math.nan
    return math.sqrt(value)


@_register("pow", 2, 2)
def _pow(base: Any, exponent: Any) -> Number:
    b = to_number(base, operation="pow")
    e = to_number(exponent, operation="pow")
    if isinstance(b, int) and isinstance(e, int) and 0 <= e <= _MAX_INT_EXPONENT:
        return b**e
    try:
        return math.pow(b, e)
    except ValueError:
        return math.nan
    except OverflowError:
        return math.inf


@_register("min", 1, None)
def _min(*args: Any) -> Number:
    values = [to_number(a, operation="min") for a in args]
    if any(isinstance(v, float) and math.isnan(v) for v in values):
        return math.nan
    return min(values)


@_register("max", 1, None)
def _max(*args: Any) -> Number:
    values = [to_number(a, operation="max") for a in args]
    if any(isinstance(v, float) and math.isnan(v) for v in values):
        return math.nan
    return max(values)


_FLOAT_PREFIX_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_INT_PREFIX_RE = re.compile(r"[+-]?\d+")


@_register("parseFloat", 1, 1)
def _parse_float(x: Any) -> float:
    if isinstance(x, (int, float)) and not isinstance(x, bool):
        return float(x)
    m = _FLOAT_PREFIX_RE.match(display_string(x).strip())
    return float(m.group(0)) if m else math.nan


@_register("parseInt", 1, 2)
def _parse_int(x: Any, radix: Any = 10) -> Number:
    base = int(to_number(radix, operation="parseInt"))
    if isinstance(x, (int, float)) and not isinstance(x, bool):
        return math.trunc(x) if _is_finite_number(x) else math.nan
    text = display_string(x).strip()
    if base == 10:
        m = _INT_PREFIX_RE.match(text)
        return int(m.group(0)) if m else math.nan
    try:
        return int(text, base)
    except ValueError:
        return math.nan


@_register("isNaN", 1, 1)
def _is_nan(x: Any) -> bool:
    number = as_number(x)
    return number is None or (isinstance(number, float) and math.isnan(number))


@_register("isFinite", 1, 1)
def _is_finite(x: Any) -> bool:
    number = as_number(x)
    return number is not None and _is_finite_number(number)


@_register("toString", 1, 1)
def _to_string(x: Any) -> str:
    return display_string(x)


@_register("length", 1, 1)
def _length(x: Any) -> int:
    if isinstance(x, str):
        return len(x)
    return 0


@_register("if", 3, 3)
def _if(condition: Any, then_value: Any, else_value: Any) -> Any:
    return then_value if truthy(condition) else else_value
