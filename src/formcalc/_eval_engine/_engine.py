"""Core evaluation engine for form graphs."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, TypeAlias

from formcalc._expr import (
    ErrorKind,
    ExpressionError,
    ExpressionTypeError,
    ValueContext,
    display_string,
    evaluate,
    truthy,
)
from formcalc._schema import ExpressionMode
from formcalc._template import interpolate

from ._result import EvaluationError, EvaluationResult, PassResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from formcalc._ir import FieldSpec, FormGraph

logger = logging.getLogger(__name__)

ResultListener: TypeAlias = "Callable[[EvaluationResult], object]"

# Integer results must fit the float range to be shown and exported.
_MAX_INT_BITS = 1024


def build_context(
    form: FormGraph,
    raw_values: Mapping[str, Any],
    computed: Mapping[str, Any] | None = None,
) -> ValueContext:
    """Build the value context for a pass.

    Input fields take their raw value. Derived fields take their last
    computed value, else their default value.

    Args:
        form: The compiled form.
        raw_values: Values entered by the user, keyed by field id.
        computed: Values of derived fields from earlier passes.

    Returns:
        A ValueContext covering every field of the form.

    """
    computed = computed or {}
    values: dict[str, Any] = {}
    for field_id, spec in form.fields.items():
        if spec.is_derived:
            values[field_id] = computed.get(field_id, raw_values.get(field_id, spec.default_value))
        else:
            values[field_id] = raw_values.get(field_id)
    required = [field_id for field_id, spec in form.fields.items() if spec.required]
    return ValueContext.from_values(values, required=required)


def _coerce_to_mode(mode: ExpressionMode, value: Any) -> Any:
    if mode.is_boolean:
        return truthy(value)
    if mode.is_textual:
        return display_string(value)
    if isinstance(value, int) and not isinstance(value, bool) and value.bit_length() > _MAX_INT_BITS:
        msg = "Result is too large to represent"
        raise ExpressionTypeError(msg)
    return value


def _failure(
    spec: FieldSpec,
    kind: ErrorKind,
    detail: str,
    last_good: Mapping[str, Any],
    timestamp: float,
) -> EvaluationResult:
    fallback = last_good.get(spec.id, spec.default_value)
    error = EvaluationError(kind=kind, message=spec.error_message or detail, detail=detail)
    logger.debug("Field %s failed (%s): %s; falling back to %r", spec.id, kind, detail, fallback)
    return EvaluationResult(field_id=spec.id, value=fallback, error=error, fallback=True, timestamp=timestamp)


def evaluate_field(
    spec: FieldSpec,
    context: ValueContext,
    *,
    last_good: Mapping[str, Any] | None = None,
    timestamp: float = 0.0,
) -> EvaluationResult:
    """Evaluate one derived field against the current values.

    The expression only sees the fields listed in its dependencies. Errors
    raised by the expression layer become a tagged result carrying the
    fallback value instead of propagating.

    Args:
        spec: The field to evaluate. Must be a derived field.
        context: Values of the whole form for this pass.
        last_good: Last successfully computed values, for fallbacks.
        timestamp: Time stamped on the result.

    Returns:
        The EvaluationResult for the field.

    Raises:
        ValueError: If ``spec`` is an input field.

    """
    if spec.mode is None:
        msg = f"Field '{spec.id}' has no expression"
        raise ValueError(msg)
    last_good = last_good or {}

    if spec.blocked_reason is not None:
        return _failure(spec, ErrorKind.SCHEMA, spec.blocked_reason, last_good, timestamp)
    if spec.parse_error is not None:
        return _failure(spec, ErrorKind.PARSE, spec.parse_error, last_good, timestamp)

    visible = context.restrict(spec.dependencies)

    if spec.mode != ExpressionMode.TEXT and spec.compiled is None:
        msg = f"Field '{spec.id}' was not compiled"
        raise ValueError(msg)

    try:
        if spec.mode == ExpressionMode.TEXT:
            value: Any = interpolate(spec.source or "", visible)
        else:
            value = _coerce_to_mode(spec.mode, evaluate(spec.compiled.tree, visible))  # type: ignore[union-attr]
    except ExpressionError as e:
        return _failure(spec, e.kind, str(e), last_good, timestamp)
    except (ArithmeticError, ValueError) as e:
        # Numeric limits of the runtime (overflow, int-to-str digit limit).
        return _failure(spec, ErrorKind.TYPE, str(e), last_good, timestamp)

    logger.debug("Field %s = %r", spec.id, value)
    return EvaluationResult(field_id=spec.id, value=value, timestamp=timestamp)


def run_pass(
    form: FormGraph,
    context: ValueContext,
    targets: Iterable[str],
    *,
    last_good: Mapping[str, Any] | None = None,
    on_result: ResultListener | None = None,
    clock: Callable[[], float] = time.time,
) -> PassResult:
    """Evaluate ``targets`` in dependency order, patching ``context`` as fields settle.

    Cycle members are emitted first with their fallback value and a cycle
    error, so fields downstream of a cycle evaluate against the fallback.
    Every other target is evaluated exactly once, after its dependencies.

    Args:
        form: The compiled form.
        context: Values at the start of the pass. Updated in place.
        targets: Derived field ids to recompute.
        last_good: Last successfully computed values, for fallbacks.
        on_result: Called with each result as soon as its field settles.
        clock: Source of result timestamps.

    Returns:
        The PassResult of the pass.

    """
    last_good = last_good or {}
    plan = form.schedule(target for target in targets if form.fields[target].is_derived)
    results: list[EvaluationResult] = []

    logger.debug("Starting pass over %d field(s), %d on cycles", len(plan.order), len(plan.cycle_members))

    def _settle(result: EvaluationResult) -> None:
        context.set(result.field_id, result.value, valid=result.ok)
        results.append(result)
        if on_result is not None:
            on_result(result)

    for field_id in sorted(plan.cycle_members, key=form.rank):
        spec = form.fields[field_id]
        members = next((c for c in form.cycles if field_id in c), frozenset({field_id}))
        detail = f"Dependency cycle among: {', '.join(sorted(members, key=form.rank))}"
        _settle(_failure(spec, ErrorKind.CYCLE, detail, last_good, clock()))

    for field_id in plan.order:
        _settle(evaluate_field(form.fields[field_id], context, last_good=last_good, timestamp=clock()))

    return PassResult(
        values=context.as_values(),
        results=results,
        order=plan.order,
        cycle_members=plan.cycle_members,
    )


def evaluate_form(
    form: FormGraph,
    values: Mapping[str, Any],
    *,
    on_result: ResultListener | None = None,
) -> PassResult:
    """Evaluate every derived field of a form from raw input values.

    This is a pure function: it builds a fresh context from ``values``,
    runs one full pass and returns the result.

    Example:
        >>> form = build_form_graph(schema)
        >>> result = evaluate_form(form, {"x": 3})
        >>> result.get_value("y")
        6

    """
    context = build_context(form, values)
    targets = [spec.id for spec in form.expression_fields()]
    return run_pass(form, context, targets, on_result=on_result)
