"""Builder functions to construct the form IR from a validated schema."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from formcalc._diagnostics import Diagnostic, DiagnosticKind, Severity
from formcalc._expr import CompiledExpression, ExpressionParseError, compile_expression, match_field_id
from formcalc._graph import DependencyGraph
from formcalc._schema import ExpressionMode
from formcalc._template import template_references

from ._field_spec import FieldSpec
from ._form_graph import FormGraph

if TYPE_CHECKING:
    from formcalc._schema import FieldDescriptor, FormSchema

logger = logging.getLogger(__name__)


def _split(name: str) -> tuple[str, ...]:
    return tuple(name.split("."))


def _build_field_spec(  # noqa: C901
    descriptor: FieldDescriptor,
    rank: int,
    known_ids: frozenset[str],
    diagnostics: list[Diagnostic],
) -> FieldSpec:
    """Build the FieldSpec of one field, appending any diagnostics found.

    Args:
        descriptor: The validated field descriptor.
        rank: Declaration index of the field.
        known_ids: Ids of every field in the form.
        diagnostics: Collector for schema diagnostics.

    Returns:
        The FieldSpec for the field.

    """
    spec = descriptor.expression
    if spec is None:
        return FieldSpec(id=descriptor.id, rank=rank, required=descriptor.required)

    field_id = descriptor.id
    unknown = [dep for dep in spec.dependencies if dep not in known_ids]
    dependencies = [dep for dep in spec.dependencies if dep in known_ids]

    blocked_reason: str | None = None
    if unknown:
        blocked_reason = f"Unknown dependency id(s): {', '.join(unknown)}"
        diagnostics.append(
            Diagnostic(
                kind=DiagnosticKind.UNKNOWN_DEPENDENCY,
                field_id=field_id,
                message=blocked_reason,
                related=tuple(unknown),
            ),
        )

    compiled: CompiledExpression | None = None
    parse_error: str | None = None

    if spec.mode == ExpressionMode.TEXT:
        # Placeholders naming existing fields become dependencies; the rest render empty.
        for name in template_references(spec.expression):
            match = match_field_id(_split(name), known_ids)
            if match is None:
                logger.debug("Placeholder {{%s}} in '%s' names no field", name, field_id)
                continue
            if match[0] not in dependencies:
                dependencies.append(match[0])
    else:
        try:
            compiled = compile_expression(spec.expression)
        except ExpressionParseError as e:
            parse_error = str(e)
            diagnostics.append(
                Diagnostic(kind=DiagnosticKind.PARSE_ERROR, field_id=field_id, message=parse_error),
            )
        else:
            undeclared = [
                name for name in compiled.references if match_field_id(_split(name), spec.dependencies) is None
            ]
            if undeclared:
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.UNDECLARED_REFERENCE,
                        field_id=field_id,
                        message=f"Expression reads undeclared field(s): {', '.join(undeclared)}",
                        severity=Severity.WARNING,
                        related=tuple(undeclared),
                    ),
                )

    return FieldSpec(
        id=field_id,
        rank=rank,
        required=descriptor.required,
        mode=spec.mode,
        source=spec.expression,
        dependencies=tuple(dependencies),
        compiled=compiled,
        parse_error=parse_error,
        blocked_reason=blocked_reason,
        evaluate_on_change=spec.evaluate_on_change,
        debounce_ms=spec.debounce_ms,
        default_value=spec.default_value,
        error_message=spec.error_message,
    )


def build_form_graph(schema: FormSchema) -> FormGraph:
    """Build a FormGraph from a validated FormSchema.

    This is the bridge between the schema loader and the evaluation engine.
    It runs once per schema load and is linear in fields plus edges.

    The function:
    1. Creates a FieldSpec for every field, compiling expressions
    2. Adds an edge dependency -> field for every effective dependency
    3. Finds dependency cycles and reports their exact members
    4. Collects schema diagnostics instead of raising

    Args:
        schema: The validated form schema.

    Returns:
        A FormGraph containing all fields, the dependency graph and diagnostics.

    Example:
        >>> schema = FormSchema.model_validate({"fields": [
        ...     {"id": "x"},
        ...     {"id": "y", "expression": {"expression": "x * 2", "dependencies": ["x"]}},
        ... ]})
        >>> build_form_graph(schema).graph.successors("x")
        frozenset({'y'})

    """
    known_ids = frozenset(schema.field_ids)
    diagnostics: list[Diagnostic] = []
    fields: dict[str, FieldSpec] = {}

    for rank, descriptor in enumerate(schema.fields):
        fields[descriptor.id] = _build_field_spec(descriptor, rank, known_ids, diagnostics)

    edges = [(dep, spec.id) for spec in fields.values() for dep in spec.dependencies]
    graph = DependencyGraph.from_edges(edges, nodes=fields)

    def _rank(field_id: str) -> int:
        return fields[field_id].rank

    cycles = sorted((frozenset(c) for c in graph.cycles()), key=lambda c: min(map(_rank, c)))
    for cycle in cycles:
        members = tuple(sorted(cycle, key=_rank))
        for member in members:
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.CYCLE,
                    field_id=member,
                    message=f"Dependency cycle among: {', '.join(members)}",
                    related=members,
                ),
            )

    for diagnostic in diagnostics:
        if diagnostic.is_error:
            logger.warning("%s", diagnostic)
        else:
            logger.debug("%s", diagnostic)

    logger.debug("Built form graph: %d fields, %d edges, %d cycle(s)", len(fields), len(edges), len(cycles))

    return FormGraph(
        fields=fields,
        graph=graph,
        cycles=tuple(cycles),
        diagnostics=tuple(diagnostics),
    )
