"""Graph query functions for CLI commands.

This module provides pure functions for querying a compiled form.
These are the functional core - no I/O, no Rich rendering.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from formcalc._graph import Schedule
    from formcalc._ir import FormGraph


class FieldStatus(StrEnum):
    INPUT = auto()
    OK = auto()
    BLOCKED = auto()
    PARSE_ERROR = auto()
    CYCLE = auto()


@dataclass(frozen=True, slots=True)
class FieldInfo:
    """Basic information about a field for listing."""

    id: str
    mode: str | None
    dependencies: tuple[str, ...]
    dependent_count: int
    status: FieldStatus


@dataclass(slots=True)
class TreeNode:
    """A node in a dependency tree for rendering."""

    id: str
    children: list[TreeNode]


def _status(form: FormGraph, field_id: str) -> FieldStatus:
    spec = form.fields[field_id]
    if spec.is_input:
        return FieldStatus.INPUT
    if field_id in form.cycle_members:
        return FieldStatus.CYCLE
    if spec.parse_error is not None:
        return FieldStatus.PARSE_ERROR
    if spec.blocked_reason is not None:
        return FieldStatus.BLOCKED
    return FieldStatus.OK


def list_fields(form: FormGraph) -> list[FieldInfo]:
    """List every field of the form in declaration order."""
    return [
        FieldInfo(
            id=spec.id,
            mode=spec.mode,
            dependencies=spec.dependencies,
            dependent_count=len(form.graph.successors(spec.id)),
            status=_status(form, spec.id),
        )
        for spec in form.fields.values()
    ]


def get_evaluation_order(form: FormGraph, changed: Iterable[str] = ()) -> Schedule[str]:
    """Evaluation order after ``changed`` fields change, or for a full pass when none are given.

    Raises:
        KeyError: If a changed id is not a field of the form.

    """
    changed = list(changed)
    for field_id in changed:
        if field_id not in form:
            msg = f"Field not found: {field_id}"
            raise KeyError(msg)
    targets = form.affected_by(changed) if changed else [spec.id for spec in form.expression_fields()]
    return form.schedule(targets)


def get_dependency_tree(
    form: FormGraph,
    field_id: str,
    *,
    invert: bool = False,
    max_depth: int | None = None,
) -> TreeNode:
    """Build a dependency tree for visualization.

    Args:
        form: The compiled form.
        field_id: The root field of the tree.
        invert: If False, show what the field depends on.
                If True, show what depends on the field.
        max_depth: Maximum depth to traverse (None for unlimited).

    Returns:
        TreeNode representing the dependency tree.

    Raises:
        KeyError: If the field is not found.

    """
    if field_id not in form:
        msg = f"Field not found: {field_id}"
        raise KeyError(msg)

    graph = form.graph

    def build_tree(node: str, depth: int, visited: set[str]) -> TreeNode:
        children: list[TreeNode] = []

        if max_depth is not None and depth >= max_depth:
            return TreeNode(id=node, children=children)

        neighbors = graph.successors(node) if invert else graph.predecessors(node)
        for neighbor in sorted(neighbors, key=form.rank):
            if neighbor not in visited:
                visited.add(neighbor)
                children.append(build_tree(neighbor, depth + 1, visited))

        return TreeNode(id=node, children=children)

    return build_tree(field_id, 0, {field_id})
