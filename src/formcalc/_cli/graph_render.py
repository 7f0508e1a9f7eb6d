"""Rich rendering utilities for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from formcalc._expr import display_string

from .graph_query import FieldStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rich.console import Console

    from formcalc._diagnostics import Diagnostic
    from formcalc._eval_engine import EvaluationResult
    from formcalc._graph import Schedule

    from .graph_query import FieldInfo, TreeNode


def render_field_table(fields: list[FieldInfo], console: Console) -> None:
    """Render the fields of a form as a Rich table.

    Args:
        fields: List of FieldInfo to render.
        console: Rich Console to output to.

    """
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Field", style="bold")
    table.add_column("Mode")
    table.add_column("Dependencies", style="dim")
    table.add_column("Dependents", justify="right")
    table.add_column("Status")

    for info in fields:
        style = _get_status_style(info.status)
        table.add_row(
            escape(info.id),
            info.mode or "[dim]-[/dim]",
            escape(", ".join(info.dependencies)),
            str(info.dependent_count),
            f"[{style}]{info.status.upper()}[/{style}]",
        )

    console.print(table)


def render_diagnostics(diagnostics: Iterable[Diagnostic], console: Console) -> None:
    """Render schema diagnostics, errors in red and warnings in yellow."""
    for diagnostic in diagnostics:
        style = "red" if diagnostic.is_error else "yellow"
        console.print(f"  [{style}]{diagnostic.severity}[/{style}] {escape(str(diagnostic))}")


def render_order(plan: Schedule[str], console: Console) -> None:
    """Render an evaluation order and the cycle participants left out of it."""
    if not plan.order and not plan.cycle_members:
        console.print("[dim]Nothing to evaluate[/dim]")
        return
    for index, field_id in enumerate(plan.order, start=1):
        console.print(f"  {index:>3}. {escape(field_id)}")
    if plan.cycle_members:
        members = ", ".join(sorted(plan.cycle_members))
        console.print(f"[red]Cycle participants (fallback values):[/red] {escape(members)}")


def render_results(results: list[EvaluationResult], console: Console, *, title: str | None = None) -> None:
    """Render evaluation results as a Rich table."""
    table = Table(show_header=True, header_style="bold cyan", title=title)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_column("Status")

    for result in results:
        if result.error is None:
            status = "[green]✓[/green]"
        else:
            status = f"[red]✗ {result.error.kind}[/red] {escape(result.error.message)}"
        table.add_row(escape(result.field_id), escape(display_string(result.value)), status)

    console.print(table)


def render_tree(tree_node: TreeNode, console: Console) -> None:
    """Render a dependency tree using Rich Tree.

    Args:
        tree_node: TreeNode root to render.
        console: Rich Console to output to.

    """
    rich_tree = Tree(f"[bold]{escape(tree_node.id)}[/bold]")
    _add_tree_children(rich_tree, tree_node.children)
    console.print(rich_tree)


def _add_tree_children(parent: Tree, children: list[TreeNode]) -> None:
    for child in children:
        child_tree = parent.add(escape(child.id))
        _add_tree_children(child_tree, child.children)


def _get_status_style(status: FieldStatus) -> str:
    match status:
        case FieldStatus.INPUT:
            return "blue"
        case FieldStatus.OK:
            return "green"
        case FieldStatus.CYCLE | FieldStatus.PARSE_ERROR | FieldStatus.BLOCKED:
            return "red"
