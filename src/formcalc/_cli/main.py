import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from formcalc._eval_engine import evaluate_form
from formcalc._io import SchemaLoadError, export_values_to_toml, load_changes, load_schema, load_values
from formcalc._ir import FormGraph, build_form_graph
from formcalc._propagation import ChangePropagator, ManualTimerScheduler

from .config import ConfigError, FormcalcConfig, get_config
from .graph_query import get_dependency_tree, get_evaluation_order, list_fields
from .graph_render import render_diagnostics, render_field_table, render_order, render_results, render_tree

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Formcalc CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _config() -> FormcalcConfig:
    try:
        return get_config()
    except ConfigError as e:
        err_console.print(f"[red]✗ Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e


def _resolve(value: Path | None, configured: Path | None, name: str) -> Path:
    """Pick the CLI value, else the configured one."""
    if value is not None:
        return value
    if configured is not None:
        return configured
    msg = f"No {name} specified. Provide it on the command line or configure [tool.formcalc].{name} in pyproject.toml."
    raise typer.BadParameter(msg)


def _load_form(schema_path: Path | None) -> FormGraph:
    path = _resolve(schema_path, _config().schema, "schema")
    err_console.print(f"[cyan]Loading schema from:[/cyan] {path}")
    try:
        schema = load_schema(path)
    except SchemaLoadError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    return build_form_graph(schema)


SchemaArgument = Annotated[
    Path | None,
    typer.Argument(help="Path to the form schema (JSON or TOML)"),
]


@app.command()
def check(schema: SchemaArgument = None) -> None:
    """Check a form schema for unknown dependencies, cycles and malformed expressions."""
    err_console.print()
    form = _load_form(schema)
    err_console.print()

    render_field_table(list_fields(form), err_console)

    if form.diagnostics:
        err_console.print()
        err_console.print("[bold cyan]Diagnostics[/bold cyan]")
        render_diagnostics(form.diagnostics, err_console)

    err_console.print()
    if form.has_errors:
        err_console.print("[red]✗ Schema has errors[/red]")
        raise typer.Exit(code=1)
    err_console.print("[green]✓ Schema is valid[/green]")
    err_console.print()


@app.command()
def calc(
    schema: SchemaArgument = None,
    *,
    input: Annotated[  # noqa: A002
        Path | None,
        typer.Option("-i", "--input", help="Path to input values (TOML or JSON)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to output TOML file"),
    ] = None,
) -> None:
    """Evaluate every derived field from input values and export the results."""
    config = _config()
    err_console.print()
    form = _load_form(schema)

    input_path = _resolve(input, config.input, "input")
    err_console.print(f"[cyan]Loading input from:[/cyan] {input_path}")
    try:
        values = load_values(input_path)
    except SchemaLoadError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    unknown = sorted(set(values) - set(form.fields))
    if unknown:
        logger.warning("Ignoring values for unknown field(s): %s", ", ".join(unknown))

    err_console.print("[cyan]Evaluating form...[/cyan]")
    result = evaluate_form(form, values)
    err_console.print()
    render_results(result.results, out_console)

    output_path = output if output is not None else config.output
    if output_path is not None:
        err_console.print()
        err_console.print(f"[cyan]Exporting results to:[/cyan] {output_path}")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        export_values_to_toml(result, output_path)

    err_console.print()
    if not result.success:
        err_console.print(f"[yellow]⚠ {len(result.errors)} field(s) fell back after an error[/yellow]")
    else:
        err_console.print("[green]✓ Calculation complete[/green]")
    err_console.print()


@app.command()
def order(
    schema: SchemaArgument = None,
    *,
    changed: Annotated[
        list[str] | None,
        typer.Option("--changed", "-c", help="Field that changed (repeatable); omit for a full pass"),
    ] = None,
) -> None:
    """Show the evaluation order after the given fields change."""
    form = _load_form(schema)
    try:
        plan = get_evaluation_order(form, changed or [])
    except KeyError as e:
        err_console.print(f"[red]✗ {escape(str(e.args[0]))}[/red]")
        raise typer.Exit(code=1) from e
    render_order(plan, out_console)


@app.command()
def tree(
    field: Annotated[str, typer.Argument(help="Field id at the root of the tree")],
    schema: Annotated[
        Path | None,
        typer.Option("--schema", "-s", help="Path to the form schema (JSON or TOML)"),
    ] = None,
    *,
    invert: Annotated[
        bool,
        typer.Option("--invert", help="Show dependents instead of dependencies"),
    ] = False,
    depth: Annotated[
        int | None,
        typer.Option("--depth", help="Maximum tree depth"),
    ] = None,
) -> None:
    """Show the dependency tree of a field."""
    form = _load_form(schema)
    try:
        tree_node = get_dependency_tree(form, field, invert=invert, max_depth=depth)
    except KeyError as e:
        err_console.print(f"[red]✗ {escape(str(e.args[0]))}[/red]")
        raise typer.Exit(code=1) from e
    render_tree(tree_node, out_console)


@app.command()
def replay(
    events: Annotated[Path, typer.Argument(help="Path to change events (TOML or JSON)")],
    schema: Annotated[
        Path | None,
        typer.Option("--schema", "-s", help="Path to the form schema (JSON or TOML)"),
    ] = None,
    *,
    input: Annotated[  # noqa: A002
        Path | None,
        typer.Option("-i", "--input", help="Initial values (TOML or JSON)"),
    ] = None,
) -> None:
    """Replay timestamped value changes through the debounced propagator on a virtual clock."""
    form = _load_form(schema)
    try:
        changes = load_changes(events)
        initial = load_values(input) if input is not None else {}
    except SchemaLoadError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    timers = ManualTimerScheduler()
    propagator = ChangePropagator(
        form,
        timers=timers,
        clock=timers.time,
        on_pass=lambda result: render_results(
            result.results,
            out_console,
            title=f"Pass at {timers.now_ms} ms",
        ),
    )
    propagator.load_values(initial)
    propagator.evaluate_all()

    for change in changes:
        timers.advance_to(change.at_ms)
        try:
            propagator.handle_change(change.field_id, change.new_value)
        except KeyError as e:
            err_console.print(f"[red]✗ {escape(str(e.args[0]))}[/red]")
            raise typer.Exit(code=1) from e

    timers.advance(max((spec.debounce_ms for spec in form.fields.values()), default=0))
    err_console.print(f"[green]✓ Replayed {len(changes)} change(s) in {propagator.pass_count} pass(es)[/green]")


def main() -> None:
    app()
