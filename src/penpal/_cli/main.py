import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from penpal._eval_engine import GraphSnapshot
from penpal._io import ProjectFormatError, evaluate_project, export_results_to_toml, load_project
from penpal._models import ProjectDocument
from penpal._registry import get_default_registry
from penpal._svg import write_svg

from .config import ConfigError, PenpalConfig, get_config
from .graph_render import build_upstream_tree, render_registry_table, render_results_table

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
    """Penpal CLI."""
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


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]✗ {escape(message)}[/red]")
    err_console.print()
    return typer.Exit(code=1)


def _load_config() -> PenpalConfig:
    try:
        return get_config()
    except ConfigError as e:
        raise _fail(str(e)) from e


def _load_project(path: Path | None, config: PenpalConfig) -> tuple[ProjectDocument, Path]:
    """Load the project named on the command line, or the configured default."""
    project_path = path or config.project
    if project_path is None:
        msg = "No project given and [tool.penpal].project is not set"
        raise _fail(msg)

    err_console.print(f"[cyan]Loading project from:[/cyan] {project_path}")
    try:
        document = load_project(project_path)
    except FileNotFoundError as e:
        msg = f"Project file not found: {project_path}"
        raise _fail(msg) from e
    except ProjectFormatError as e:
        raise _fail(str(e)) from e

    err_console.print(f"[cyan]Nodes:[/cyan] {len(document.nodes)}  [cyan]Edges:[/cyan] {len(document.edges)}")
    err_console.print()
    return document, Path(project_path)


def _target_node(document: ProjectDocument, node_id: str | None) -> str | None:
    if node_id is not None:
        if not any(node.id == node_id for node in document.nodes):
            msg = f"Node '{node_id}' not found in project"
            raise _fail(msg)
        return node_id
    output = document.output_node()
    return None if output is None else output.id


@app.command(name="eval")
def eval_(
    project: Annotated[
        Path | None,
        typer.Argument(help="Path to project JSON file (defaults to [tool.penpal].project)"),
    ] = None,
    *,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to output TOML summary"),
    ] = None,
    node: Annotated[
        str | None,
        typer.Option("--node", help="Only report this node and its inputs (defaults to the output node)"),
    ] = None,
) -> None:
    """Evaluate a project and report the status of every node."""
    err_console.print()
    config = _load_config()
    document, project_path = _load_project(project, config)
    target = _target_node(document, node)

    err_console.print("[cyan]Evaluating project...[/cyan]")
    results = evaluate_project(document, base_dir=project_path.parent)
    snapshot = GraphSnapshot.from_graph(document.nodes, document.edges)

    if node is not None:
        keep = snapshot.dependency_graph(get_default_registry()).ancestors(node) | {node}
        results = {node_id: result for node_id, result in results.items() if node_id in keep}

    render_results_table(snapshot, results, err_console)
    err_console.print()

    if output is not None:
        err_console.print(f"[cyan]Exporting results to:[/cyan] {output}")
        output.parent.mkdir(parents=True, exist_ok=True)
        export_results_to_toml(results, output, document.nodes)
        err_console.print()

    failed = target is not None and results[target].error is not None
    if failed:
        msg = f"Node '{target}' failed: {results[target].error}"
        raise _fail(msg)

    err_console.print("[green]✓ Evaluation complete[/green]")
    err_console.print()


@app.command()
def export(
    project: Annotated[
        Path | None,
        typer.Argument(help="Path to project JSON file (defaults to [tool.penpal].project)"),
    ] = None,
    *,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to output SVG file"),
    ] = None,
    node: Annotated[
        str | None,
        typer.Option("--node", help="Node to export (defaults to the output node)"),
    ] = None,
    millimeters: Annotated[
        bool | None,
        typer.Option("--mm/--px", help="Write geometry in millimetres or pixels"),
    ] = None,
    background: Annotated[
        bool | None,
        typer.Option("--background/--no-background", help="Draw the canvas background"),
    ] = None,
) -> None:
    """Evaluate a project and write the output node's drawing as SVG."""
    err_console.print()
    config = _load_config()
    document, project_path = _load_project(project, config)

    target = _target_node(document, node)
    if target is None:
        msg = "Project has no output node, use --node"
        raise _fail(msg)

    err_console.print("[cyan]Evaluating project...[/cyan]")
    results = evaluate_project(document, base_dir=project_path.parent)
    result = results[target]
    if result.error is not None:
        msg = f"Node '{target}' failed: {result.error}"
        raise _fail(msg)
    if result.result is None:
        msg = f"Node '{target}' produced no canvas"
        raise _fail(msg)

    svg_path = output or config.output or project_path.with_suffix(".svg")
    use_mm = config.units == "mm" if millimeters is None else millimeters
    draw_background = config.background if background is None else background

    err_console.print(f"[cyan]Writing SVG to:[/cyan] {svg_path}")
    try:
        write_svg(result.result, svg_path, millimeters=use_mm, include_background=draw_background)
    except OSError as e:
        msg = f"Failed to save SVG: {e}"
        raise _fail(msg) from e

    canvas = result.result
    err_console.print()
    err_console.print(
        f"[green]✓ Exported[/green] {len(canvas.lines)} lines, {len(canvas.points)} points "
        f"[dim]({'mm' if use_mm else 'px'})[/dim]",
    )
    err_console.print()


@app.command()
def check(
    project: Annotated[
        Path | None,
        typer.Argument(help="Path to project JSON file (defaults to [tool.penpal].project)"),
    ] = None,
) -> None:
    """Check the structure of a project without evaluating it."""
    err_console.print()
    config = _load_config()
    document, _ = _load_project(project, config)
    registry = get_default_registry()

    err_console.print("[cyan]Validating graph...[/cyan]")
    snapshot = GraphSnapshot.from_graph(document.nodes, document.edges)
    problems = snapshot.validate(registry)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Type", style="bold")
    table.add_column("Nodes", justify="right", style="yellow")

    counts: dict[str, int] = {}
    for node in snapshot.nodes.values():
        counts[node.type] = counts.get(node.type, 0) + 1
    for tag, count in sorted(counts.items()):
        style = "" if tag in registry else "red"
        table.add_row(f"[{style}]{escape(tag)}[/{style}]" if style else escape(tag), str(count))

    output = document.output_node()
    err_console.print(
        Panel(
            table,
            title="[bold]Project graph[/bold]",
            subtitle=f"[dim]output: {escape(output.id) if output else 'none'}[/dim]",
            border_style="cyan",
        ),
    )
    err_console.print()

    if problems:
        for problem in problems:
            err_console.print(f"  [red]•[/red] {escape(problem)}")
        err_console.print()
        msg = f"{len(problems)} problem(s) found"
        raise _fail(msg)

    err_console.print("[green]✓ Project is valid[/green]")
    err_console.print()


@app.command()
def nodes() -> None:
    """List the registered node types."""
    render_registry_table(get_default_registry(), out_console)


@app.command()
def schema(
    *,
    output: Annotated[
        Path,
        typer.Option("-o", "--output", help="Path to output JSON schema file"),
    ],
    indent: Annotated[
        int,
        typer.Option("--indent", help="JSON indentation spaces"),
    ] = 2,
) -> None:
    """Generate the JSON schema of project documents."""
    err_console.print()
    err_console.print("[cyan]Generating project JSON schema...[/cyan]")
    json_schema = ProjectDocument.model_json_schema(by_alias=True)

    err_console.print(f"[cyan]Writing schema to:[/cyan] {output}")
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w") as f:
        json.dump(json_schema, f, indent=indent)

    err_console.print()
    err_console.print("[green]✓ Schema generation complete[/green]")
    err_console.print()


@app.command()
def tree(
    project: Annotated[
        Path | None,
        typer.Argument(help="Path to project JSON file (defaults to [tool.penpal].project)"),
    ] = None,
    *,
    node: Annotated[
        str | None,
        typer.Option("--node", help="Root node (defaults to the output node)"),
    ] = None,
    evaluate: Annotated[
        bool,
        typer.Option("--eval", help="Evaluate the project and show each node's status"),
    ] = False,
) -> None:
    """Show the inputs a node depends on as a tree."""
    config = _load_config()
    document, project_path = _load_project(project, config)
    target = _target_node(document, node)
    if target is None:
        msg = "Project has no output node, use --node"
        raise _fail(msg)

    results = evaluate_project(document, base_dir=project_path.parent) if evaluate else None
    snapshot = GraphSnapshot.from_graph(document.nodes, document.edges)
    out_console.print(build_upstream_tree(snapshot, target, results))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
