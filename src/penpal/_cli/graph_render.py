"""Rich rendering utilities for graph commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from penpal._io import node_status

if TYPE_CHECKING:
    from collections.abc import Mapping

    from rich.console import Console

    from penpal._eval_engine import GraphSnapshot
    from penpal._registry import NodeRegistry, NodeResult

STATUS_STYLES = {
    "ok": "green",
    "error": "red",
    "bypassed": "yellow",
    "empty": "dim",
}


def _status_markup(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status.upper()}[/{style}]"


def render_results_table(
    snapshot: GraphSnapshot,
    results: Mapping[str, NodeResult],
    console: Console,
) -> None:
    """Render per-node evaluation status as a Rich table.

    Args:
        snapshot: The evaluated graph.
        results: Results by node id.
        console: Rich Console to output to.

    """
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Node", style="bold")
    table.add_column("Type", style="dim")
    table.add_column("Status")
    table.add_column("Points", justify="right")
    table.add_column("Lines", justify="right")
    table.add_column("Error")

    for node_id, node in snapshot.nodes.items():
        result = results.get(node_id)
        if result is None:
            continue
        canvas = result.result
        name = escape(node_id) + (" [cyan](output)[/cyan]" if node.is_output else "")
        table.add_row(
            name,
            escape(node.type),
            _status_markup(node_status(result, bypassed=node.bypass)),
            "" if canvas is None else str(len(canvas.points)),
            "" if canvas is None else str(len(canvas.lines)),
            escape(result.error or ""),
        )

    console.print(table)


def render_registry_table(registry: NodeRegistry, console: Console) -> None:
    """Render registered node types grouped by category."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Category", style="bold")
    table.add_column("Type")
    table.add_column("Label")
    table.add_column("Inputs", style="dim")
    table.add_column("Outputs", style="dim")
    table.add_column("Description")

    for category, node_types in registry.categories().items():
        for i, node_type in enumerate(node_types):
            table.add_row(
                category if i == 0 else "",
                node_type.tag,
                node_type.label,
                ", ".join(handle.name + ("*" if handle.multi else "") for handle in node_type.inputs),
                ", ".join(node_type.outputs),
                node_type.description,
            )

    console.print(table)
    console.print(f"\n[dim]Total: {len(registry)} node types[/dim]")


def build_upstream_tree(
    snapshot: GraphSnapshot,
    node_id: str,
    results: Mapping[str, NodeResult] | None = None,
) -> Tree:
    """Build a Rich tree of everything `node_id` reads from.

    Each child is an input edge's source, labelled with the target handle.
    Nodes seen earlier on the same branch are marked instead of expanded,
    so cyclic graphs render finitely.
    """
    root = Tree(_node_label(snapshot, node_id, None, results))
    _add_upstream(root, snapshot, node_id, results, (node_id,))
    return root


def _add_upstream(
    tree: Tree,
    snapshot: GraphSnapshot,
    node_id: str,
    results: Mapping[str, NodeResult] | None,
    branch: tuple[str, ...],
) -> None:
    for edge in snapshot.incoming(node_id):
        label = _node_label(snapshot, edge.source, edge.target_handle, results)
        if edge.source in branch:
            tree.add(f"{label} [yellow](cycle)[/yellow]")
            continue
        child = tree.add(label)
        _add_upstream(child, snapshot, edge.source, results, (*branch, edge.source))


def _node_label(
    snapshot: GraphSnapshot,
    node_id: str,
    handle: str | None,
    results: Mapping[str, NodeResult] | None,
) -> str:
    node = snapshot.nodes.get(node_id)
    prefix = f"[dim]{escape(handle)} ←[/dim] " if handle else ""
    if node is None:
        return f"{prefix}[red]{escape(node_id)} (missing)[/red]"
    label = f"{prefix}[bold]{escape(node_id)}[/bold] [dim]{escape(node.type)}[/dim]"
    if results is not None and node_id in results:
        label += " " + _status_markup(node_status(results[node_id], bypassed=node.bypass))
    return label
