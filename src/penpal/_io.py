"""Project files and result summaries."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomli_w
from pydantic import ValidationError

from ._context import project_dir
from ._eval_engine import run_graph
from ._models import PROJECT_FORMAT_VERSION, ProjectDocument

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ._models import Node
    from ._registry import NodeRegistry, NodeResult

logger = logging.getLogger(__name__)


class ProjectFormatError(ValueError):
    """A project file is not valid JSON or does not match the project schema."""


def load_project(path: Path | str) -> ProjectDocument:
    """Load a saved project document.

    Documents written by older editor versions, which nest node fields
    under `data`, are accepted.

    Raises:
        FileNotFoundError: If the file does not exist.
        ProjectFormatError: If the file cannot be parsed as a project.

    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        msg = f"{path}: invalid JSON: {e}"
        raise ProjectFormatError(msg) from e

    try:
        document = ProjectDocument.model_validate(raw)
    except ValidationError as e:
        msg = f"{path}: not a valid project document:\n{e}"
        raise ProjectFormatError(msg) from e

    if document.version != PROJECT_FORMAT_VERSION:
        logger.warning("Project %s has format version %s, expected %s", path, document.version, PROJECT_FORMAT_VERSION)
    logger.debug("Loaded project %s (%d nodes, %d edges)", path, len(document.nodes), len(document.edges))
    return document


def save_project(document: ProjectDocument, path: Path | str) -> Path:
    """Write a project document as JSON (camelCase keys)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(document.model_dump_json(by_alias=True, indent=2) + "\n", encoding="utf-8")
    logger.debug("Saved project to %s", path)
    return path


def evaluate_project(
    document: ProjectDocument,
    *,
    base_dir: Path | None = None,
    registry: NodeRegistry | None = None,
) -> dict[str, NodeResult]:
    """Evaluate a project, resolving relative file paths in node properties from `base_dir`."""
    with project_dir(base_dir):
        return run_graph(document.nodes, document.edges, registry=registry)


def node_status(result: NodeResult, *, bypassed: bool = False) -> str:
    """Short status label: `error`, `bypassed`, `empty` or `ok`."""
    if result.error is not None:
        return "error"
    if bypassed:
        return "bypassed"
    if result.result is None:
        return "empty"
    return "ok"


def _summarize(result: NodeResult, *, bypassed: bool) -> dict[str, Any]:
    summary: dict[str, Any] = {"status": node_status(result, bypassed=bypassed)}
    if result.error is not None:
        summary["error"] = result.error
    canvas = result.result
    if canvas is not None:
        bounds = canvas.bounds()
        summary["points"] = len(canvas.points)
        summary["lines"] = len(canvas.lines)
        summary["size"] = canvas.size.to_dict()
        summary["bounds"] = {
            "min_x": bounds.min_x,
            "min_y": bounds.min_y,
            "max_x": bounds.max_x,
            "max_y": bounds.max_y,
        }
    return summary


def results_to_dict(results: Mapping[str, NodeResult], nodes: Iterable[Node] = ()) -> dict[str, Any]:
    """Summarize evaluation results per node, in a TOML-friendly shape.

    Args:
        results: Results from `compute_graph`.
        nodes: The evaluated nodes, used to label bypassed nodes and
            record node types.

    Returns:
        `{"nodes": {node_id: {"status", "error"?, "points"?, ...}}}`.

    """
    by_id = {node.id: node for node in nodes}
    summaries: dict[str, Any] = {}
    for node_id, result in results.items():
        node = by_id.get(node_id)
        summary = _summarize(result, bypassed=node is not None and node.bypass)
        if node is not None:
            summary = {"type": node.type, **summary}
        summaries[node_id] = summary
    return {"nodes": summaries}


def export_results_to_toml(
    results: Mapping[str, NodeResult],
    output_path: Path | str,
    nodes: Iterable[Node] = (),
) -> None:
    """Write `results_to_dict` output to a TOML file."""
    output_path = Path(output_path)
    with output_path.open("wb") as f:
        tomli_w.dump(results_to_dict(results, nodes), f)
    logger.debug("Exported results to %s", output_path)
