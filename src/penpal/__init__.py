"""Node-based generative vector graphics: geometry model, operators and graph evaluator."""

__all__ = [
    "Bounds",
    "Canvas",
    "DependencyGraph",
    "Edge",
    "Evaluator",
    "GeometryError",
    "GraphSnapshot",
    "InputHandle",
    "Line",
    "Modification",
    "Node",
    "NodeInputs",
    "NodeRegistry",
    "NodeResult",
    "NodeType",
    "Point",
    "ProjectDocument",
    "ProjectFormatError",
    "Property",
    "PropertyError",
    "PropertyKind",
    "PropertySpec",
    "Vec2",
    "compute_graph",
    "default_registry",
    "evaluate_project",
    "export_results_to_toml",
    "get_default_registry",
    "load_project",
    "project_dir",
    "render_svg",
    "results_to_dict",
    "run_graph",
    "save_project",
    "write_svg",
]

from ._canvas import Bounds, Canvas, GeometryError, Line, Point, Vec2
from ._context import project_dir
from ._eval_engine import Evaluator, GraphSnapshot, compute_graph, run_graph
from ._graph import DependencyGraph
from ._io import (
    ProjectFormatError,
    evaluate_project,
    export_results_to_toml,
    load_project,
    results_to_dict,
    save_project,
)
from ._models import Edge, Node, ProjectDocument, Property, PropertyKind
from ._modifications import Modification
from ._registry import (
    InputHandle,
    NodeInputs,
    NodeRegistry,
    NodeResult,
    NodeType,
    PropertyError,
    PropertySpec,
    default_registry,
    get_default_registry,
)
from ._svg import render_svg, write_svg
