"""Built-in operators.

Importing this package registers every operator on the default registry.
"""

from ._code import CodeMode, code
from ._deform import Decay, falloff, soft_transform
from ._edit import apply_modification, edit
from ._export import export_svg
from ._generate import canvas_op, circle_op, clone_op, connect, duplicate, line_op, point_grid
from ._modify import attributes, cleanup, close, crop, fuse, subdivide, transform
from ._sandbox import SandboxError, compile_snippet
from ._utility import LOOP_BODY_HANDLE, LOOP_FEEDBACK_HANDLE, LOOP_RESULT_HANDLE, loop, merge

__all__ = [
    "LOOP_BODY_HANDLE",
    "LOOP_FEEDBACK_HANDLE",
    "LOOP_RESULT_HANDLE",
    "CodeMode",
    "Decay",
    "SandboxError",
    "apply_modification",
    "attributes",
    "canvas_op",
    "circle_op",
    "cleanup",
    "clone_op",
    "close",
    "code",
    "compile_snippet",
    "connect",
    "crop",
    "duplicate",
    "edit",
    "export_svg",
    "falloff",
    "fuse",
    "line_op",
    "loop",
    "merge",
    "point_grid",
    "soft_transform",
    "subdivide",
    "transform",
]
