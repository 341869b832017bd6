"""Restricted execution of user-supplied Python snippets.

Snippets are compiled as the body of a function whose parameters are the
bindings of the chosen mode. Before compiling, the syntax tree is checked:
imports, `global`/`nonlocal`, dunder names, attributes and subscript keys,
frame and code introspection attributes (`gi_frame`, `f_globals`, ...) and
`str.format` are rejected. The function runs with a small whitelist of
builtins and `math`.

Time and memory are not limited.
"""

from __future__ import annotations

import ast
import builtins
import math
import textwrap
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

_ENTRY_POINT = "_user_code"
_FILENAME = "<code node>"

SAFE_BUILTINS: frozenset[str] = frozenset(
    {
        "abs",
        "all",
        "any",
        "bool",
        "dict",
        "divmod",
        "enumerate",
        "filter",
        "float",
        "int",
        "isinstance",
        "len",
        "list",
        "map",
        "max",
        "min",
        "pow",
        "range",
        "reversed",
        "round",
        "set",
        "sorted",
        "str",
        "sum",
        "tuple",
        "zip",
        "ArithmeticError",
        "Exception",
        "IndexError",
        "KeyError",
        "ValueError",
        "ZeroDivisionError",
    },
)

# Generator, coroutine, frame, traceback and code object internals.
INTROSPECTION_PREFIXES: tuple[str, ...] = ("gi_", "cr_", "ag_", "f_", "tb_", "co_")

# `str.format` resolves attribute paths inside the format string.
BLOCKED_ATTRIBUTES: frozenset[str] = frozenset({"format", "format_map", "mro"})


class SandboxError(SyntaxError):
    """A snippet uses a construct the sandbox does not allow."""


class _Validator(ast.NodeVisitor):
    def visit_Import(self, node: ast.Import) -> None:  # noqa: N802
        self._reject(node, "imports are not allowed")

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:  # noqa: N802
        self._reject(node, "imports are not allowed")

    def visit_Global(self, node: ast.Global) -> None:  # noqa: N802
        self._reject(node, "'global' is not allowed")

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:  # noqa: N802
        self._reject(node, "'nonlocal' is not allowed")

    def visit_Name(self, node: ast.Name) -> None:  # noqa: N802
        if node.id.startswith("__"):
            self._reject(node, f"name '{node.id}' is not allowed")
        self.generic_visit(node)

    def visit_Attribute(self, node: ast.Attribute) -> None:  # noqa: N802
        if (
            node.attr.startswith("__")
            or node.attr.startswith(INTROSPECTION_PREFIXES)
            or node.attr in BLOCKED_ATTRIBUTES
        ):
            self._reject(node, f"attribute '{node.attr}' is not allowed")
        self.generic_visit(node)

    def visit_Subscript(self, node: ast.Subscript) -> None:  # noqa: N802
        key = node.slice
        if isinstance(key, ast.Constant) and isinstance(key.value, str) and key.value.startswith("__"):
            self._reject(node, f"key '{key.value}' is not allowed")
        self.generic_visit(node)

    @staticmethod
    def _reject(node: ast.AST, reason: str) -> None:
        # Line 1 is the generated function header.
        line = getattr(node, "lineno", 1) - 1
        msg = f"{reason} (line {line})"
        raise SandboxError(msg)


def compile_snippet(source: str, params: Iterable[str]) -> Callable[..., Any]:
    """Compile `source` into a function taking `params`.

    The snippet may `return` a value.

    Raises:
        SyntaxError: If the snippet does not parse, or uses a disallowed
            construct (`SandboxError`).

    """
    header = f"def {_ENTRY_POINT}({', '.join(params)}):\n"
    body = textwrap.indent(textwrap.dedent(source), "    ")
    tree = ast.parse(f"{header}{body}\n    pass\n", filename=_FILENAME)
    _Validator().visit(tree)

    namespace: dict[str, Any] = {
        "__builtins__": {name: getattr(builtins, name) for name in SAFE_BUILTINS},
        "math": math,
    }
    exec(compile(tree, _FILENAME, "exec"), namespace)  # noqa: S102
    return namespace[_ENTRY_POINT]
