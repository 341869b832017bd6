"""Context variables for penpal.

Kept separate from the I/O and operator modules to avoid circular imports.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

# Base directory for relative file paths in node properties (e.g. the Export
# SVG node's `filePath`). Typically the directory holding the project file.
_project_dir_var: ContextVar[Path | None] = ContextVar("project_dir", default=None)


def get_project_dir() -> Path | None:
    """Get the current project directory, or None if none is set."""
    return _project_dir_var.get()


def set_project_dir(path: Path | None) -> object:
    """Set the project directory.

    Returns a token that can be used to reset the value.
    """
    return _project_dir_var.set(path)


def reset_project_dir(token: object) -> None:
    """Reset the project directory using a token from set_project_dir."""
    _project_dir_var.reset(token)  # type: ignore[arg-type]


@contextmanager
def project_dir(path: Path | None) -> Iterator[None]:
    """Resolve relative node file paths against `path` within the block."""
    token = set_project_dir(path)
    try:
        yield
    finally:
        reset_project_dir(token)


def resolve_project_path(path: str | Path) -> Path:
    """Resolve `path` against the project directory when it is relative."""
    resolved = Path(path).expanduser()
    base = get_project_dir()
    if base is not None and not resolved.is_absolute():
        return base / resolved
    return resolved
