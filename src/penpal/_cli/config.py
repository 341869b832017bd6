"""Configuration loading from pyproject.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

type Units = Literal["px", "mm"]

UNITS: tuple[Units, ...] = ("px", "mm")


class ConfigError(Exception):
    """Error in penpal configuration."""


@dataclass(slots=True, frozen=True)
class PenpalConfig:
    """Configuration loaded from the `[tool.penpal]` table.

    All relative paths are resolved from the project root (directory containing pyproject.toml).

    Attributes:
        project: Default project document.
        output: Default SVG output path.
        units: Canvas units for SVG export.
        background: Whether SVG export draws the background.
        project_root: Directory holding the pyproject.toml.

    """

    project: Path | None = None
    output: Path | None = None
    units: Units = "px"
    background: bool = False
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    current = (start_dir or Path.cwd()).resolve()
    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        current = current.parent


def _parse_path(section: dict[str, object], key: str, project_root: Path) -> Path | None:
    if key not in section:
        return None
    value = section[key]
    if not isinstance(value, str):
        msg = f"Invalid [tool.penpal].{key}: expected string path"
        raise ConfigError(msg)
    path = Path(value)
    return path if path.is_absolute() else project_root / path


def load_config(pyproject_path: Path) -> PenpalConfig:
    """Load and validate [tool.penpal] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed PenpalConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("penpal", {})
    if not section:
        return PenpalConfig(project_root=project_root)

    units = section.get("units", "px")
    if units not in UNITS:
        msg = f"Invalid [tool.penpal].units: expected one of {', '.join(UNITS)}, got {units!r}"
        raise ConfigError(msg)

    background = section.get("background", False)
    if not isinstance(background, bool):
        msg = "Invalid [tool.penpal].background: expected boolean"
        raise ConfigError(msg)

    return PenpalConfig(
        project=_parse_path(section, "project", project_root),
        output=_parse_path(section, "output", project_root),
        units=units,
        background=background,
        project_root=project_root,
    )


def get_config() -> PenpalConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        PenpalConfig (may be empty if no pyproject.toml or no [tool.penpal] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return PenpalConfig()
    return load_config(pyproject_path)
