"""Tests for the configuration module."""

from pathlib import Path

import pytest

from penpal._cli.config import ConfigError, PenpalConfig, find_pyproject_toml, load_config


class TestFindPyprojectToml:
    """Tests for find_pyproject_toml function."""

    def test_finds_in_current_directory(self, tmp_path: Path) -> None:
        """Should find pyproject.toml in current directory."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")

        assert find_pyproject_toml(tmp_path) == pyproject

    def test_finds_in_parent_directory(self, tmp_path: Path) -> None:
        """Should find pyproject.toml in parent directory."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")
        subdir = tmp_path / "drawings" / "2024"
        subdir.mkdir(parents=True)

        assert find_pyproject_toml(subdir) == pyproject


class TestLoadConfig:
    """Tests for loading [tool.penpal]."""

    def test_full_section(self, tmp_path: Path) -> None:
        """Should parse every key and resolve paths from the project root."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            """
[tool.penpal]
project = "drawings/spiral.json"
output = "/tmp/plots/spiral.svg"
units = "mm"
background = true
""",
        )

        config = load_config(pyproject)

        assert config == PenpalConfig(
            project=tmp_path / "drawings" / "spiral.json",
            output=Path("/tmp/plots/spiral.svg"),  # noqa: S108
            units="mm",
            background=True,
            project_root=tmp_path,
        )

    def test_missing_section(self, tmp_path: Path) -> None:
        """Should return an empty config carrying the project root."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")

        config = load_config(pyproject)

        assert config == PenpalConfig(project_root=tmp_path)
        assert config.units == "px"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[tool.penpal\n")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(pyproject)

    def test_invalid_units(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text('[tool.penpal]\nunits = "inch"\n')

        with pytest.raises(ConfigError, match=r"Invalid \[tool.penpal\].units"):
            load_config(pyproject)

    def test_invalid_background(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text('[tool.penpal]\nbackground = "yes"\n')

        with pytest.raises(ConfigError, match="expected boolean"):
            load_config(pyproject)

    def test_non_string_path(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[tool.penpal]\nproject = 3\n")

        with pytest.raises(ConfigError, match=r"Invalid \[tool.penpal\].project: expected string path"):
            load_config(pyproject)
