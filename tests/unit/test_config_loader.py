"""Unit tests for config_loader module - YAML configuration loading and validation.

Tests cover:
- Loading YAML configurations from files
- Error handling for missing files
- Validation of evaluation, rule set and logging sections
- Defaults and rule set path resolution

Real-world significance:
- Configuration controls the due-soon window, ordering and which rules apply
- Invalid config must fail before any patient is evaluated
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import pytest

from eligibility import config_loader


@pytest.mark.unit
class TestLoadConfig:
    """Unit tests for load_config function."""

    def test_load_config_with_default_path(self) -> None:
        """Verify config loads from default location.

        Real-world significance:
        - The command line must work without a --config flag
        """
        config = config_loader.load_config()

        assert isinstance(config, dict)
        assert config["evaluation"]["sort_results"] is True
        assert "due_soon_window_days" not in config["evaluation"]

    def test_load_config_with_custom_path(self, config_file: Path) -> None:
        """Verify config loads from custom path."""
        config = config_loader.load_config(config_file)

        assert config["logging"]["level"] == "INFO"

    def test_load_config_file_not_found(self) -> None:
        """Verify error when config file missing.

        Real-world significance:
        - Missing config indicates setup error; must fail early with clear message
        """
        with pytest.raises(FileNotFoundError):
            config_loader.load_config(Path("/nonexistent/path/config.yaml"))

    def test_load_config_empty_file(self, tmp_test_dir: Path) -> None:
        """Verify an empty file is valid and leaves the window to the rule set.

        Real-world significance:
        - Each rule set carries its own dueSoonWindowDays; the config only
          overrides it when a clinic sets one explicitly
        """
        config_path = tmp_test_dir / "empty.yaml"
        config_path.write_text("")

        config = config_loader.load_config(config_path)

        assert config == {}
        assert config_loader.get_evaluation_settings(config) == {
            "due_soon_window_days": None,
            "sort_results": True,
        }

    def test_load_config_invalid_values_raise(self, tmp_test_dir: Path) -> None:
        """Verify validation runs on load."""
        config_path = tmp_test_dir / "bad.yaml"
        config_path.write_text("evaluation:\n  sort_results: maybe\n")

        with pytest.raises(ValueError, match="sort_results must be a boolean"):
            config_loader.load_config(config_path)


@pytest.mark.unit
class TestValidateConfig:
    """Unit tests for validate_config."""

    def test_valid_config_passes(self, default_config: Dict[str, Any]) -> None:
        """Verify the standard config validates."""
        config_loader.validate_config(default_config)

    @pytest.mark.parametrize("window", [-1, "30", 2.5, True])
    def test_bad_window_rejected(self, default_config: Dict[str, Any], window) -> None:
        """Verify the window must be a non-negative integer.

        Real-world significance:
        - A negative window would make every upcoming dose ELIGIBLE
        """
        default_config["evaluation"]["due_soon_window_days"] = window

        with pytest.raises(ValueError, match="due_soon_window_days"):
            config_loader.validate_config(default_config)

    def test_zero_window_allowed(self, default_config: Dict[str, Any]) -> None:
        """Verify a zero window is valid (only same-day doses are due soon)."""
        default_config["evaluation"]["due_soon_window_days"] = 0
        config_loader.validate_config(default_config)

    def test_window_may_be_omitted(self, default_config: Dict[str, Any]) -> None:
        """Verify an absent window validates and yields no override."""
        del default_config["evaluation"]["due_soon_window_days"]

        config_loader.validate_config(default_config)

        assert config_loader.get_evaluation_settings(default_config)["due_soon_window_days"] is None

    def test_empty_rule_set_path_rejected(self, default_config: Dict[str, Any]) -> None:
        """Verify rule_set.path must be a non-empty string."""
        default_config["rule_set"]["path"] = "  "

        with pytest.raises(ValueError, match="rule_set.path"):
            config_loader.validate_config(default_config)

    def test_bad_log_level_rejected(self, default_config: Dict[str, Any]) -> None:
        """Verify unknown log levels list valid options."""
        default_config["logging"]["level"] = "LOUD"

        with pytest.raises(ValueError, match="Valid options"):
            config_loader.validate_config(default_config)

    def test_section_must_be_mapping(self, default_config: Dict[str, Any]) -> None:
        """Verify sections given as scalars are rejected."""
        default_config["evaluation"] = 30

        with pytest.raises(ValueError, match="evaluation must be a mapping"):
            config_loader.validate_config(default_config)


@pytest.mark.unit
class TestConfigHelpers:
    """Unit tests for settings helpers."""

    def test_relative_rule_set_path_resolved_from_project_root(self) -> None:
        """Verify relative paths resolve against the project root.

        Real-world significance:
        - The engine behaves the same from any working directory
        """
        path = config_loader.resolve_rule_set_path({"rule_set": {"path": "config/rule_set.yaml"}})

        assert path == config_loader.ROOT_DIR / "config" / "rule_set.yaml"
        assert path.exists()

    def test_absolute_rule_set_path_kept(self, tmp_test_dir: Path) -> None:
        """Verify absolute paths are used as given."""
        target = tmp_test_dir / "rules.yaml"

        assert config_loader.resolve_rule_set_path({"rule_set": {"path": str(target)}}) == target

    def test_default_rule_set_path(self) -> None:
        """Verify the bundled rule set is the default."""
        assert config_loader.resolve_rule_set_path({}).name == "rule_set.yaml"

    def test_log_level_normalized(self) -> None:
        """Verify log level names are upper-cased with an INFO default."""
        assert config_loader.get_log_level({"logging": {"level": "debug"}}) == "DEBUG"
        assert config_loader.get_log_level({}) == "INFO"
