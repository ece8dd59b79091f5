"""Configuration loading utilities for the eligibility engine.

Provides a centralized way to load and validate the parameters.yaml
configuration file used by the command-line entry point and batch runs.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

SCRIPT_DIR = Path(__file__).resolve().parent
ROOT_DIR = SCRIPT_DIR.parent
DEFAULT_CONFIG_PATH = ROOT_DIR / "config" / "parameters.yaml"
DEFAULT_RULE_SET_PATH = "config/rule_set.yaml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the engine parameters (evaluation, rule_set, logging sections).

    An empty file is a valid configuration: every setting then falls back
    to its default, and the due-soon window comes from the rule set itself.
    The result is validated before it is returned, so a bad window, sort
    flag, rule set path or log level stops the run before any profile is
    evaluated.

    Parameters
    ----------
    config_path : Path, optional
        Parameters file; defaults to ``DEFAULT_CONFIG_PATH``.

    Returns
    -------
    Dict[str, Any]
        Validated configuration mapping.

    Raises
    ------
    FileNotFoundError
        If the parameters file does not exist.
    yaml.YAMLError
        If the file is not valid YAML.
    ValueError
        If a setting is invalid (see validate_config).
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    validate_config(config)
    return config


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{name} must be a mapping, got {type(section).__name__}")
    return section


def validate_config(config: Dict[str, Any]) -> None:
    """Validate the entire configuration for consistency and required values.

    Parameters
    ----------
    config : Dict[str, Any]
        Configuration dictionary (result of load_config).

    Raises
    ------
    ValueError
        If configuration is invalid.

    Notes
    -----
    **Validation checks:**

    - **Evaluation:** due_soon_window_days, when set, must be a non-negative integer;
      sort_results must be a boolean
    - **Rule set:** rule_set.path must be a non-empty string
    - **Logging:** logging.level must be a standard level name

    Every key is optional; absent keys fall back to the documented defaults.
    """
    if not isinstance(config, dict):
        raise ValueError(
            f"Configuration must be a mapping, got {type(config).__name__}"
        )

    # Validate evaluation config
    evaluation_config = _section(config, "evaluation")
    window = evaluation_config.get("due_soon_window_days")
    # bool is a subclass of int, reject it explicitly
    if window is not None and (isinstance(window, bool) or not isinstance(window, int)):
        raise ValueError(
            f"evaluation.due_soon_window_days must be an integer, got {type(window).__name__}"
        )
    if window is not None and window < 0:
        raise ValueError(
            f"evaluation.due_soon_window_days must be non-negative, got {window}"
        )

    sort_results = evaluation_config.get("sort_results", True)
    if not isinstance(sort_results, bool):
        raise ValueError(
            f"evaluation.sort_results must be a boolean, got {type(sort_results).__name__}"
        )

    # Validate rule set config
    rule_set_config = _section(config, "rule_set")
    rule_set_path = rule_set_config.get("path", DEFAULT_RULE_SET_PATH)
    if not isinstance(rule_set_path, str) or not rule_set_path.strip():
        raise ValueError(
            "rule_set.path must be a non-empty string. "
            "Please define rule_set.path in config/parameters.yaml "
            "or remove it to use the bundled rule set."
        )

    # Validate logging config
    logging_config = _section(config, "logging")
    level = logging_config.get("level", "INFO")
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        raise ValueError(
            f"Invalid logging.level: {level}. Valid options: {', '.join(LOG_LEVELS)}"
        )


def get_evaluation_settings(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return evaluation settings with defaults applied.

    Returns
    -------
    Dict[str, Any]
        Keys ``due_soon_window_days`` (int, or None when unset so the rule
        set's own ``dueSoonWindowDays`` applies) and ``sort_results`` (bool).
    """
    evaluation_config = config.get("evaluation") or {}
    return {
        "due_soon_window_days": evaluation_config.get("due_soon_window_days"),
        "sort_results": evaluation_config.get("sort_results", True),
    }


def get_log_level(config: Dict[str, Any]) -> str:
    """Return the configured log level name (upper-case, default INFO)."""
    return str((config.get("logging") or {}).get("level", "INFO")).upper()


def resolve_rule_set_path(config: Dict[str, Any]) -> Path:
    """Resolve the configured rule set path.

    Relative paths are resolved against the project root so the engine
    behaves the same regardless of the working directory.
    """
    raw_path = (config.get("rule_set") or {}).get("path", DEFAULT_RULE_SET_PATH)
    path = Path(raw_path)
    if not path.is_absolute():
        path = ROOT_DIR / path
    return path
