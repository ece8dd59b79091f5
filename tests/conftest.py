"""Shared pytest fixtures for unit, integration, and e2e tests.

This module provides:
- Temporary directory fixtures for file I/O testing
- Configuration fixtures for parameter testing
- The bundled sample rule set, compiled once per test
- Named patient scenarios
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any, Dict, Generator

import pytest
import yaml

from eligibility import compiler, data_models
from tests.fixtures.sample_input import AS_OF, create_scenario_profiles

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SAMPLE_RULE_SET_PATH = PROJECT_ROOT / "config" / "rule_set.yaml"


@pytest.fixture
def tmp_test_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after each test.

    Real-world significance:
    - Isolates file I/O tests from each other
    - Prevents test artifacts from polluting the file system

    Yields
    ------
    Path
        Absolute path to temporary directory (automatically deleted after test)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def as_of() -> str:
    """Fixed evaluation date shared by scenario tests."""
    return AS_OF


@pytest.fixture
def default_config() -> Dict[str, Any]:
    """Provide a valid engine configuration for testing.

    Real-world significance:
    - Matches the production config schema (config/parameters.yaml)
    - Tests override single keys to exercise validation

    Returns
    -------
    Dict[str, Any]
        Configuration dict with all standard sections
    """
    return {
        "evaluation": {
            "due_soon_window_days": 30,
            "sort_results": True,
        },
        "rule_set": {
            "path": str(SAMPLE_RULE_SET_PATH),
        },
        "logging": {
            "level": "INFO",
        },
    }


@pytest.fixture
def config_file(tmp_test_dir: Path, default_config: Dict[str, Any]) -> Path:
    """Create a temporary config file with default configuration.

    Real-world significance:
    - Tests that need to load config from disk can use this fixture
    - Enables testing of config loading and the command-line entry point

    Returns
    -------
    Path
        Path to created YAML config file
    """
    config_path = tmp_test_dir / "parameters.yaml"
    with open(config_path, "w") as f:
        yaml.dump(default_config, f)
    return config_path


@pytest.fixture
def sample_rule_set() -> data_models.CompiledRuleSet:
    """Provide the bundled sample rule set, compiled.

    Real-world significance:
    - Scenario tests run against the same rules that ship with the engine
    - Changes to config/rule_set.yaml that break a scenario fail loudly
    """
    return compiler.load_rule_set(SAMPLE_RULE_SET_PATH)


@pytest.fixture
def scenario_profiles() -> Dict[str, Dict[str, Any]]:
    """Provide the named patient scenarios (fresh copies per test)."""
    return create_scenario_profiles()
