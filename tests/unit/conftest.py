"""
Unit test configuration for posterkit.

Every unit test gets an isolated config file location and a clean
POSTER_* environment so a developer's own ~/.posterkit/config.yaml or
shell exports never leak into assertions.
"""

import os

import pytest

from posterkit import config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point CONFIG_PATH at a temp file and strip POSTER_* variables."""
    config_file = tmp_path / "posterkit-config" / "config.yaml"
    monkeypatch.setattr(config, "CONFIG_PATH", config_file)
    for var in list(os.environ):
        if var.startswith("POSTER_") or var == "POSTERKIT_DIR":
            monkeypatch.delenv(var, raising=False)
    return config_file


@pytest.fixture(autouse=True)
def wide_terminal(monkeypatch):
    """Give rich a fixed, wide console so CLI messages are not line-wrapped."""
    monkeypatch.setenv("COLUMNS", "200")
