"""
Pytest configuration for posterkit tests.

This module provides shared fixtures and configuration for all tests.
"""

import pytest


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end test driving a real Chromium (slow)"
    )


@pytest.fixture
def site_dir(tmp_path):
    """A minimal page directory with an index document and a nested folder."""
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text("<!doctype html><title>poster</title>")
    (root / "data").mkdir()
    (root / "data" / "index.html").write_text("<p>data index</p>")
    return root
