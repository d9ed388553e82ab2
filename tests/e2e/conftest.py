"""
E2E fixtures for posterkit.

These tests drive a real headless Chromium through Playwright against the
fixture pages next to this file. They are skipped when Chromium has not
been downloaded (run `playwright install chromium` first).
"""

from pathlib import Path

import pytest

from posterkit.dependency_check import check_chromium

E2E_DIR = Path(__file__).parent


def pytest_collection_modifyitems(config, items):
    """Mark everything under e2e/ and skip it when Chromium is missing."""
    e2e_items = [item for item in items if E2E_DIR in item.path.parents]
    if not e2e_items:
        return

    available, _ = check_chromium()
    for item in e2e_items:
        item.add_marker(pytest.mark.e2e)
        if not available:
            item.add_marker(pytest.mark.skip(reason="Chromium for Playwright is not installed"))


@pytest.fixture
def site():
    """Page that reports "Done." only after its redraw button is clicked."""
    return E2E_DIR / "site"


@pytest.fixture
def stalled_site():
    """Page whose status never reaches "Done."."""
    return E2E_DIR / "site_stalled"
