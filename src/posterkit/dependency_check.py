"""
Dependency checking for the headless browser.

Playwright ships as a Python package but downloads its Chromium build
separately, so a working pip install can still fail at launch time.
"""

import importlib.util
from pathlib import Path
from typing import Optional, Tuple

from .exceptions import BrowserNotFoundError

INSTALL_HINT = "Install it with: pip install playwright && playwright install chromium"


def check_playwright() -> Tuple[bool, Optional[str]]:
    """Check if the playwright package is importable.

    Returns:
        Tuple of (is_available, version)
    """
    if importlib.util.find_spec("playwright") is None:
        return False, None
    try:
        from importlib.metadata import PackageNotFoundError, version

        return True, version("playwright")
    except PackageNotFoundError:
        return True, None


def check_chromium() -> Tuple[bool, Optional[str]]:
    """Check if Playwright's Chromium build is installed.

    Returns:
        Tuple of (is_available, executable_path)
    """
    available, _ = check_playwright()
    if not available:
        return False, None

    from playwright.sync_api import Error as PlaywrightError
    from playwright.sync_api import sync_playwright

    try:
        with sync_playwright() as pw:
            path = pw.chromium.executable_path
    except PlaywrightError:
        return False, None

    if not path or not Path(path).exists():
        return False, path or None
    return True, path


def require_chromium() -> str:
    """Ensure Chromium is available, raise if not.

    Returns:
        Path to the Chromium executable

    Raises:
        BrowserNotFoundError: If playwright or its Chromium build is missing
    """
    available, path = check_chromium()
    if not available:
        raise BrowserNotFoundError(f"Chromium for Playwright is not installed. {INSTALL_HINT}")
    return path


def is_missing_browser_error(error: Exception) -> bool:
    """True for Playwright's launch error when the browser was never downloaded."""
    return "Executable doesn't exist" in str(error) or "playwright install" in str(error)
