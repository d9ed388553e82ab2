"""
Exception hierarchy for posterkit.

Every error the pipeline raises on purpose derives from PosterkitError so
the CLI can report it as a single red line and exit non-zero.
"""

from typing import Optional


class PosterkitError(Exception):
    """Base class for all posterkit errors."""


class PortUnavailableError(PosterkitError):
    """Raised when the static server cannot bind a port."""

    def __init__(self, port: int, reason: str = "already in use"):
        self.port = port
        self.reason = reason
        super().__init__(f"Port {port} is unavailable: {reason}")


class ConfigError(PosterkitError):
    """Raised when a policy or viewport setting cannot be understood."""


class BrowserNotFoundError(PosterkitError):
    """Raised when Playwright or its Chromium build is not installed."""


class NavigationError(PosterkitError):
    """Raised when the target page cannot be loaded or driven."""


class CompletionTimeoutError(PosterkitError):
    """Raised when the page never reports completion and the policy is 'fail'."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Page did not report 'Done.' within {timeout:g}s")


class ExportError(PosterkitError):
    """Raised when the browser cannot produce the PDF artifact."""


class JobFailedError(PosterkitError):
    """A single poster job failed; wraps the underlying error."""

    def __init__(self, scheme: str, cause: Exception, output: Optional[str] = None):
        self.scheme = scheme
        self.cause = cause
        self.output = output
        super().__init__(f"Poster '{scheme}' failed: {cause}")
