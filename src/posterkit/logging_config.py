"""
Logging setup for posterkit.

All loggers live under the "posterkit" namespace. The CLI installs a Rich
console handler on stderr so stdout stays reserved for the per-file
confirmation lines.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "posterkit"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under posterkit."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    console: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Configure the posterkit logger.

    Existing handlers are removed first so repeated calls (e.g. from
    tests or multiple CLI invocations in one process) don't stack.

    Args:
        level: Level for the posterkit logger
        log_file: Optional file to append log lines to
        console: Whether to log to stderr
        rich_console: Use Rich's handler for console output when available

    Returns:
        The configured posterkit logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = False

    if console:
        handler: Optional[logging.Handler] = None
        if rich_console:
            try:
                from rich.console import Console
                from rich.logging import RichHandler

                handler = RichHandler(
                    console=Console(stderr=True),
                    show_path=False,
                    rich_tracebacks=True,
                )
                handler.setFormatter(logging.Formatter("%(message)s"))
            except ImportError:
                handler = None
        if handler is None:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def setup_cli_logging(verbose: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """Logging for interactive CLI use: warnings only unless --verbose."""
    setup_logging(
        level=logging.DEBUG if verbose else logging.WARNING,
        log_file=log_file,
        console=True,
    )
    return get_logger("cli")


class StructuredLogger:
    """Logger wrapper that appends key=value context to every message.

    Used by the pipeline so each line for a poster job carries the scheme
    and output path without repeating them at every call site.
    """

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        self._logger = logger
        self._context = dict(context or {})

    def with_context(self, **kwargs: Any) -> "StructuredLogger":
        """Return a new logger with additional context merged in."""
        merged = dict(self._context)
        merged.update(kwargs)
        return StructuredLogger(self._logger, merged)

    def _format(self, message: str, kwargs: Dict[str, Any]) -> str:
        fields = dict(self._context)
        fields.update(kwargs)
        if not fields:
            return message
        suffix = " ".join(f"{k}={v}" for k, v in fields.items())
        return f"{message} [{suffix}]"

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(self._format(message, kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(self._format(message, kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(self._format(message, kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(self._format(message, kwargs))

    def exception(self, message: str, **kwargs: Any) -> None:
        self._logger.exception(self._format(message, kwargs))


def get_structured_logger(name: str, **context: Any) -> StructuredLogger:
    """Return a StructuredLogger around get_logger(name)."""
    return StructuredLogger(get_logger(name), context)
