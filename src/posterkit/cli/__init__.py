"""
CLI interface for posterkit using Typer.
"""

# Shared state (apps, options) must be imported first
from ._shared import app, main_callback  # noqa: F401

# Import submodules to register their commands with the Typer apps
from . import render  # noqa: F401
from . import server  # noqa: F401
from . import info  # noqa: F401
from . import config  # noqa: F401


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
