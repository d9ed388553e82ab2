"""
Shared CLI state: Typer apps, consoles, options.
"""

from typing import Annotated, Optional

import typer
from rich.console import Console

# Main app
app = typer.Typer(
    name="posterkit",
    help="Render the visualization page to print-ready A3 PDF posters",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Config subcommand group
config_app = typer.Typer(
    name="config",
    help="Manage configuration",
    no_args_is_help=False,
    invoke_without_command=True,
)
app.add_typer(config_app, name="config")

# Console for rich output; errors go to stderr so stdout stays scriptable
console = Console()
err_console = Console(stderr=True)


RootOption = Annotated[
    Optional[str],
    typer.Option("--root", help="Directory to serve [env: POSTER_ROOT] (default: current directory)"),
]

PortOption = Annotated[
    Optional[str],
    typer.Option("--port", "-p", help="Port for the static server [env: POSTER_PORT] (default: auto)"),
]


def _version_callback(value: bool) -> None:
    if value:
        from .. import __version__

        print(f"posterkit {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = False,
):
    """Render the visualization page to print-ready A3 PDF posters."""
