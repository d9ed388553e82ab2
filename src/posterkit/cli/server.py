"""
Serve command: run the static server in the foreground.
"""

import logging
import os
from pathlib import Path

import typer
from rich import print as rprint

from ._shared import PortOption, RootOption, app, err_console


@app.command()
def serve(
    root: RootOption = None,
    port: PortOption = None,
):
    """Serve the page directory for previewing in a normal browser.

    Uses the same server and port probing as render. Press Ctrl+C to stop.

    Examples:
        posterkit serve                       # current directory, first free port from 5173
        posterkit serve --root site --port 8000
    """
    from ..config import get_server_start_port, load_config
    from ..exceptions import PosterkitError
    from ..logging_config import setup_logging
    from ..settings import ENV_VARS
    from ..static_server import StaticServer, bind_server

    setup_logging(level=logging.INFO)

    if root is None:
        root = os.environ.get(ENV_VARS["root"][0]) or str(Path.cwd())
    if port is None and os.environ.get(ENV_VARS["port"][0]):
        port = os.environ[ENV_VARS["port"][0]]

    root_path = Path(root)
    if not root_path.is_dir():
        err_console.print(f"[red]Not a directory:[/red] {root_path}")
        raise typer.Exit(1)

    try:
        httpd = bind_server(root_path, port=port, start_port=get_server_start_port(load_config()))
    except PosterkitError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    server = StaticServer(httpd)
    rprint(f"[bold]Serving[/bold] {server.root}")
    rprint(f"  Page:    {server.url_for('index.html')}")
    rprint(f"  Poster:  {server.url_for('index.html')}?poster&scheme=mta")
    rprint("[dim]Press Ctrl+C to stop[/dim]")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        rprint("\nShutting down...")
