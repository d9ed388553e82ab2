"""
Config commands: init, show, path.
"""

from typing import Annotated

import typer
from rich import print as rprint

from ._shared import config_app


CONFIG_TEMPLATE = """\
# posterkit configuration
# Location: ~/.posterkit/config.yaml (override the directory with POSTERKIT_DIR)
#
# Precedence: command-line flags > POSTER_* environment variables > this file

# Render defaults, keyed by option name
# defaults:
#   dataset: stations        # stations | museums
#   metric: l1               # l1 | l2
#   angle: 29                # degrees, used only for L1
#   res: 1                   # pixel step size, 1-4
#   title: on                # keep the big overlay title
#   scheme: all              # mta | ocean | sunset | earth | all
#   out: poster_a3.pdf
#   root: /path/to/site      # directory served when no url is given
#   url: http://localhost:8080/   # render a running site instead of serving root

# Headless browser
# browser:
#   viewport: 3508x4961      # A3 at 300 DPI
#   scale: 1                 # device scale factor
#   headless: true
#   navigation_timeout: 90   # seconds, 0 = wait forever

# Waiting for the page's "Done." status
# wait:
#   timeout: 180             # seconds, 0 = wait forever
#   on_timeout: warn         # warn (export anyway) | fail

# Multi-scheme runs
# batch:
#   on_error: abort          # abort | continue

# Local static server
# server:
#   start_port: 5173         # first port probed when --port is not given
"""


@config_app.callback(invoke_without_command=True)
def config_default(ctx: typer.Context):
    """Show current configuration (default when no subcommand given)."""
    if ctx.invoked_subcommand is None:
        _config_show()


@config_app.command("init")
def config_init(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite existing config file")
    ] = False,
):
    """Create a config file with documented defaults.

    Creates ~/.posterkit/config.yaml with all options commented out.
    Use --force to overwrite an existing config file.
    """
    from .. import config as config_module

    path = config_module.CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.exists() and not force:
        rprint(f"[yellow]Config file already exists:[/yellow] {path}")
        rprint("[dim]Use --force to overwrite[/dim]")
        raise typer.Exit(1)

    path.write_text(CONFIG_TEMPLATE)
    rprint(f"[green]✓[/green] Created config file: [bold]{path}[/bold]")
    rprint("[dim]Edit to customize your settings[/dim]")


@config_app.command("show")
def config_show():
    """Show current configuration."""
    _config_show()


def _config_show():
    """Internal function to display current config and the resolved render settings."""
    from .. import config as config_module
    from ..exceptions import PosterkitError
    from ..settings import resolve_render_config

    path = config_module.CONFIG_PATH
    file_config = config_module.load_config()

    if not path.exists():
        rprint(f"[dim]No config file found at {path}[/dim]")
        rprint("[dim]Run 'posterkit config init' to create one[/dim]")
    elif not file_config:
        rprint(f"[dim]Config file is empty: {path}[/dim]")
    else:
        rprint(f"[bold]Configuration[/bold] ({path}):\n")
        for section in ("defaults", "browser", "wait", "batch", "server"):
            values = file_config.get(section)
            if not isinstance(values, dict) or not values:
                continue
            rprint(f"  {section}:")
            for key, value in values.items():
                rprint(f"    {key}: {value}")

    try:
        resolved = resolve_render_config(file_config=file_config)
    except PosterkitError as e:
        rprint(f"\n[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1)

    rprint("\n[bold]Effective render settings[/bold] (file + environment):\n")
    rprint(f"  dataset={resolved.dataset} metric={resolved.metric} angle={resolved.angle} res={resolved.res}")
    rprint(f"  scheme={resolved.scheme} title={'on' if resolved.title is True else resolved.title} out={resolved.out}")
    target = resolved.url or f"serve {resolved.root}"
    rprint(f"  target: {target}")
    rprint(
        f"  viewport: {resolved.viewport.width}x{resolved.viewport.height} @ {resolved.viewport.scale:g}x"
    )
    wait = "forever" if resolved.wait.unbounded else f"{resolved.wait.timeout:g}s"
    rprint(f"  wait: {wait}, on timeout {resolved.wait.on_timeout.value}, on error {resolved.on_error.value}")


@config_app.command("path")
def config_path():
    """Show the config file path."""
    from .. import config as config_module
    print(config_module.CONFIG_PATH)
