"""
Informational commands: schemes, check.
"""

from pathlib import Path

import typer
from rich import print as rprint

from ._shared import app, console


@app.command()
def schemes():
    """List the color schemes the page can render."""
    from ..settings import ALL_SCHEMES, DEFAULT_OUTPUT, SCHEMES
    from ..jobs import output_for_scheme

    for name in SCHEMES:
        rprint(f"  {name:<8} [dim]-> {output_for_scheme(Path(DEFAULT_OUTPUT), name)}[/dim]")
    rprint(f"[dim]Use --scheme {ALL_SCHEMES} to render every scheme in one run.[/dim]")


@app.command()
def check():
    """Check that Playwright and its Chromium build are installed."""
    from ..dependency_check import INSTALL_HINT, check_chromium, check_playwright

    ok = True
    available, version = check_playwright()
    if available:
        console.print(f"[green]✓[/green] playwright {version or '(unknown version)'}")
    else:
        console.print("[red]✗[/red] playwright package not installed")
        ok = False

    if available:
        chromium_ok, path = check_chromium()
        if chromium_ok:
            console.print(f"[green]✓[/green] chromium {path}")
        else:
            console.print("[red]✗[/red] chromium not installed for playwright")
            ok = False

    if not ok:
        console.print(f"[dim]{INSTALL_HINT}[/dim]")
        raise typer.Exit(1)
