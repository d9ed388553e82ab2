"""
Render command: the poster export itself.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich import print as rprint

from ..settings import BatchPolicy, TimeoutAction
from ._shared import PortOption, RootOption, app, err_console


@app.command()
def render(
    dataset: Annotated[
        Optional[str], typer.Option("--dataset", help="stations | museums [env: POSTER_DATASET]")
    ] = None,
    metric: Annotated[
        Optional[str], typer.Option("--metric", help="l1 | l2 [env: POSTER_METRIC]")
    ] = None,
    angle: Annotated[
        Optional[str], typer.Option("--angle", help="Angle in degrees, used for L1 [env: POSTER_ANGLE]")
    ] = None,
    res: Annotated[
        Optional[str], typer.Option("--res", help="Pixel step size, 1-4 [env: POSTER_RES]")
    ] = None,
    title: Annotated[
        Optional[str], typer.Option("--title", help="on | off, keep the big overlay title [env: POSTER_TITLE]")
    ] = None,
    scheme: Annotated[
        Optional[str],
        typer.Option("--scheme", "-s", help="mta | ocean | sunset | earth | all [env: POSTER_SCHEME]"),
    ] = None,
    out: Annotated[
        Optional[str],
        typer.Option(
            "--out", "-o",
            help="Output PDF [env: POSTER_OUTPUT]; with --scheme all the scheme is appended to the name",
        ),
    ] = None,
    port: PortOption = None,
    url: Annotated[
        Optional[str],
        typer.Option("--url", help="Render this URL instead of serving --root locally [env: POSTER_URL]"),
    ] = None,
    root: RootOption = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Seconds to wait for 'Done.' (0 = forever) [env: POSTER_TIMEOUT]"),
    ] = None,
    on_timeout: Annotated[
        Optional[TimeoutAction],
        typer.Option("--on-timeout", help="Export anyway (warn) or fail the poster [env: POSTER_ON_TIMEOUT]"),
    ] = None,
    on_error: Annotated[
        Optional[BatchPolicy],
        typer.Option("--on-error", help="Stop at the first failed poster or continue [env: POSTER_ON_ERROR]"),
    ] = None,
    viewport: Annotated[
        Optional[str], typer.Option("--viewport", help="Viewport WIDTHxHEIGHT [env: POSTER_VIEWPORT]")
    ] = None,
    scale: Annotated[
        Optional[float], typer.Option("--scale", help="Device scale factor [env: POSTER_SCALE]")
    ] = None,
    nav_timeout: Annotated[
        Optional[float], typer.Option("--nav-timeout", help="Navigation timeout in seconds (0 = forever)")
    ] = None,
    no_controls: Annotated[
        bool, typer.Option("--no-controls", help="Don't set page controls or trigger a redraw")
    ] = False,
    headed: Annotated[
        bool, typer.Option("--headed", help="Show the browser window")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Debug logging on stderr")
    ] = False,
):
    """Render the page to A3 PDF posters.

    Serves --root (the current directory by default) on a local port,
    loads index.html in headless Chromium in poster mode, sets the page
    controls, waits for the status line to read "Done." and prints the
    canvas to a 297 x 420 mm PDF.

    Examples:
        posterkit render                                  # all 4 schemes
        posterkit render --scheme ocean --out ocean.pdf
        posterkit render --dataset museums --metric l2 --res 2
        posterkit render --url https://example.org/ --scheme mta
    """
    from ..exceptions import PosterkitError
    from ..logging_config import setup_cli_logging
    from ..pipeline import PosterPipeline
    from ..settings import ALL_SCHEMES, resolve_render_config

    setup_cli_logging(verbose=verbose)

    options = {
        "dataset": dataset,
        "metric": metric,
        "angle": angle,
        "res": res,
        "title": title,
        "scheme": scheme,
        "out": out,
        "port": port,
        "url": url,
        "root": root,
        "timeout": timeout,
        "on_timeout": on_timeout,
        "on_error": on_error,
        "viewport": viewport,
        "scale": scale,
        "navigation_timeout": nav_timeout,
        "apply_controls": False if no_controls else None,
        "headless": False if headed else None,
    }

    def on_written(path: Path) -> None:
        rprint(f"[green]✓[/green] Wrote {path}")

    try:
        config = resolve_render_config(options)
        if config.scheme == ALL_SCHEMES:
            rprint("[dim]Generating posters for all color schemes...[/dim]")
        report = PosterPipeline(config, on_written=on_written).run()
    except PosterkitError as e:
        err_console.print(f"[red]✗ Poster generation failed:[/red] {e}")
        raise typer.Exit(1)

    for scheme_name in report.timed_out:
        err_console.print(f"[yellow]![/yellow] {scheme_name}: page never reported 'Done.', exported anyway")

    if not report.ok:
        for scheme_name, message in report.failed:
            err_console.print(f"[red]✗ {scheme_name}:[/red] {message}")
        raise typer.Exit(1)

    if len(report.written) > 1:
        rprint(f"[green]✓[/green] All {len(report.written)} posters generated")
