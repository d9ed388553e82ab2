"""
PDF export of the rendered page.
"""

from pathlib import Path

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from .exceptions import ExportError
from .logging_config import get_logger

logger = get_logger("exporter")

# ISO A3 portrait, full bleed
A3_WIDTH = "297mm"
A3_HEIGHT = "420mm"
ZERO_MARGIN = {"top": "0mm", "right": "0mm", "bottom": "0mm", "left": "0mm"}


def export_pdf(page: Page, output: Path) -> Path:
    """Print the page to an A3 PDF at output, overwriting any existing file.

    Raises:
        ExportError: The browser could not produce or write the PDF
    """
    output = Path(output)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        page.pdf(
            path=str(output),
            width=A3_WIDTH,
            height=A3_HEIGHT,
            margin=ZERO_MARGIN,
            print_background=True,
            prefer_css_page_size=False,
        )
    except (PlaywrightError, OSError) as e:
        raise ExportError(f"Could not write {output}: {e}") from e

    logger.info("Exported %s (%d bytes)", output, output.stat().st_size if output.exists() else 0)
    return output
