"""
Page controller: drives one Playwright page through the poster steps.

The visualization page has no programmatic API. We treat it as a small
remote service with one call, "set control X to V and signal change",
implemented by writing the control's value and dispatching the DOM event
its listeners are bound to. Controls the page doesn't have are skipped.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import quote, urlsplit, urlunsplit

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from .exceptions import NavigationError
from .logging_config import get_logger
from .settings import RenderConfig, Viewport

logger = get_logger("page_controller")

REDRAW_ELEMENT_ID = "redraw"


@dataclass(frozen=True)
class ControlUpdate:
    """Set element_id's value, then dispatch event (if any) on it."""

    element_id: str
    value: str
    event: Optional[str] = None


def controls_for(config: RenderConfig) -> List[ControlUpdate]:
    """The control updates that put the page into config's state.

    Only metric and angle have listeners that recompute derived UI state;
    dataset and res are read when the redraw button is clicked.
    """
    return [
        ControlUpdate("dataset", str(config.dataset)),
        ControlUpdate("metric", str(config.metric), "change"),
        ControlUpdate("angle", str(config.angle), "input"),
        ControlUpdate("res", str(config.res)),
    ]


def build_target_url(base: str, scheme: str) -> str:
    """Add the poster flag and scheme to base's query string.

    >>> build_target_url("http://localhost:5173/index.html", "ocean")
    'http://localhost:5173/index.html?poster&scheme=ocean'
    """
    parts = urlsplit(base)
    params = [p for p in parts.query.split("&") if p]
    params = [p for p in params if p != "poster" and not p.startswith("scheme=")]
    params += ["poster", f"scheme={quote(scheme, safe='')}"]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "&".join(params), parts.fragment))


def poster_stylesheet(title: bool) -> str:
    """CSS that strips page chrome and stretches the canvas over the viewport."""
    css = """
header, #status { display: none !important; }
#container { position: fixed !important; inset: 0 !important; }
canvas#c { width: 100% !important; height: 100% !important; }
"""
    if title:
        # White outline keeps the title legible over dark schemes in print
        css += """#bigTitle {
  font-size: clamp(28px, 5vw, 120px) !important;
  text-shadow: -1px -1px 0 #fff, 1px -1px 0 #fff, -1px 1px 0 #fff, 1px 1px 0 #fff, 0 0 6px #fff !important;
}
"""
    else:
        css += "#bigTitle { display: none !important; }\n"
    return css


# Runs in the page. Returns the ids that were actually found and updated.
APPLY_CONTROLS_SCRIPT = """
({ updates, redrawId }) => {
  const applied = [];
  for (const u of updates) {
    const el = document.getElementById(u.id);
    if (!el) continue;
    el.value = u.value;
    if (u.event) el.dispatchEvent(new Event(u.event, { bubbles: true }));
    applied.push(u.id);
  }
  const btn = document.getElementById(redrawId);
  if (btn) { btn.click(); applied.push(redrawId); }
  window.dispatchEvent(new Event("resize"));
  return applied;
}
"""


class PageController:
    """Owns one page for the duration of one poster job."""

    def __init__(self, page: Page):
        self.page = page

    def open(self, url: str, viewport: Viewport, timeout: float = 0) -> None:
        """Size the viewport and navigate, waiting for network quiescence.

        Args:
            url: Target URL including query parameters
            viewport: Pixel size; device scale is fixed when the page is created
            timeout: Navigation timeout in seconds; <= 0 waits indefinitely

        Raises:
            NavigationError: Navigation failed or never went idle
        """
        timeout_ms = 0 if timeout <= 0 else timeout * 1000
        try:
            self.page.set_viewport_size(viewport.as_playwright())
            self.page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {url}: {e}") from e
        logger.debug("Loaded %s", url)

    def apply_style(self, title: bool) -> None:
        try:
            self.page.add_style_tag(content=poster_stylesheet(title))
        except PlaywrightError as e:
            raise NavigationError(f"Failed to inject poster styles: {e}") from e

    def apply_controls(
        self,
        updates: Sequence[ControlUpdate],
        redraw_id: str = REDRAW_ELEMENT_ID,
    ) -> List[str]:
        """Push control values into the page and trigger a redraw.

        Returns:
            Ids of the controls (and redraw trigger) present on the page

        Raises:
            NavigationError: The in-page script threw
        """
        payload = {
            "updates": [{"id": u.element_id, "value": u.value, "event": u.event} for u in updates],
            "redrawId": redraw_id,
        }
        try:
            applied = self.page.evaluate(APPLY_CONTROLS_SCRIPT, payload)
        except PlaywrightError as e:
            raise NavigationError(f"Failed to apply page controls: {e}") from e

        applied = list(applied or [])
        missing = [u.element_id for u in updates if u.element_id not in applied]
        if missing:
            logger.debug("Controls not present on page, skipped: %s", ", ".join(missing))
        return applied
