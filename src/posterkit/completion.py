"""
Completion detection for the visualization page.

The page has no completion API. It writes "Done." into its #status
element when rendering finishes, so we poll that text from inside the
page. Applying the timeout policy is left to the caller.
"""

from enum import Enum
from typing import Optional

from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .logging_config import get_logger

logger = get_logger("completion")

STATUS_ELEMENT_ID = "status"
DONE_PATTERN = r"^Done\."
DEFAULT_POLL_MS = 250

# Runs in the page. Case-insensitive prefix match on the status text.
DONE_PREDICATE = """
({ statusId, pattern }) => {
  const el = document.getElementById(statusId);
  if (!el) return false;
  return new RegExp(pattern, "i").test((el.textContent || "").trim());
}
"""


class Completion(str, Enum):
    DONE = "done"
    TIMED_OUT = "timed_out"


def wait_for_done(
    page: Page,
    timeout: Optional[float],
    status_id: str = STATUS_ELEMENT_ID,
    poll_ms: int = DEFAULT_POLL_MS,
) -> Completion:
    """Block until the page's status text reads "Done." or the timeout passes.

    Args:
        page: Playwright page already navigated to the poster URL
        timeout: Seconds to wait; None or <= 0 waits indefinitely
        status_id: id of the status element
        poll_ms: Polling interval inside the page

    Returns:
        Completion.DONE, or Completion.TIMED_OUT if the bound elapsed first
    """
    timeout_ms = 0 if not timeout or timeout <= 0 else timeout * 1000
    try:
        page.wait_for_function(
            DONE_PREDICATE,
            arg={"statusId": status_id, "pattern": DONE_PATTERN},
            polling=poll_ms,
            timeout=timeout_ms,
        )
    except PlaywrightTimeoutError:
        logger.debug("Status element never matched %s within %ss", DONE_PATTERN, timeout)
        return Completion.TIMED_OUT
    return Completion.DONE
