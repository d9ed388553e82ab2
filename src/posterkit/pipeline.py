"""
Poster pipeline: serve the page, launch Chromium, render every job.

Process-wide resources are acquired in a fixed order (static server,
then browser) and released in reverse on every exit path. Each job gets
its own page, opened and closed around that job only. Jobs run strictly
one after another.
"""

from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from playwright.sync_api import Browser, Page
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .completion import Completion, wait_for_done
from .dependency_check import INSTALL_HINT, is_missing_browser_error
from .exceptions import (
    BrowserNotFoundError,
    CompletionTimeoutError,
    JobFailedError,
    PosterkitError,
)
from .exporter import export_pdf
from .jobs import PosterJob, expand_jobs
from .logging_config import StructuredLogger, get_structured_logger
from .page_controller import PageController, build_target_url, controls_for
from .settings import BatchPolicy, RenderConfig, TimeoutAction
from .static_server import INDEX_DOCUMENT, StaticServer, bind_server

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",  # avoids /dev/shm crashes in containers
]


class PipelineState(str, Enum):
    IDLE = "idle"
    SERVER_STARTING = "server_starting"
    BROWSER_LAUNCHING = "browser_launching"
    PAGE_OPEN = "page_open"
    STYLING = "styling"
    AWAITING_DONE = "awaiting_done"
    EXPORTING = "exporting"
    PAGE_CLOSED = "page_closed"
    BROWSER_CLOSING = "browser_closing"
    SERVER_CLOSING = "server_closing"
    DONE = "done"


@dataclass
class RunReport:
    """Outcome of one run."""

    written: List[Path] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)
    timed_out: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class PosterPipeline:
    """Runs poster jobs against one shared server and one shared browser."""

    def __init__(
        self,
        config: RenderConfig,
        on_written: Optional[Callable[[Path], None]] = None,
    ):
        self.config = config
        self.on_written = on_written
        self.state = PipelineState.IDLE
        self.transitions: List[PipelineState] = [PipelineState.IDLE]
        self._log = get_structured_logger("pipeline")

    def _transition(self, state: PipelineState, log: Optional[StructuredLogger] = None) -> None:
        self.state = state
        self.transitions.append(state)
        (log or self._log).debug(f"-> {state.value}")

    # -------------------------------------------------------------------------
    # Shared resources
    # -------------------------------------------------------------------------

    def _start_server(self, stack: ExitStack) -> str:
        """Start the local server (if serving locally) and return the base URL."""
        if not self.config.serve_locally:
            return self.config.url

        self._transition(PipelineState.SERVER_STARTING)
        server = StaticServer(
            bind_server(
                self.config.root,
                port=self.config.port,
                start_port=self.config.start_port,
            )
        ).start()
        stack.callback(server.shutdown)
        stack.callback(self._transition, PipelineState.SERVER_CLOSING)
        return server.url_for(INDEX_DOCUMENT)

    def _launch_browser(self, stack: ExitStack) -> Browser:
        self._transition(PipelineState.BROWSER_LAUNCHING)
        pw = stack.enter_context(sync_playwright())
        try:
            browser = pw.chromium.launch(headless=self.config.headless, args=CHROMIUM_ARGS)
        except PlaywrightError as e:
            if is_missing_browser_error(e):
                raise BrowserNotFoundError(f"Chromium for Playwright is not installed. {INSTALL_HINT}") from e
            raise PosterkitError(f"Failed to launch Chromium: {e}") from e

        stack.callback(self._close_browser, browser)
        stack.callback(self._transition, PipelineState.BROWSER_CLOSING)
        return browser

    def _close_browser(self, browser: Browser) -> None:
        try:
            browser.close()
        except PlaywrightError as e:
            # The browser may already be gone after a crash; nothing left to release
            self._log.warning(f"Browser did not close cleanly: {e}")

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    def _close_page(self, page: Page, log: StructuredLogger) -> None:
        try:
            page.close()
        except PlaywrightError as e:
            # A dead page must not mask the error that ended the job
            log.warning(f"Page did not close cleanly: {e}")

    def run_job(self, browser: Browser, base_url: str, job: PosterJob) -> Completion:
        """Render one scheme to one PDF on a fresh page.

        Returns:
            How the completion wait ended (TIMED_OUT only under the warn policy)

        Raises:
            PosterkitError: Navigation, completion (fail policy) or export failure
        """
        config = self.config
        log = self._log.with_context(scheme=job.scheme, output=job.output)

        page = browser.new_page(
            viewport=config.viewport.as_playwright(),
            device_scale_factor=config.viewport.scale,
        )
        self._transition(PipelineState.PAGE_OPEN, log)
        try:
            controller = PageController(page)
            controller.open(
                build_target_url(base_url, job.scheme),
                config.viewport,
                timeout=config.navigation_timeout,
            )

            self._transition(PipelineState.STYLING, log)
            controller.apply_style(config.title)
            if config.apply_controls:
                controller.apply_controls(controls_for(config))

            self._transition(PipelineState.AWAITING_DONE, log)
            completion = wait_for_done(page, config.wait.timeout)
            if completion is Completion.TIMED_OUT:
                if config.wait.on_timeout is TimeoutAction.FAIL:
                    raise CompletionTimeoutError(config.wait.timeout)
                log.warning('Timed out waiting for "Done." in #status, exporting anyway')

            self._transition(PipelineState.EXPORTING, log)
            export_pdf(page, job.output)
        finally:
            self._close_page(page, log)
            self._transition(PipelineState.PAGE_CLOSED, log)

        log.info("Poster written")
        return completion

    def run(self, jobs: Optional[Sequence[PosterJob]] = None) -> RunReport:
        """Run every job, sharing one server and one browser.

        Raises:
            JobFailedError: A job failed and the batch policy is abort
            PosterkitError: The server or browser could not be started
        """
        if jobs is None:
            jobs = expand_jobs(self.config)
        report = RunReport()

        with ExitStack() as stack:
            base_url = self._start_server(stack)
            browser = self._launch_browser(stack)

            for job in jobs:
                try:
                    completion = self.run_job(browser, base_url, job)
                except (PosterkitError, PlaywrightError) as e:
                    failure = JobFailedError(job.scheme, e, output=str(job.output))
                    if self.config.on_error is BatchPolicy.ABORT:
                        raise failure from e
                    self._log.error(str(failure))
                    report.failed.append((job.scheme, str(e)))
                    continue

                if completion is Completion.TIMED_OUT:
                    report.timed_out.append(job.scheme)
                report.written.append(job.output)
                if self.on_written is not None:
                    self.on_written(job.output)

        self._transition(PipelineState.DONE)
        return report


def render_posters(
    config: RenderConfig,
    on_written: Optional[Callable[[Path], None]] = None,
) -> RunReport:
    """Convenience wrapper: expand config into jobs and run them."""
    return PosterPipeline(config, on_written=on_written).run()
