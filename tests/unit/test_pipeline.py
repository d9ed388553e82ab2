"""
Unit tests for the poster pipeline.

Playwright is replaced by MagicMocks; the static server is real and bound
to an OS-assigned port so the resource lifecycle is exercised for real.
"""

import socket
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from posterkit.completion import Completion
from posterkit.exceptions import (
    BrowserNotFoundError,
    ExportError,
    JobFailedError,
    NavigationError,
    PosterkitError,
)
from posterkit.jobs import PosterJob
from posterkit.pipeline import (
    CHROMIUM_ARGS,
    PipelineState,
    PosterPipeline,
    render_posters,
)
from posterkit.settings import (
    BatchPolicy,
    RenderConfig,
    TimeoutAction,
    Viewport,
    WaitPolicy,
)


class FakePlaywright:
    """Stands in for sync_playwright(); records every page it hands out."""

    def __init__(self):
        self.pages = []
        self.page_hook = None
        self.browser = MagicMock()
        self.browser.new_page.side_effect = self._new_page
        self.pw = MagicMock()
        self.pw.chromium.launch.return_value = self.browser
        self.manager = MagicMock()
        self.manager.__enter__.return_value = self.pw
        self.manager.__exit__.return_value = False

    def _new_page(self, **kwargs):
        page = MagicMock()
        page.pdf.side_effect = lambda path, **kw: Path(path).write_bytes(b"%PDF-1.4\n%%EOF\n")
        page.evaluate.return_value = ["dataset", "metric", "angle", "res", "redraw"]
        if self.page_hook is not None:
            self.page_hook(len(self.pages), page)
        self.pages.append(page)
        return page

    def visited(self):
        return [page.goto.call_args[0][0] for page in self.pages]


@pytest.fixture
def fake_pw(monkeypatch):
    fake = FakePlaywright()
    monkeypatch.setattr("posterkit.pipeline.sync_playwright", lambda: fake.manager)
    return fake


@pytest.fixture
def make_config(site_dir, tmp_path):
    def _make(**overrides):
        values = {
            "root": site_dir,
            "port": 0,
            "out": tmp_path / "out" / "poster_a3.pdf",
            "scheme": "all",
            "viewport": Viewport(800, 1131, 1.0),
        }
        values.update(overrides)
        return RenderConfig(**values)
    return _make


def _port_is_closed(url):
    port = int(url.split("//", 1)[1].split("/", 1)[0].rsplit(":", 1)[1])
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        return sock.connect_ex(("127.0.0.1", port)) != 0


class TestBatch:

    def test_all_writes_four_pdfs(self, fake_pw, make_config, tmp_path):
        written = []
        report = PosterPipeline(make_config(), on_written=written.append).run()

        expected = [tmp_path / "out" / f"poster_a3_{s}.pdf" for s in ("mta", "ocean", "sunset", "earth")]
        assert report.ok
        assert report.written == expected
        assert written == expected
        for path in expected:
            assert path.read_bytes().startswith(b"%PDF")

    def test_each_job_gets_its_own_page(self, fake_pw, make_config):
        PosterPipeline(make_config()).run()

        assert len(fake_pw.pages) == 4
        for page in fake_pw.pages:
            page.close.assert_called_once()
        assert [url.rsplit("scheme=", 1)[1] for url in fake_pw.visited()] == [
            "mta", "ocean", "sunset", "earth",
        ]

    def test_browser_launched_once(self, fake_pw, make_config):
        PosterPipeline(make_config()).run()

        fake_pw.pw.chromium.launch.assert_called_once_with(headless=True, args=CHROMIUM_ARGS)
        fake_pw.browser.close.assert_called_once()

    def test_single_scheme(self, fake_pw, make_config, tmp_path):
        out = tmp_path / "poster_a3_museums.pdf"
        report = PosterPipeline(make_config(scheme="ocean", out=out)).run()

        assert report.written == [out]
        assert out.exists()
        assert len(fake_pw.pages) == 1

    def test_explicit_jobs(self, fake_pw, make_config, tmp_path):
        jobs = [PosterJob("earth", tmp_path / "a.pdf"), PosterJob("mta", tmp_path / "b.pdf")]

        report = PosterPipeline(make_config()).run(jobs)

        assert report.written == [tmp_path / "a.pdf", tmp_path / "b.pdf"]

    def test_render_posters_wrapper(self, fake_pw, make_config):
        assert len(render_posters(make_config()).written) == 4


class TestPageSetup:

    def test_museums_l2_ocean(self, fake_pw, make_config, tmp_path):
        """Non-default controls are pushed into the page before the wait."""
        config = make_config(
            dataset="museums", metric="l2", res=2, scheme="ocean",
            out=tmp_path / "poster_a3_museums.pdf",
        )
        PosterPipeline(config).run()

        page = fake_pw.pages[0]
        assert fake_pw.visited()[0].endswith("/index.html?poster&scheme=ocean")
        payload = page.evaluate.call_args[0][1]
        values = {u["id"]: u["value"] for u in payload["updates"]}
        assert values == {"dataset": "museums", "metric": "l2", "angle": "29", "res": "2"}
        page.wait_for_function.assert_called_once()
        assert (tmp_path / "poster_a3_museums.pdf").exists()

    def test_viewport_and_scale(self, fake_pw, make_config):
        PosterPipeline(make_config(scheme="mta", viewport=Viewport(1000, 1414, 2.0))).run()

        fake_pw.browser.new_page.assert_called_once_with(
            viewport={"width": 1000, "height": 1414}, device_scale_factor=2.0,
        )

    def test_title_off_hides_overlay(self, fake_pw, make_config):
        PosterPipeline(make_config(scheme="mta", title=False)).run()

        css = fake_pw.pages[0].add_style_tag.call_args.kwargs["content"]
        assert "#bigTitle { display: none !important; }" in css

    def test_no_controls(self, fake_pw, make_config):
        PosterPipeline(make_config(scheme="mta", apply_controls=False)).run()

        fake_pw.pages[0].evaluate.assert_not_called()
        fake_pw.pages[0].add_style_tag.assert_called_once()

    def test_url_mode_skips_local_server(self, fake_pw, make_config):
        pipeline = PosterPipeline(make_config(scheme="sunset", url="https://example.org/viz/"))
        pipeline.run()

        assert fake_pw.visited() == ["https://example.org/viz/?poster&scheme=sunset"]
        assert PipelineState.SERVER_STARTING not in pipeline.transitions


class TestLifecycle:

    def test_transition_order_single_job(self, fake_pw, make_config):
        pipeline = PosterPipeline(make_config(scheme="mta"))
        pipeline.run()

        assert pipeline.transitions == [
            PipelineState.IDLE,
            PipelineState.SERVER_STARTING,
            PipelineState.BROWSER_LAUNCHING,
            PipelineState.PAGE_OPEN,
            PipelineState.STYLING,
            PipelineState.AWAITING_DONE,
            PipelineState.EXPORTING,
            PipelineState.PAGE_CLOSED,
            PipelineState.BROWSER_CLOSING,
            PipelineState.SERVER_CLOSING,
            PipelineState.DONE,
        ]
        assert pipeline.state is PipelineState.DONE

    def test_server_released_after_run(self, fake_pw, make_config):
        PosterPipeline(make_config(scheme="mta")).run()

        assert _port_is_closed(fake_pw.visited()[0])

    def test_browser_closed_before_server(self, fake_pw, make_config):
        pipeline = PosterPipeline(make_config(scheme="mta"))
        pipeline.run()

        closing = [s for s in pipeline.transitions if s.value.endswith("_closing")]
        assert closing == [PipelineState.BROWSER_CLOSING, PipelineState.SERVER_CLOSING]

    def test_browser_close_error_is_tolerated(self, fake_pw, make_config):
        fake_pw.browser.close.side_effect = PlaywrightError("Browser has been closed")

        report = PosterPipeline(make_config(scheme="mta")).run()

        assert report.ok

    def test_missing_chromium(self, fake_pw, make_config):
        fake_pw.pw.chromium.launch.side_effect = PlaywrightError(
            "Executable doesn't exist at /root/.cache/ms-playwright/chromium-1091/chrome-linux/chrome"
        )
        pipeline = PosterPipeline(make_config())

        with pytest.raises(BrowserNotFoundError, match="playwright install chromium"):
            pipeline.run()
        assert pipeline.transitions[-1] is PipelineState.SERVER_CLOSING

    def test_other_launch_failure(self, fake_pw, make_config):
        fake_pw.pw.chromium.launch.side_effect = PlaywrightError("Target crashed")

        with pytest.raises(PosterkitError, match="Failed to launch Chromium"):
            PosterPipeline(make_config()).run()


class TestSoftTimeout:

    def _stall(self, fake_pw):
        def hook(index, page):
            page.wait_for_function.side_effect = PlaywrightTimeoutError("Timeout 1000ms exceeded.")
        fake_pw.page_hook = hook

    def test_warn_exports_anyway(self, fake_pw, make_config, tmp_path):
        self._stall(fake_pw)
        config = make_config(scheme="earth", out=tmp_path / "stalled.pdf", wait=WaitPolicy(1))

        pipeline = PosterPipeline(config)
        report = pipeline.run()

        assert report.ok
        assert report.timed_out == ["earth"]
        assert report.written == [tmp_path / "stalled.pdf"]
        assert PipelineState.EXPORTING in pipeline.transitions

    def test_run_job_reports_timeout(self, fake_pw, make_config, tmp_path):
        self._stall(fake_pw)
        pipeline = PosterPipeline(make_config(wait=WaitPolicy(1)))

        completion = pipeline.run_job(fake_pw.browser, "http://x/index.html", PosterJob("mta", tmp_path / "p.pdf"))

        assert completion is Completion.TIMED_OUT

    def test_fail_policy_aborts(self, fake_pw, make_config, tmp_path):
        self._stall(fake_pw)
        config = make_config(
            scheme="earth", out=tmp_path / "stalled.pdf",
            wait=WaitPolicy(1, TimeoutAction.FAIL),
        )

        with pytest.raises(JobFailedError, match="did not report 'Done.' within 1s"):
            PosterPipeline(config).run()
        assert not (tmp_path / "stalled.pdf").exists()
        fake_pw.pages[0].close.assert_called_once()


class TestBatchPolicy:

    def _break_second_page(self, fake_pw):
        def hook(index, page):
            if index == 1:
                page.goto.side_effect = PlaywrightError("net::ERR_ABORTED")
        fake_pw.page_hook = hook

    def test_abort_stops_at_first_failure(self, fake_pw, make_config):
        self._break_second_page(fake_pw)
        pipeline = PosterPipeline(make_config())

        with pytest.raises(JobFailedError) as exc_info:
            pipeline.run()

        assert exc_info.value.scheme == "ocean"
        assert isinstance(exc_info.value.__cause__, NavigationError)
        assert len(fake_pw.pages) == 2
        fake_pw.browser.close.assert_called_once()
        assert _port_is_closed(fake_pw.visited()[0])

    def test_continue_renders_the_rest(self, fake_pw, make_config, tmp_path):
        self._break_second_page(fake_pw)

        report = PosterPipeline(make_config(on_error=BatchPolicy.CONTINUE)).run()

        assert not report.ok
        assert [scheme for scheme, _ in report.failed] == ["ocean"]
        assert "ERR_ABORTED" in report.failed[0][1]
        assert [p.name for p in report.written] == [
            "poster_a3_mta.pdf", "poster_a3_sunset.pdf", "poster_a3_earth.pdf",
        ]
        assert len(fake_pw.pages) == 4
        for page in fake_pw.pages:
            page.close.assert_called_once()

    def test_export_failure_is_a_job_failure(self, fake_pw, make_config):
        def hook(index, page):
            page.pdf.side_effect = PlaywrightError("Printing failed")
        fake_pw.page_hook = hook

        with pytest.raises(JobFailedError, match="Printing failed"):
            PosterPipeline(make_config(scheme="mta")).run()

    def test_dead_page_keeps_the_export_error(self, fake_pw, make_config, tmp_path):
        def hook(index, page):
            page.pdf.side_effect = OSError("No space left on device")
            page.close.side_effect = PlaywrightError("Target page, context or browser has been closed")
        fake_pw.page_hook = hook
        pipeline = PosterPipeline(make_config())

        with pytest.raises(ExportError, match="No space left"):
            pipeline.run_job(fake_pw.browser, "http://x/index.html", PosterJob("mta", tmp_path / "p.pdf"))
        assert pipeline.transitions[-1] is PipelineState.PAGE_CLOSED

    def test_dead_page_is_reported_as_the_job_cause(self, fake_pw, make_config):
        def hook(index, page):
            page.goto.side_effect = PlaywrightError("net::ERR_ABORTED")
            page.close.side_effect = PlaywrightError("Target page, context or browser has been closed")
        fake_pw.page_hook = hook

        with pytest.raises(JobFailedError) as exc_info:
            PosterPipeline(make_config(scheme="mta")).run()

        assert isinstance(exc_info.value.__cause__, NavigationError)
        assert "ERR_ABORTED" in str(exc_info.value)
