"""
Static file server for the visualization page.

Serves a directory over loopback HTTP so the page can fetch its scripts
and data with real URLs. Uses Python stdlib http.server - no additional
dependencies required.
"""

import threading
from contextlib import contextmanager
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Iterator, Optional, Tuple
from urllib.parse import unquote, urlparse

from .exceptions import ConfigError, PortUnavailableError
from .logging_config import get_logger

logger = get_logger("static_server")

DEFAULT_START_PORT = 5173
DEFAULT_HOST = "127.0.0.1"
INDEX_DOCUMENT = "index.html"
FALLBACK_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".js": "text/javascript; charset=utf-8",
    ".mjs": "text/javascript; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".geojson": "application/geo+json; charset=utf-8",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".txt": "text/plain; charset=utf-8",
}


def content_type_for(path: Path) -> str:
    """Content-Type for a file, by lowercase extension."""
    return CONTENT_TYPES.get(Path(path).suffix.lower(), FALLBACK_CONTENT_TYPE)


class StaticHTTPServer(ThreadingHTTPServer):
    """ThreadingHTTPServer that knows which directory it serves."""

    daemon_threads = True

    def __init__(self, server_address: Tuple[str, int], root_dir: Path):
        self.root_dir = Path(root_dir).resolve()
        super().__init__(server_address, StaticFileHandler)


class StaticFileHandler(BaseHTTPRequestHandler):
    """GET/HEAD handler resolving URL paths against the server's root_dir."""

    server: StaticHTTPServer

    def resolve_path(self, raw_path: str) -> Optional[Path]:
        """Map a request path to a file under root, or None for 404."""
        try:
            pathname = unquote(urlparse(raw_path).path, errors="strict")
        except (UnicodeDecodeError, ValueError):
            return None

        if pathname.endswith("/"):
            pathname += INDEX_DOCUMENT

        root = self.server.root_dir
        try:
            candidate = (root / pathname.lstrip("/")).resolve()
        except (OSError, ValueError):
            return None

        # Reject anything that escapes the served directory (../ etc.)
        if candidate != root and root not in candidate.parents:
            return None

        if candidate.is_dir():
            candidate = candidate / INDEX_DOCUMENT

        if not candidate.is_file():
            return None
        return candidate

    def do_GET(self) -> None:
        """Handle GET requests."""
        self._serve(include_body=True)

    def do_HEAD(self) -> None:
        """Handle HEAD requests."""
        self._serve(include_body=False)

    def _serve(self, include_body: bool) -> None:
        path = self.resolve_path(self.path)
        if path is None:
            self._send_not_found(include_body)
            return

        try:
            body = path.read_bytes()
        except OSError:
            self._send_not_found(include_body)
            return

        self.send_response(200)
        self.send_header("Content-Type", content_type_for(path))
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-cache")
        self.end_headers()
        if include_body:
            self.wfile.write(body)

    def _send_not_found(self, include_body: bool) -> None:
        body = b"Not found"
        self.send_response(404)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if include_body:
            self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        """Route access logs through the posterkit logger."""
        # Successful asset fetches are noise at INFO; keep them for --verbose
        if len(args) >= 2 and str(args[1]).startswith("2"):
            logger.debug("[static] " + format, *args)
        else:
            logger.info("[static] " + format, *args)


def bind_server(
    root: Path,
    port: Optional[int] = None,
    host: str = DEFAULT_HOST,
    start_port: int = DEFAULT_START_PORT,
    max_attempts: int = 100,
) -> StaticHTTPServer:
    """Create a bound (not yet serving) StaticHTTPServer.

    Args:
        root: Directory to serve
        port: Explicit port; bound exactly once when given
        host: Interface to bind (loopback by default)
        start_port: First port tried when probing
        max_attempts: Number of ascending ports tried when probing

    Raises:
        PortUnavailableError: The explicit port, or every probed port, is taken
    """
    if port is not None:
        try:
            port = int(port)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid port '{port}'") from None
        try:
            return StaticHTTPServer((host, port), root)
        except OSError as e:
            raise PortUnavailableError(port, str(e)) from e

    last_error: Optional[OSError] = None
    for candidate in range(start_port, start_port + max_attempts):
        try:
            server = StaticHTTPServer((host, candidate), root)
        except OSError as e:
            logger.debug("Port %d unavailable (%s), trying next", candidate, e)
            last_error = e
            continue
        return server

    raise PortUnavailableError(
        start_port,
        f"no free port in range {start_port}-{start_port + max_attempts - 1} ({last_error})",
    )


class StaticServer:
    """Handle for a static server running on a background thread.

    Usable as a context manager; shutdown() releases the port and is safe
    to call more than once.
    """

    def __init__(self, httpd: StaticHTTPServer):
        self._httpd = httpd
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    @property
    def root(self) -> Path:
        return self._httpd.root_dir

    @property
    def host(self) -> str:
        return self._httpd.server_address[0]

    @property
    def port(self) -> int:
        return self._httpd.server_address[1]

    @property
    def url(self) -> str:
        host = "localhost" if self.host in ("0.0.0.0", "") else self.host
        return f"http://{host}:{self.port}"

    def url_for(self, path: str) -> str:
        return f"{self.url}/{path.lstrip('/')}"

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "StaticServer":
        if self._closed:
            raise RuntimeError("Server has already been shut down")
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._httpd.serve_forever,
                name=f"posterkit-static-{self.port}",
                daemon=True,
            )
            self._thread.start()
            logger.info("Serving %s at %s", self.root, self.url)
        return self

    def serve_forever(self) -> None:
        """Serve on the calling thread until shutdown() or KeyboardInterrupt."""
        logger.info("Serving %s at %s", self.root, self.url)
        try:
            self._httpd.serve_forever()
        finally:
            self._httpd.server_close()
            self._closed = True

    def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._thread is not None:
            self._httpd.shutdown()
            self._thread.join(timeout=5)
        self._httpd.server_close()
        logger.info("Static server on port %d stopped", self.port)

    def __enter__(self) -> "StaticServer":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()


@contextmanager
def serve(
    root: Path,
    port: Optional[int] = None,
    start_port: int = DEFAULT_START_PORT,
) -> Iterator[StaticServer]:
    """Start a static server for root and shut it down on exit."""
    server = StaticServer(bind_server(root, port=port, start_port=start_port))
    with server:
        yield server
