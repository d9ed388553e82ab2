"""
Render settings: the RenderConfig record and how it is resolved.

Values are layered, highest priority first:

1. explicit options (CLI flags or keyword arguments)
2. POSTER_* environment variables
3. ~/.posterkit/config.yaml
4. built-in defaults

Apart from the policy enums, the timeouts and the viewport string,
nothing is validated. An angle of 720 or a res of 9 goes to the page
unchanged.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .config import (
    get_batch_on_error,
    get_browser_settings,
    get_render_defaults,
    get_server_start_port,
    get_wait_settings,
)
from .exceptions import ConfigError


# =============================================================================
# Constants
# =============================================================================

SCHEMES: Tuple[str, ...] = ("mta", "ocean", "sunset", "earth")
ALL_SCHEMES = "all"

DEFAULT_DATASET = "stations"
DEFAULT_METRIC = "l1"
DEFAULT_ANGLE = 29
DEFAULT_RES = 1
DEFAULT_SCHEME = ALL_SCHEMES
DEFAULT_OUTPUT = "poster_a3.pdf"
DEFAULT_START_PORT = 5173

# A3 at 300 DPI
DEFAULT_VIEWPORT_WIDTH = 3508
DEFAULT_VIEWPORT_HEIGHT = 4961
DEFAULT_SCALE = 1.0

DEFAULT_WAIT_TIMEOUT = 180.0  # seconds; 0 means wait forever
DEFAULT_NAVIGATION_TIMEOUT = 90.0


class TimeoutAction(str, Enum):
    """What to do when the page never reports completion."""

    WARN = "warn"
    FAIL = "fail"


class BatchPolicy(str, Enum):
    """What a failed job does to the remaining schemes of a run."""

    ABORT = "abort"
    CONTINUE = "continue"


@dataclass(frozen=True)
class Viewport:
    width: int = DEFAULT_VIEWPORT_WIDTH
    height: int = DEFAULT_VIEWPORT_HEIGHT
    scale: float = DEFAULT_SCALE

    def as_playwright(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class WaitPolicy:
    """Completion wait bound. timeout <= 0 waits indefinitely."""

    timeout: float = DEFAULT_WAIT_TIMEOUT
    on_timeout: TimeoutAction = TimeoutAction.WARN

    @property
    def unbounded(self) -> bool:
        return self.timeout <= 0


@dataclass(frozen=True)
class RenderConfig:
    """Everything one invocation needs. Built once, never mutated."""

    dataset: str = DEFAULT_DATASET
    metric: str = DEFAULT_METRIC
    angle: int = DEFAULT_ANGLE
    res: int = DEFAULT_RES
    title: bool = True
    scheme: str = DEFAULT_SCHEME
    out: Path = Path(DEFAULT_OUTPUT)
    port: Optional[int] = None
    url: Optional[str] = None
    root: Path = field(default_factory=Path.cwd)
    viewport: Viewport = Viewport()
    wait: WaitPolicy = WaitPolicy()
    on_error: BatchPolicy = BatchPolicy.ABORT
    navigation_timeout: float = DEFAULT_NAVIGATION_TIMEOUT
    apply_controls: bool = True
    headless: bool = True
    start_port: int = DEFAULT_START_PORT

    @property
    def serve_locally(self) -> bool:
        return self.url is None


# =============================================================================
# Coercion helpers
# =============================================================================


def parse_toggle(value: Any) -> Any:
    """Map on/off style strings to bool; anything else passes through."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("on", "true", "yes", "1"):
        return True
    if text in ("off", "false", "no", "0"):
        return False
    return value


def parse_viewport(value: str) -> Tuple[int, int]:
    """Parse 'WIDTHxHEIGHT' into integers."""
    try:
        width, height = str(value).lower().split("x", 1)
        return int(width), int(height)
    except ValueError:
        raise ConfigError(f"Invalid viewport '{value}', expected WIDTHxHEIGHT") from None


def _lenient(cast: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """Wrap a cast so unparseable values pass through untouched."""

    def convert(value: Any) -> Any:
        try:
            return cast(value)
        except (TypeError, ValueError):
            return value

    return convert


def _policy(enum_cls, value: Any):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigError(f"Invalid value '{value}' (expected one of: {choices})") from None


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid {name} '{value}', expected a number") from None


def _as_scale(value: Any) -> float:
    scale = _as_float(value, "scale")
    if scale < 1:
        raise ConfigError(f"Invalid scale '{value}', device scale must be 1 or higher")
    return scale


# option name -> (environment variable, coercion)
ENV_VARS: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "dataset": ("POSTER_DATASET", str),
    "metric": ("POSTER_METRIC", str),
    "angle": ("POSTER_ANGLE", _lenient(int)),
    "res": ("POSTER_RES", _lenient(int)),
    "title": ("POSTER_TITLE", parse_toggle),
    "scheme": ("POSTER_SCHEME", str),
    "out": ("POSTER_OUTPUT", str),
    "port": ("POSTER_PORT", _lenient(int)),
    "url": ("POSTER_URL", str),
    "root": ("POSTER_ROOT", str),
    "timeout": ("POSTER_TIMEOUT", _lenient(float)),
    "on_timeout": ("POSTER_ON_TIMEOUT", str),
    "on_error": ("POSTER_ON_ERROR", str),
    "viewport": ("POSTER_VIEWPORT", str),
    "scale": ("POSTER_SCALE", _lenient(float)),
}


def _pick(
    name: str,
    options: Mapping[str, Any],
    env: Mapping[str, str],
    file_value: Any,
    default: Any,
) -> Any:
    value = options.get(name)
    env_entry = ENV_VARS.get(name)
    if value is not None:
        # Command-line strings get the same coercion as their env var
        if isinstance(value, str) and not isinstance(value, Enum) and env_entry is not None:
            return env_entry[1](value)
        return value
    if env_entry is not None:
        var, cast = env_entry
        raw = env.get(var)
        if raw not in (None, ""):
            return cast(raw)
    if file_value is not None:
        return file_value
    return default


def resolve_render_config(
    options: Optional[Mapping[str, Any]] = None,
    file_config: Optional[Dict[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> RenderConfig:
    """Build a RenderConfig from options, environment and config file.

    Args:
        options: Explicit values keyed by option name; None means "not given"
        file_config: Parsed config.yaml (loaded from disk when None)
        env: Environment mapping (os.environ when None)

    Returns:
        The resolved, immutable RenderConfig

    Raises:
        ConfigError: For an unknown policy name, a malformed viewport or timeout,
            or a device scale below 1
    """
    options = dict(options or {})
    env = os.environ if env is None else env
    if file_config is None:
        from .config import load_config

        file_config = load_config()

    defaults = get_render_defaults(file_config)
    browser = get_browser_settings(file_config)
    wait = get_wait_settings(file_config)

    def pick(name: str, file_value: Any, default: Any) -> Any:
        return _pick(name, options, env, file_value, default)

    port = pick("port", defaults.get("port"), None)
    url = pick("url", defaults.get("url"), None)

    viewport_value = pick("viewport", browser.get("viewport"), None)
    if viewport_value is None:
        width, height = DEFAULT_VIEWPORT_WIDTH, DEFAULT_VIEWPORT_HEIGHT
    else:
        width, height = parse_viewport(viewport_value)
    scale = pick("scale", browser.get("scale"), DEFAULT_SCALE)

    timeout = pick("timeout", wait.get("timeout"), DEFAULT_WAIT_TIMEOUT)
    on_timeout = pick("on_timeout", wait.get("on_timeout"), TimeoutAction.WARN)
    on_error = pick("on_error", get_batch_on_error(file_config), BatchPolicy.ABORT)

    return RenderConfig(
        dataset=pick("dataset", defaults.get("dataset"), DEFAULT_DATASET),
        metric=pick("metric", defaults.get("metric"), DEFAULT_METRIC),
        angle=pick("angle", defaults.get("angle"), DEFAULT_ANGLE),
        res=pick("res", defaults.get("res"), DEFAULT_RES),
        title=parse_toggle(pick("title", defaults.get("title"), True)),
        scheme=str(pick("scheme", defaults.get("scheme"), DEFAULT_SCHEME)),
        out=Path(pick("out", defaults.get("out"), DEFAULT_OUTPUT)),
        port=port,
        url=url or None,
        root=Path(pick("root", defaults.get("root"), Path.cwd())),
        viewport=Viewport(width=width, height=height, scale=_as_scale(scale)),
        wait=WaitPolicy(
            timeout=_as_float(timeout, "timeout"),
            on_timeout=_policy(TimeoutAction, on_timeout),
        ),
        on_error=_policy(BatchPolicy, on_error),
        navigation_timeout=_as_float(
            pick("navigation_timeout", browser.get("navigation_timeout"), DEFAULT_NAVIGATION_TIMEOUT),
            "navigation_timeout",
        ),
        apply_controls=bool(pick("apply_controls", defaults.get("apply_controls"), True)),
        headless=bool(pick("headless", browser.get("headless"), True)),
        start_port=get_server_start_port(file_config, DEFAULT_START_PORT),
    )
