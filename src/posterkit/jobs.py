"""
Poster jobs: one color scheme rendered to one PDF.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List

from .settings import ALL_SCHEMES, SCHEMES, RenderConfig


@dataclass(frozen=True)
class PosterJob:
    scheme: str
    output: Path


def output_for_scheme(out: Path, scheme: str) -> Path:
    """poster_a3.pdf + ocean -> poster_a3_ocean.pdf, in the same directory."""
    out = Path(out)
    suffix = out.suffix or ".pdf"
    return out.with_name(f"{out.stem}_{scheme}{suffix}")


def expand_jobs(config: RenderConfig) -> List[PosterJob]:
    """Expand a config into the jobs of one run.

    scheme "all" yields one job per entry of SCHEMES with the scheme name
    embedded in each filename. Any other scheme yields a single job
    writing exactly config.out.
    """
    if config.scheme == ALL_SCHEMES:
        return [PosterJob(scheme, output_for_scheme(config.out, scheme)) for scheme in SCHEMES]
    return [PosterJob(config.scheme, Path(config.out))]
