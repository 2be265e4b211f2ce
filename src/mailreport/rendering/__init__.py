"""Report renderers: canonical JSON, degraded model and HTML mail body."""

from .canonical import parse_canonical, read_detailed_report, render_canonical, write_detailed_report
from .degraded import build_degraded_report
from .html import RenderedReport, render_report

__all__ = [
    "RenderedReport",
    "build_degraded_report",
    "parse_canonical",
    "read_detailed_report",
    "render_canonical",
    "render_report",
    "write_detailed_report",
]
