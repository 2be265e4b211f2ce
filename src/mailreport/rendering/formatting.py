"""Value formatting shared by the report renderers."""

from __future__ import annotations

import html
from datetime import datetime
from types import MappingProxyType

STATUS_ICONS: MappingProxyType[str, str] = MappingProxyType(
    {
        "passed": "✅",
        "failed": "❌",
        "skipped": "⏭️",
        "timedOut": "⏰",
        "flaky": "🔄",
        "interrupted": "⛔",
    }
)

STATUS_COLORS: MappingProxyType[str, str] = MappingProxyType(
    {
        "passed": "linear-gradient(135deg, #10b981 0%, #059669 100%)",
        "failed": "linear-gradient(135deg, #ef4444 0%, #dc2626 100%)",
        "skipped": "linear-gradient(135deg, #f59e0b 0%, #d97706 100%)",
        "timedOut": "linear-gradient(135deg, #f97316 0%, #ea580c 100%)",
        "flaky": "linear-gradient(135deg, #f59e0b 0%, #d97706 100%)",
        "interrupted": "linear-gradient(135deg, #dc2626 0%, #b91c1c 100%)",
    }
)

DEFAULT_ICON = "❔"
DEFAULT_COLOR = "linear-gradient(135deg, #6b7280 0%, #4b5563 100%)"


def escape_html(text: object) -> str:
    """Escape ``& < > " '`` so arbitrary text is inert inside markup."""
    return html.escape(str(text), quote=True)


def format_duration(duration_ms: int | float) -> str:
    """Format milliseconds as seconds with two decimals, e.g. ``12.35s``."""
    return f"{duration_ms / 1000:.2f}s"


def format_pass_rate(rate: float) -> str:
    """Format a percentage with one decimal, e.g. ``87.5%``."""
    return f"{rate:.1f}%"


def format_long_datetime(value: datetime) -> str:
    """E.g. ``Wednesday, January 15, 2025 at 10:30:00 AM UTC``."""
    return value.strftime("%A, %B %d, %Y at %I:%M:%S %p %Z").strip()


def format_short_datetime(value: datetime) -> str:
    """E.g. ``Jan 15, 2025, 10:30:00 AM``."""
    return value.strftime("%b %d, %Y, %I:%M:%S %p")


def format_subject_date(value: datetime) -> str:
    """E.g. ``01/15/2025``."""
    return value.strftime("%m/%d/%Y")


def status_icon(status: str) -> str:
    return STATUS_ICONS.get(status, DEFAULT_ICON)


def status_color(status: str) -> str:
    return STATUS_COLORS.get(status, DEFAULT_COLOR)


def status_badge(status: str) -> str:
    """Render a rounded status badge with icon and upper-cased label."""
    return (
        f'<span class="badge" style="background: {status_color(status)};">'
        f"{status_icon(status)} {escape_html(status.upper())}</span>"
    )
