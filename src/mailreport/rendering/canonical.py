"""Canonical JSON document (``detailed-test-report.json``)."""

from __future__ import annotations

import json
from pathlib import Path

from mailreport.core.exceptions import MalformedInput
from mailreport.core.models import DetailedReport


def render_canonical(report: DetailedReport, indent: int = 2) -> str:
    """Serialize a report to the canonical JSON document.

    Args:
        report: Report to serialize.
        indent: JSON indentation level.

    Returns:
        JSON string representation.
    """
    return json.dumps(report.to_dict(), indent=indent, ensure_ascii=False)


def parse_canonical(text: str, source: Path | str = "<memory>") -> DetailedReport:
    """Parse a canonical JSON document back into a report.

    Raises:
        MalformedInput: If the text is not a canonical report document.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInput(source, f"invalid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("summary"), dict):
        raise MalformedInput(source, "missing summary object")
    if not isinstance(data.get("suites", []), list):
        raise MalformedInput(source, "suites is not a list")

    try:
        return DetailedReport.from_dict(data)
    except (AttributeError, TypeError, ValueError) as e:
        raise MalformedInput(source, f"unexpected structure: {e}") from e


def write_detailed_report(report: DetailedReport, path: Path) -> Path:
    """Write the canonical document, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_canonical(report), encoding="utf-8")
    return path


def read_detailed_report(path: Path) -> DetailedReport:
    """Read a canonical document written by ``write_detailed_report``."""
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedInput(path, f"not UTF-8 text: {e}") from e
    return parse_canonical(text, path)
