"""Degraded report model built straight from a raw Playwright JSON document.

Used when the canonical document was never produced. The same
classification and folding rules apply, but only per-top-level-suite
counters survive: no records, no retry or flaky detail, no not-run count.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from mailreport.aggregation import fold_record, summarize
from mailreport.core.exceptions import MalformedInput
from mailreport.core.models import (
    Capability,
    DetailedReport,
    RunConfig,
    SuiteResult,
    parse_timestamp,
)
from mailreport.normalize import normalize_tests
from mailreport.sources.parsing import as_ms
from mailreport.sources.static import flatten_suites


def build_degraded_report(
    data: dict[str, Any],
    source: Path | str = "<memory>",
    now: datetime | None = None,
) -> DetailedReport:
    """Compute per-suite pass/fail counts from a raw hierarchical document.

    Args:
        data: Parsed Playwright JSON report.
        source: Where the document came from, for error messages.
        now: Fallback start time when the document has no stats.

    Raises:
        MalformedInput: If the document does not have the expected shape.
    """
    try:
        suites = [_coarse_suite(suite) for suite in data["suites"]]
        stats = data.get("stats") or {}
        config = RunConfig.from_dict(data.get("config"))
    except KeyError as e:
        raise MalformedInput(source, f"missing field {e}") from e
    except (AttributeError, TypeError) as e:
        raise MalformedInput(source, f"unexpected structure: {e}") from e

    executed = sum(s.total for s in suites)
    start_time = parse_timestamp(stats.get("startTime")) or now or datetime.now(UTC)
    summary = summarize(
        suites,
        start_time=start_time,
        total_tests=executed,
        executed=executed,
        duration_ms=as_ms(stats["duration"]) if "duration" in stats else None,
    )
    return DetailedReport(
        summary=summary,
        suites=suites,
        config=config,
        capabilities=Capability.DEGRADED,
    )


def _coarse_suite(suite: dict[str, Any]) -> SuiteResult:
    """Fold every test under a top-level suite, then drop the detail."""
    result = SuiteResult(
        suite_name=suite.get("title") or "Unnamed Suite",
        file=suite.get("file") or "",
    )
    for record in normalize_tests(flatten_suites([suite])):
        fold_record(result, record)

    result.tests = []
    result.flaky = 0
    return result
