"""Test data factories for mailreport tests.

This module provides factory functions for creating test data objects.
Use these instead of defining fixtures locally in each test file.

Usage:
    from tests.factories import make_attempt, make_logical_test, make_record

    def test_something():
        test = make_logical_test(attempts=[make_attempt("failed"), make_attempt("passed")])
        record = make_record(status="flaky", retries=1)
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from mailreport.core.models import (
    AttemptStatus,
    Capability,
    DetailedReport,
    ErrorInfo,
    FinalStatus,
    LogicalTest,
    NormalizedRecord,
    RawAttempt,
    RunConfig,
    RunSummary,
    SuiteResult,
)

START_TIME = datetime(2025, 1, 15, 10, 30, tzinfo=UTC)


def make_attempt(
    status: str = "passed",
    duration_ms: int = 100,
    retry: int = 0,
    error_message: str | None = None,
) -> RawAttempt:
    """Create RawAttempt for testing.

    Args:
        status: Raw attempt status value.
        duration_ms: Attempt duration.
        retry: Attempt number (0 is the original run).
        error_message: Adds one error with this message.
    """
    errors = [ErrorInfo(message=error_message)] if error_message else []
    return RawAttempt(
        status=AttemptStatus(status),
        duration_ms=duration_ms,
        retry=retry,
        errors=errors,
    )


def make_attempts(*statuses: str, duration_ms: int = 100) -> list[RawAttempt]:
    """Create a numbered attempt list, e.g. ``make_attempts("failed", "passed")``."""
    return [make_attempt(s, duration_ms=duration_ms, retry=i) for i, s in enumerate(statuses)]


def make_logical_test(
    title: str = "create asset",
    file: str = "tests/login.spec.ts",
    test_id: str | None = None,
    suite_path: list[str] | None = None,
    attempts: list[RawAttempt] | None = None,
) -> LogicalTest:
    """Create LogicalTest for testing. Defaults to one passing attempt."""
    return LogicalTest(
        title=title,
        file=file,
        test_id=test_id,
        suite_path=suite_path if suite_path is not None else ["Login"],
        attempts=attempts if attempts is not None else [make_attempt()],
    )


def make_record(
    title: str = "create asset",
    file: str = "tests/login.spec.ts",
    suite_name: str = "Login",
    status: str = "passed",
    raw_status: str | None = None,
    duration_ms: int = 100,
    retries: int = 0,
    test_id: str | None = None,
    **kwargs: Any,
) -> NormalizedRecord:
    """Create NormalizedRecord for testing.

    Args:
        status: Final status value.
        raw_status: Raw status of the last attempt (derived from status if omitted).
        kwargs: Any other NormalizedRecord field (errors, steps, stdout...).
    """
    final = FinalStatus(status)
    if raw_status is None:
        raw_status = "passed" if final is FinalStatus.FLAKY else status
    return NormalizedRecord(
        test_id=test_id or f"{file}::{title}",
        title=title,
        file=file,
        suite_name=suite_name,
        status=final,
        raw_status=AttemptStatus(raw_status),
        duration_ms=duration_ms,
        retries=retries,
        is_flaky=final is FinalStatus.FLAKY,
        **kwargs,
    )


def make_suite(
    suite_name: str = "Login",
    file: str = "tests/login.spec.ts",
    records: list[NormalizedRecord] | None = None,
) -> SuiteResult:
    """Create SuiteResult with records folded in."""
    from mailreport.aggregation import fold_record

    suite = SuiteResult(suite_name=suite_name, file=file)
    for record in records or []:
        fold_record(suite, record)
    return suite


def make_report(
    suites: list[SuiteResult] | None = None,
    total_tests: int | None = None,
    start_time: datetime = START_TIME,
    duration_ms: int | None = None,
    config: RunConfig | None = None,
    capabilities: Capability = Capability.CANONICAL,
) -> DetailedReport:
    """Create DetailedReport summarizing the given suites."""
    from mailreport.aggregation import summarize

    suites = suites if suites is not None else [make_suite(records=[make_record()])]
    executed = sum(s.total for s in suites)
    summary = summarize(
        suites,
        start_time=start_time,
        total_tests=executed if total_tests is None else total_tests,
        executed=executed,
        not_run=max((total_tests or executed) - executed, 0),
        duration_ms=duration_ms,
    )
    return DetailedReport(
        summary=summary,
        suites=suites,
        config=config or RunConfig(workers=2, projects=["chromium"]),
        capabilities=capabilities,
    )


def make_summary(**overrides: Any) -> RunSummary:
    """Create RunSummary with sensible defaults."""
    defaults: dict[str, Any] = {
        "status": "passed",
        "start_time": START_TIME,
        "duration_ms": 1000,
        "total_tests": 1,
        "executed": 1,
        "passed": 1,
    }
    defaults.update(overrides)
    return RunSummary(**defaults)


def make_playwright_result(status: str = "passed", duration: float = 100, **extra: Any) -> dict:
    """Raw Playwright result object."""
    return {"status": status, "duration": duration, "errors": [], "attachments": [], **extra}


def make_playwright_document(
    suites: list[dict] | None = None,
    start_time: str = "2025-01-15T10:30:00.000Z",
    duration: float = 1000,
) -> dict:
    """Raw Playwright JSON report with the given top-level suites."""
    return {
        "config": {"workers": 1, "projects": [{"name": "chromium"}]},
        "suites": suites or [],
        "stats": {"startTime": start_time, "duration": duration},
    }


def make_playwright_suite(
    title: str = "login.spec.ts",
    file: str | None = "tests/login.spec.ts",
    specs: list[dict] | None = None,
    suites: list[dict] | None = None,
) -> dict:
    """Raw Playwright suite node."""
    node: dict[str, Any] = {"title": title, "specs": specs or [], "suites": suites or []}
    if file is not None:
        node["file"] = file
    return node


def make_playwright_spec(title: str = "create asset", *results: dict, test_id: str | None = None) -> dict:
    """Raw Playwright spec with one test carrying the given results."""
    test: dict[str, Any] = {"title": title, "results": list(results)}
    if test_id:
        test["testId"] = test_id
    return {"title": title, "tests": [test]}
