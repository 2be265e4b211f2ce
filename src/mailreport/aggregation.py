"""Folding normalized records into suite buckets and run-wide statistics.

A ``RunAggregator`` has an explicit lifecycle: it is created when a run
begins, records are folded into it while the run progresses, and
``finalize`` turns it into an immutable ``DetailedReport``. Folding after
finalization is an error.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from pathlib import PurePosixPath

from mailreport.core.exceptions import AggregatorFinalized, InvariantViolation
from mailreport.core.models import (
    Capability,
    DetailedReport,
    FinalStatus,
    NormalizedRecord,
    RunConfig,
    RunSummary,
    SuiteResult,
)
from mailreport.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_FILE = "unknown"

SuiteKeyFunc = Callable[[NormalizedRecord], str]


def suite_key_by_file(record: NormalizedRecord) -> str:
    """Default suite bucket key: the record's declaring file."""
    return record.file or UNKNOWN_FILE


def default_suite_name(record: NormalizedRecord) -> str:
    """Display name for a new bucket: the suite path, else the file stem."""
    if record.suite_name:
        return record.suite_name
    name = PurePosixPath(record.file or UNKNOWN_FILE).name
    for suffix in (".spec.ts", ".spec.js", ".test.ts", ".test.js"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def fold_record(suite: SuiteResult, record: NormalizedRecord) -> None:
    """Add one record to a suite, bumping its counters exactly once.

    ``total`` and ``duration_ms`` always grow; exactly one status counter
    grows, except that a flaky record also counts as passed.
    """
    suite.tests.append(record)
    suite.total += 1
    suite.duration_ms += record.duration_ms

    if record.status is FinalStatus.PASSED:
        suite.passed += 1
    elif record.status is FinalStatus.FLAKY:
        suite.flaky += 1
        suite.passed += 1
    elif record.status is FinalStatus.FAILED:
        suite.failed += 1
    elif record.status is FinalStatus.SKIPPED:
        suite.skipped += 1
    elif record.status is FinalStatus.INTERRUPTED:
        suite.interrupted += 1


def compute_not_run(declared: int, executed: int) -> tuple[int, str | None]:
    """Return (not-run count, diagnostic) for declared vs. executed tests.

    A negative difference means the source reported executions for tests it
    never declared. The count is reported as 0 and a diagnostic is returned.
    """
    not_run = declared - executed
    if not_run < 0:
        return 0, (
            f"Executed test count ({executed}) exceeds declared test count ({declared}); "
            "not-run count reported as 0"
        )
    return not_run, None


class RunAggregator:
    """Accumulates suite buckets for one run."""

    def __init__(
        self,
        declared_count: int = 0,
        suite_key: SuiteKeyFunc = suite_key_by_file,
        suite_name: SuiteKeyFunc = default_suite_name,
    ) -> None:
        self.declared_count = declared_count
        self._suite_key = suite_key
        self._suite_name = suite_name
        self._suites: dict[str, SuiteResult] = {}
        self._executed = 0
        self._diagnostics: list[str] = []
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def executed_count(self) -> int:
        return self._executed

    @property
    def suites(self) -> list[SuiteResult]:
        """Suites in first-seen order."""
        return list(self._suites.values())

    def fold(self, record: NormalizedRecord) -> SuiteResult:
        """Fold a record into the bucket its suite key selects."""
        if self._finalized:
            raise AggregatorFinalized()

        key = self._suite_key(record)
        suite = self._suites.get(key)
        if suite is None:
            suite = SuiteResult(suite_name=self._suite_name(record), file=record.file or key)
            self._suites[key] = suite

        fold_record(suite, record)
        self._executed += 1
        return suite

    def fold_all(self, records: Iterable[NormalizedRecord]) -> None:
        for record in records:
            self.fold(record)

    def report_violation(self, violation: InvariantViolation, **context) -> None:
        """Record a data-quality problem without stopping the run."""
        logger.error("invariant_violation", message=str(violation), **context)
        self._diagnostics.append(str(violation))

    def finalize(
        self,
        start_time: datetime | None = None,
        duration_ms: int | None = None,
        config: RunConfig | None = None,
        capabilities: Capability = Capability.CANONICAL,
    ) -> DetailedReport:
        """Close the run and compute its summary.

        Args:
            start_time: When the run started (defaults to now).
            duration_ms: Wall-clock duration; defaults to the summed suite durations.
            config: Runner configuration to echo into the report.
            capabilities: Which parts of the model the report carries.

        Returns:
            The finished report. The aggregator accepts no more records.
        """
        if self._finalized:
            raise AggregatorFinalized()
        self._finalized = True

        suites = self.suites
        not_run, diagnostic = compute_not_run(self.declared_count, self._executed)
        if diagnostic:
            self.report_violation(
                InvariantViolation(diagnostic),
                declared=self.declared_count,
                executed=self._executed,
            )

        summary = summarize(
            suites,
            start_time=start_time or datetime.now(UTC),
            duration_ms=duration_ms,
            total_tests=self.declared_count,
            executed=self._executed,
            not_run=not_run,
        )
        summary.diagnostics = list(self._diagnostics)

        logger.info(
            "run_aggregated",
            suites=len(suites),
            declared=self.declared_count,
            executed=self._executed,
            status=summary.status,
        )
        return DetailedReport(
            summary=summary,
            suites=suites,
            config=config or RunConfig(),
            capabilities=capabilities,
        )


def summarize(
    suites: list[SuiteResult],
    start_time: datetime,
    total_tests: int,
    executed: int,
    not_run: int = 0,
    duration_ms: int | None = None,
) -> RunSummary:
    """Sum suite counters into a run summary.

    The run passes iff there are no unexpected results (failed or interrupted).
    """
    passed = sum(s.passed for s in suites)
    failed = sum(s.failed for s in suites)
    skipped = sum(s.skipped for s in suites)
    flaky = sum(s.flaky for s in suites)
    interrupted = sum(s.interrupted for s in suites)

    if duration_ms is None:
        duration_ms = sum(s.duration_ms for s in suites)

    return RunSummary(
        status="failed" if failed + interrupted > 0 else "passed",
        start_time=start_time,
        duration_ms=duration_ms,
        total_tests=total_tests,
        executed=executed,
        passed=passed,
        failed=failed,
        skipped=skipped,
        flaky=flaky,
        interrupted=interrupted,
        not_run=not_run,
    )
