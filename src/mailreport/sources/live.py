"""Live source: a listener driven by runner lifecycle notifications.

The listener mirrors the reporter hooks of a test runner:

- ``on_begin``: the full set of declared tests is known.
- ``on_test_end``: one attempt of one test finished (retries arrive as
  further calls for the same test).
- ``on_end``: the run is over.

A test is folded into the run aggregator as soon as its outcome is
conclusive: it passed, was skipped, or used its last retry. The last retry is
only known when the retry ceiling is; without one, failures stay pending.
Anything still pending at ``on_end`` is folded then, and the aggregator is
finalized.

Runs can also be replayed from a JSON-lines event stream in the shape used
by Playwright's blob reporter: ``{"method": "onTestEnd", "params": {...}}``.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from mailreport.aggregation import RunAggregator
from mailreport.core.exceptions import InvariantViolation, MalformedInput
from mailreport.core.models import (
    AttemptStatus,
    DetailedReport,
    LogicalTest,
    RawAttempt,
    RunConfig,
    parse_timestamp,
)
from mailreport.logging import get_logger
from mailreport.normalize import normalize_test
from mailreport.sources.base import ResultSource
from mailreport.sources.parsing import as_ms, parse_attempt

logger = get_logger(__name__)

_CONCLUSIVE = (AttemptStatus.PASSED, AttemptStatus.SKIPPED)


@dataclass
class TestDescriptor:
    """Identity and location of a declared test."""

    __test__ = False  # not a pytest test class

    title: str
    file: str
    test_id: str | None = None
    suite_path: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestDescriptor:
        location = data.get("location")
        if not isinstance(location, dict):
            location = {}
        return cls(
            title=data.get("title", ""),
            file=data.get("file") or location.get("file") or "unknown",
            test_id=data.get("testId") or data.get("id") or None,
            suite_path=list(data.get("suitePath") or []),
        )


class LiveRunListener(ResultSource):
    """Collects attempts as a run progresses and folds finished tests."""

    def __init__(self) -> None:
        self._tests: dict[str, LogicalTest] = {}
        self._declared: set[str] = set()
        self._folded: set[str] = set()
        self._aggregator: RunAggregator | None = None
        self._config = RunConfig()
        self._max_retries: int | None = None
        self._start_time: datetime | None = None
        self._duration: int | None = None
        self._report: DetailedReport | None = None

    @property
    def name(self) -> str:
        return "live"

    @property
    def started(self) -> bool:
        return self._aggregator is not None

    @property
    def report(self) -> DetailedReport | None:
        """The finalized report, once ``on_end`` has run."""
        return self._report

    def on_begin(
        self,
        tests: Iterable[TestDescriptor],
        config: RunConfig | None = None,
        max_retries: int | None = None,
        start_time: datetime | None = None,
    ) -> None:
        """Record every declared test and create the run aggregator.

        Args:
            tests: Every test the run will execute.
            config: Runner configuration echoed into the report.
            max_retries: Retry ceiling per test. ``None`` when unknown, in which
                case failed attempts are folded at ``on_end``.
            start_time: Run start; defaults to now.
        """
        self._start_time = start_time or datetime.now(UTC)
        self._config = config or RunConfig()
        self._max_retries = max_retries

        for descriptor in tests:
            test = self._logical_test(descriptor)
            self._declared.add(test.identity)

        self._aggregator = RunAggregator(declared_count=len(self._declared))
        logger.info("run_started", declared=len(self._declared), max_retries=max_retries)

    def on_test_end(self, descriptor: TestDescriptor, attempt: RawAttempt) -> None:
        """Record one finished attempt of a test."""
        aggregator = self._require_started()
        test = self._logical_test(descriptor)

        if test.identity in self._folded:
            aggregator.report_violation(
                InvariantViolation(
                    f"Attempt {attempt.retry} of {test.identity!r} arrived after "
                    "the test was already reported"
                ),
                test_id=test.identity,
            )
            return

        test.attempts.append(attempt)
        if attempt.status in _CONCLUSIVE or self._retries_exhausted(attempt):
            self._fold(test)

    def on_end(self, status: str | None = None, duration_ms: int | None = None) -> DetailedReport:
        """Fold pending tests and finalize the run.

        Args:
            status: Overall status reported by the runner, logged for reference.
            duration_ms: Wall-clock duration; measured from ``on_begin`` if omitted.
        """
        aggregator = self._require_started()
        for test in self._tests.values():
            if test.attempts and test.identity not in self._folded:
                self._fold(test)

        if duration_ms is None and self._start_time is not None:
            elapsed = datetime.now(UTC) - self._start_time
            duration_ms = int(elapsed.total_seconds() * 1000)
        self._duration = duration_ms

        self._report = aggregator.finalize(
            start_time=self._start_time,
            duration_ms=duration_ms,
            config=self._config,
        )
        logger.info(
            "run_finished",
            runner_status=status,
            status=self._report.summary.status,
            not_run=self._report.summary.not_run,
        )
        return self._report

    def logical_tests(self) -> list[LogicalTest]:
        return list(self._tests.values())

    @property
    def declared_count(self) -> int:
        return len(self._declared)

    @property
    def start_time(self) -> datetime | None:
        return self._start_time

    @property
    def duration_ms(self) -> int | None:
        return self._duration

    @property
    def config(self) -> RunConfig:
        return self._config

    def _require_started(self) -> RunAggregator:
        if self._aggregator is None:
            raise RuntimeError("on_begin must be called before test results are reported")
        return self._aggregator

    def _retries_exhausted(self, attempt: RawAttempt) -> bool:
        return self._max_retries is not None and attempt.retry >= self._max_retries

    def _logical_test(self, descriptor: TestDescriptor) -> LogicalTest:
        candidate = LogicalTest(
            title=descriptor.title,
            file=descriptor.file,
            test_id=descriptor.test_id,
            suite_path=list(descriptor.suite_path),
        )
        return self._tests.setdefault(candidate.identity, candidate)

    def _fold(self, test: LogicalTest) -> None:
        record = normalize_test(test)
        if record is None:
            return
        self._require_started().fold(record)
        self._folded.add(test.identity)


def replay_events(
    lines: Iterable[str],
    listener: LiveRunListener | None = None,
    source: str = "<events>",
) -> DetailedReport:
    """Drive a listener from a JSON-lines event stream.

    Undecodable lines, lines that are not JSON objects and unknown methods are
    skipped. A stream without an ``onBegin`` event declares no tests; a stream
    without ``onEnd`` is finalized when it runs out.

    Raises:
        MalformedInput: An event has the right method but a payload of the
            wrong shape.
    """
    listener = listener or LiveRunListener()

    for number, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            logger.warning("event_skipped", reason="invalid JSON", line_number=number)
            continue

        if not isinstance(event, dict):
            logger.warning("event_skipped", reason="not an object", line_number=number)
            continue
        params = event.get("params")
        if params is None:
            params = {}
        elif not isinstance(params, dict):
            logger.warning("event_skipped", reason="params not an object", line_number=number)
            continue

        try:
            report = _dispatch(listener, event.get("method"), params)
        except (AttributeError, TypeError, ValueError) as e:
            raise MalformedInput(source, f"line {number}: unexpected structure: {e}") from e
        if report is not None:
            return report

    logger.warning("event_stream_truncated", reason="no onEnd event")
    if not listener.started:
        listener.on_begin([])
    return listener.on_end(status="interrupted")


def _dispatch(listener: LiveRunListener, method: Any, params: dict[str, Any]) -> DetailedReport | None:
    if method == "onBegin":
        listener.on_begin(
            [TestDescriptor.from_dict(t) for t in params.get("tests") or []],
            config=RunConfig.from_dict(params.get("config")),
            max_retries=params.get("maxRetries"),
            start_time=parse_timestamp(params.get("startTime")),
        )
    elif method == "onTestEnd":
        if not listener.started:
            listener.on_begin([])
        result = params.get("result") or {}
        listener.on_test_end(
            TestDescriptor.from_dict(params.get("test") or {}),
            parse_attempt(result, result.get("retry", 0)),
        )
    elif method == "onEnd":
        if not listener.started:
            listener.on_begin([])
        duration = params.get("duration")
        return listener.on_end(
            status=params.get("status"),
            duration_ms=as_ms(duration) if duration is not None else None,
        )
    return None
