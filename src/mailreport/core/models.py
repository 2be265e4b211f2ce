"""Data model for test-run results.

The model follows the life of one run through the pipeline:

- ``RawAttempt``: one execution of a test, as reported by the runner.
- ``LogicalTest``: one declared test with all of its attempts.
- ``NormalizedRecord``: the flattened, classified outcome of a ``LogicalTest``.
- ``SuiteResult``: an aggregation bucket of records with running counters.
- ``RunSummary``: run-wide rollup computed once all buckets are final.
- ``DetailedReport``: summary + suites + run config, the canonical document.

Serialization uses the camelCase keys of the canonical
``detailed-test-report.json`` document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum, Flag
from typing import Any

SUITE_PATH_SEPARATOR = " › "


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp, accepting the ``Z`` suffix."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AttemptStatus(Enum):
    """Raw status of a single execution attempt."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    TIMED_OUT = "timedOut"
    INTERRUPTED = "interrupted"


class FinalStatus(Enum):
    """Classified outcome of a logical test."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    FLAKY = "flaky"
    INTERRUPTED = "interrupted"


class Capability(Flag):
    """Which parts of the data model a report actually carries."""

    DEGRADED = 0
    RECORDS = 1  # per-test records with errors, steps and logs
    RETRIES = 2  # retry counts and flaky classification
    NOT_RUN = 4  # declared-vs-executed bookkeeping
    CANONICAL = RECORDS | RETRIES | NOT_RUN


@dataclass
class ErrorLocation:
    """Source location of an error."""

    file: str
    line: int
    column: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.file, "line": self.line, "column": self.column}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ErrorLocation:
        return cls(
            file=data.get("file", ""),
            line=data.get("line", 0),
            column=data.get("column", 0),
        )


@dataclass
class ErrorInfo:
    """An error raised during a test attempt."""

    message: str
    stack: str | None = None
    location: ErrorLocation | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"message": self.message}
        if self.stack:
            data["stack"] = self.stack
        if self.location:
            data["location"] = self.location.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ErrorInfo:
        location = data.get("location")
        return cls(
            message=data.get("message") or "",
            stack=data.get("stack") or None,
            location=ErrorLocation.from_dict(location) if location else None,
        )


@dataclass
class Attachment:
    """An artifact captured during a test attempt (screenshot, trace, video...)."""

    name: str
    content_type: str
    path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "contentType": self.content_type}
        if self.path:
            data["path"] = self.path
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Attachment:
        return cls(
            name=data.get("name", ""),
            content_type=data.get("contentType", ""),
            path=data.get("path"),
        )


@dataclass
class Step:
    """An execution step; steps nest arbitrarily deep."""

    title: str
    category: str = ""
    duration_ms: int = 0
    error: str | None = None
    steps: list[Step] = field(default_factory=list)


@dataclass
class FlatStep:
    """A step in the flattened, depth-annotated projection of a step tree."""

    title: str
    category: str
    duration_ms: int
    depth: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "category": self.category,
            "duration": self.duration_ms,
            "depth": self.depth,
        }
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlatStep:
        return cls(
            title=data.get("title", ""),
            category=data.get("category", ""),
            duration_ms=data.get("duration", 0),
            depth=data.get("depth", 0),
            error=data.get("error"),
        )


@dataclass
class RawAttempt:
    """One execution attempt of one test (attempt 0 is the original run)."""

    status: AttemptStatus
    duration_ms: int = 0
    retry: int = 0
    errors: list[ErrorInfo] = field(default_factory=list)
    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)
    steps: list[Step] = field(default_factory=list)


@dataclass
class LogicalTest:
    """A test as declared in source, with every attempt made at it."""

    title: str
    file: str
    test_id: str | None = None
    suite_path: list[str] = field(default_factory=list)
    attempts: list[RawAttempt] = field(default_factory=list)

    @property
    def identity(self) -> str:
        """Stable identity: the runner's test id, else ``file::title``."""
        if self.test_id:
            return self.test_id
        return f"{self.file}::{self.title}"

    @property
    def suite_name(self) -> str:
        """Suite path joined into a display string."""
        return SUITE_PATH_SEPARATOR.join(part for part in self.suite_path if part)

    @property
    def executed(self) -> bool:
        return bool(self.attempts)


@dataclass
class NormalizedRecord:
    """The canonical flattened outcome of one logical test."""

    test_id: str
    title: str
    file: str
    suite_name: str
    status: FinalStatus
    raw_status: AttemptStatus
    duration_ms: int = 0
    retries: int = 0
    is_flaky: bool = False
    errors: list[ErrorInfo] = field(default_factory=list)
    steps: list[FlatStep] = field(default_factory=list)
    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)

    @property
    def display_status(self) -> str:
        """Status used for icons and badges; keeps ``timedOut`` visible."""
        if self.status is FinalStatus.FAILED and self.raw_status is AttemptStatus.TIMED_OUT:
            return AttemptStatus.TIMED_OUT.value
        return self.status.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "testId": self.test_id,
            "title": self.title,
            "file": self.file,
            "suiteName": self.suite_name,
            "status": self.status.value,
            "rawStatus": self.raw_status.value,
            "duration": self.duration_ms,
            "retries": self.retries,
            "isFlaky": self.is_flaky,
            "errors": [e.to_dict() for e in self.errors],
            "steps": [s.to_dict() for s in self.steps],
            "stdout": list(self.stdout),
            "stderr": list(self.stderr),
            "attachments": [a.to_dict() for a in self.attachments],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NormalizedRecord:
        status, raw_status = _statuses_from_dict(data)
        return cls(
            test_id=data.get("testId", ""),
            title=data.get("title", ""),
            file=data.get("file", ""),
            suite_name=data.get("suiteName", ""),
            status=status,
            raw_status=raw_status,
            duration_ms=data.get("duration", 0),
            retries=data.get("retries", 0),
            is_flaky=data.get("isFlaky", status is FinalStatus.FLAKY),
            errors=[ErrorInfo.from_dict(e) for e in data.get("errors", [])],
            steps=[FlatStep.from_dict(s) for s in data.get("steps", [])],
            stdout=list(data.get("stdout", [])),
            stderr=list(data.get("stderr", [])),
            attachments=[Attachment.from_dict(a) for a in data.get("attachments", [])],
        )


def _statuses_from_dict(data: dict[str, Any]) -> tuple[FinalStatus, AttemptStatus]:
    """Recover (final, raw) statuses from a serialized record.

    Older documents carry only ``status``, which may be ``timedOut``.
    """
    status_value = data.get("status", FinalStatus.FAILED.value)
    raw_value = data.get("rawStatus")

    if status_value == AttemptStatus.TIMED_OUT.value:
        return FinalStatus.FAILED, AttemptStatus.TIMED_OUT

    try:
        status = FinalStatus(status_value)
    except ValueError:
        status = FinalStatus.FAILED

    if raw_value:
        try:
            return status, AttemptStatus(raw_value)
        except ValueError:
            pass
    if status is FinalStatus.FLAKY:
        return status, AttemptStatus.PASSED
    return status, AttemptStatus(status.value)


@dataclass
class SuiteResult:
    """Aggregation bucket of normalized records.

    Counters only ever grow; see ``mailreport.aggregation.fold_record``.
    """

    suite_name: str
    file: str
    tests: list[NormalizedRecord] = field(default_factory=list)
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    flaky: int = 0
    interrupted: int = 0
    total: int = 0
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "suiteName": self.suite_name,
            "file": self.file,
            "tests": [t.to_dict() for t in self.tests],
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "flaky": self.flaky,
            "interrupted": self.interrupted,
            "total": self.total,
            "duration": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SuiteResult:
        return cls(
            suite_name=data.get("suiteName", ""),
            file=data.get("file", ""),
            tests=[NormalizedRecord.from_dict(t) for t in data.get("tests", [])],
            passed=data.get("passed", 0),
            failed=data.get("failed", 0),
            skipped=data.get("skipped", 0),
            flaky=data.get("flaky", 0),
            interrupted=data.get("interrupted", 0),
            total=data.get("total", 0),
            duration_ms=data.get("duration", 0),
        )


@dataclass
class RunSummary:
    """Run-wide rollup, computed once after every suite is final."""

    status: str
    start_time: datetime
    duration_ms: int
    total_tests: int
    executed: int
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    flaky: int = 0
    interrupted: int = 0
    not_run: int = 0
    diagnostics: list[str] = field(default_factory=list)

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(milliseconds=self.duration_ms)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status,
            "startTime": format_timestamp(self.start_time),
            "duration": self.duration_ms,
            "totalTests": self.total_tests,
            "executed": self.executed,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "flaky": self.flaky,
            "interrupted": self.interrupted,
            "notRun": self.not_run,
        }
        if self.diagnostics:
            data["diagnostics"] = list(self.diagnostics)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunSummary:
        total_tests = data.get("totalTests", 0)
        return cls(
            status=data.get("status", "failed"),
            start_time=parse_timestamp(data.get("startTime")) or datetime.now(UTC),
            duration_ms=data.get("duration", 0),
            total_tests=total_tests,
            executed=data.get("executed", total_tests),
            passed=data.get("passed", 0),
            failed=data.get("failed", 0),
            skipped=data.get("skipped", 0),
            flaky=data.get("flaky", 0),
            interrupted=data.get("interrupted", 0),
            not_run=data.get("notRun", 0),
            diagnostics=list(data.get("diagnostics", [])),
        )


@dataclass
class RunConfig:
    """Runner configuration echoed into the report."""

    workers: int | None = None
    projects: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"workers": self.workers, "projects": list(self.projects)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RunConfig:
        data = data or {}
        projects = []
        for project in data.get("projects") or []:
            # Raw Playwright config lists project objects, the canonical document lists names
            name = project.get("name") if isinstance(project, dict) else project
            if name:
                projects.append(str(name))
        return cls(workers=data.get("workers"), projects=projects)


@dataclass
class DetailedReport:
    """Summary, suites and config: the canonical report document."""

    summary: RunSummary
    suites: list[SuiteResult] = field(default_factory=list)
    config: RunConfig = field(default_factory=RunConfig)
    capabilities: Capability = Capability.CANONICAL

    @property
    def is_degraded(self) -> bool:
        return Capability.RECORDS not in self.capabilities

    @property
    def records(self) -> list[NormalizedRecord]:
        return [record for suite in self.suites for record in suite.tests]

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "suites": [s.to_dict() for s in self.suites],
            "config": self.config.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DetailedReport:
        return cls(
            summary=RunSummary.from_dict(data.get("summary", {})),
            suites=[SuiteResult.from_dict(s) for s in data.get("suites", [])],
            config=RunConfig.from_dict(data.get("config")),
        )
