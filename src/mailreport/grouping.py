"""Grouping normalized records into reportable test cases.

Upstream data does not guarantee a stable, human-meaningful case key, so the
key comes from a chain of strategies; the first one that yields a non-empty
label wins. Labels that are not derived from the file path are scoped by
file, so two different files sharing a suite title never collapse into one
case.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field

from mailreport.config import DEFAULT_CASE_ID_PATTERN, DEFAULT_GROUPING_CHAIN
from mailreport.core.exceptions import InvariantViolation
from mailreport.core.models import DetailedReport, FinalStatus, NormalizedRecord, SuiteResult
from mailreport.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_CASE = "Unknown"


class GroupingStrategy(ABC):
    """One tier of the grouping-key fallback chain."""

    #: True when the label already identifies the file it came from.
    file_derived: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Name used to select the strategy in configuration."""

    @abstractmethod
    def label_for(self, record: NormalizedRecord, suite: SuiteResult) -> str | None:
        """Return the case label for a record, or None if this tier has none."""


class DisplayNameStrategy(GroupingStrategy):
    """Use the suite/display name carried on the record (or its bucket)."""

    @property
    def name(self) -> str:
        return "display_name"

    def label_for(self, record: NormalizedRecord, suite: SuiteResult) -> str | None:
        return record.suite_name or suite.suite_name or None


class CaseIdPatternStrategy(GroupingStrategy):
    """Extract a case id embedded in the file path, e.g. ``RIPA-14860``."""

    file_derived = True

    def __init__(self, pattern: str = DEFAULT_CASE_ID_PATTERN) -> None:
        self.pattern = re.compile(pattern)

    @property
    def name(self) -> str:
        return "case_id"

    def label_for(self, record: NormalizedRecord, suite: SuiteResult) -> str | None:
        match = self.pattern.search(record.file or suite.file or "")
        return match.group(0) if match else None


class TitleStrategy(GroupingStrategy):
    """Fall back to the record's own title."""

    @property
    def name(self) -> str:
        return "title"

    def label_for(self, record: NormalizedRecord, suite: SuiteResult) -> str | None:
        return record.title or None


def build_chain(
    names: Iterable[str] = DEFAULT_GROUPING_CHAIN,
    case_id_pattern: str = DEFAULT_CASE_ID_PATTERN,
) -> list[GroupingStrategy]:
    """Build a strategy chain from configured names.

    Raises:
        ValueError: If a name does not match a known strategy.
    """
    factories = {
        "display_name": DisplayNameStrategy,
        "case_id": lambda: CaseIdPatternStrategy(case_id_pattern),
        "title": TitleStrategy,
    }
    chain = []
    for name in names:
        factory = factories.get(name)
        if factory is None:
            raise ValueError(f"Unknown grouping strategy: {name}")
        chain.append(factory())
    return chain


def overall_status(failed: int, skipped: int) -> FinalStatus:
    """Case status: any failure fails the case, else any skip skips it."""
    if failed > 0:
        return FinalStatus.FAILED
    if skipped > 0:
        return FinalStatus.SKIPPED
    return FinalStatus.PASSED


@dataclass
class TestCaseGroup:
    """A reportable test case: one or more records (scenarios) sharing a key."""

    __test__ = False  # not a pytest test class

    case_id: str
    file: str | None = None
    tests: list[NormalizedRecord] = field(default_factory=list)
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    interrupted: int = 0
    total: int = 0
    duration_ms: int = 0
    display_label: str = ""

    @property
    def status(self) -> FinalStatus:
        return overall_status(self.failed, self.skipped)

    @property
    def scenario_text(self) -> str:
        text = (
            f"{self.total} scenarios ({self.passed} passed, "
            f"{self.failed} failed, {self.skipped} skipped"
        )
        if self.interrupted:
            text += f", {self.interrupted} interrupted"
        return text + ")"

    def add(self, record: NormalizedRecord) -> None:
        self.tests.append(record)
        self.total += 1
        self.duration_ms += record.duration_ms
        if record.status in (FinalStatus.PASSED, FinalStatus.FLAKY):
            self.passed += 1
        elif record.status is FinalStatus.FAILED:
            self.failed += 1
        elif record.status is FinalStatus.SKIPPED:
            self.skipped += 1
        elif record.status is FinalStatus.INTERRUPTED:
            self.interrupted += 1

    @classmethod
    def from_suite_counters(cls, suite: SuiteResult) -> TestCaseGroup:
        """Build a case from a suite that carries counters but no records."""
        return cls(
            case_id=suite.suite_name or UNKNOWN_CASE,
            file=suite.file or None,
            passed=suite.passed,
            failed=suite.failed,
            skipped=suite.skipped,
            interrupted=suite.interrupted,
            total=suite.total,
            duration_ms=suite.duration_ms,
        )


@dataclass
class GroupingResult:
    """Test cases of a report plus any data-quality findings."""

    groups: list[TestCaseGroup] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.groups)

    @property
    def passed(self) -> int:
        return sum(1 for g in self.groups if g.status is FinalStatus.PASSED)

    @property
    def failed(self) -> int:
        return sum(1 for g in self.groups if g.status is FinalStatus.FAILED)

    @property
    def skipped(self) -> int:
        return sum(1 for g in self.groups if g.status is FinalStatus.SKIPPED)

    @property
    def pass_rate(self) -> float:
        """Percentage of passed cases (0 when there are none)."""
        return self.passed / self.total * 100 if self.total else 0.0


def resolve_label(
    record: NormalizedRecord, suite: SuiteResult, chain: list[GroupingStrategy]
) -> tuple[str | None, GroupingStrategy | None]:
    """Walk the chain and return the first non-empty label and its strategy."""
    for strategy in chain:
        label = strategy.label_for(record, suite)
        if label:
            return label, strategy
    return None, None


def group_test_cases(
    report: DetailedReport, chain: list[GroupingStrategy] | None = None
) -> GroupingResult:
    """Group a report's records into test cases.

    Reports without records (degraded mode) get one case per suite, built
    from the suite counters.
    """
    if chain is None:
        chain = build_chain()

    result = GroupingResult()
    if report.is_degraded:
        result.groups = [TestCaseGroup.from_suite_counters(s) for s in report.suites]
        _assign_display_labels(result.groups)
        return result

    groups: dict[tuple[str, str], TestCaseGroup] = {}
    for suite in report.suites:
        for record in suite.tests:
            label, strategy = resolve_label(record, suite, chain)
            if label is None:
                violation = InvariantViolation(
                    f"No grouping key for test {record.test_id or record.title!r} "
                    f"in {record.file or 'unknown file'}"
                )
                logger.error("invariant_violation", message=str(violation), file=record.file)
                result.diagnostics.append(str(violation))
                label = UNKNOWN_CASE

            scope = "" if strategy is not None and strategy.file_derived else record.file
            key = (scope, label)
            group = groups.get(key)
            if group is None:
                group = TestCaseGroup(case_id=label, file=record.file or None)
                groups[key] = group
            group.add(record)

    result.groups = list(groups.values())
    _assign_display_labels(result.groups)
    return result


def _assign_display_labels(groups: list[TestCaseGroup]) -> None:
    """Disambiguate case ids shared by groups from different files."""
    counts: dict[str, int] = {}
    for group in groups:
        counts[group.case_id] = counts.get(group.case_id, 0) + 1

    for group in groups:
        if counts[group.case_id] > 1 and group.file:
            group.display_label = f"{group.case_id} ({group.file})"
        else:
            group.display_label = group.case_id
