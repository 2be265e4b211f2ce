"""Normalization of logical tests into classified, flat records.

Classification only looks at the attempt list of a single test, so it is a
pure function; nothing here mutates the ``LogicalTest`` it is given.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from mailreport.core.models import (
    AttemptStatus,
    FinalStatus,
    FlatStep,
    LogicalTest,
    NormalizedRecord,
    RawAttempt,
    Step,
)


def classify(attempts: list[RawAttempt]) -> tuple[FinalStatus, bool]:
    """Collapse the attempts of one test into its final status.

    Rules, first match wins:

    1. last attempt skipped -> skipped
    2. last attempt interrupted -> interrupted
    3. last attempt timed out -> failed (the raw status stays on the record)
    4. last attempt passed after an earlier non-passing attempt -> flaky
    5. otherwise the last attempt's status (passed or failed)

    Args:
        attempts: Attempts ordered by attempt number, original run first.

    Returns:
        Tuple of (final status, flaky flag).

    Raises:
        ValueError: If there are no attempts to classify.
    """
    if not attempts:
        raise ValueError("Cannot classify a test without attempts")

    last = attempts[-1].status
    if last is AttemptStatus.SKIPPED:
        return FinalStatus.SKIPPED, False
    if last is AttemptStatus.INTERRUPTED:
        return FinalStatus.INTERRUPTED, False
    if last is AttemptStatus.TIMED_OUT:
        return FinalStatus.FAILED, False
    if last is AttemptStatus.PASSED:
        retried_after_failure = len(attempts) > 1 and any(
            a.status is not AttemptStatus.PASSED for a in attempts[:-1]
        )
        if retried_after_failure:
            return FinalStatus.FLAKY, True
        return FinalStatus.PASSED, False
    return FinalStatus.FAILED, False


def flatten_steps(steps: Iterable[Step], depth: int = 0) -> list[FlatStep]:
    """Project a step tree into a depth-first list annotated with depth."""
    flat: list[FlatStep] = []
    for step in steps:
        flat.append(
            FlatStep(
                title=step.title,
                category=step.category,
                duration_ms=step.duration_ms,
                depth=depth,
                error=step.error,
            )
        )
        flat.extend(flatten_steps(step.steps, depth + 1))
    return flat


def normalize_test(test: LogicalTest) -> NormalizedRecord | None:
    """Build the normalized record of a logical test.

    Duration, errors, logs, steps and attachments come from the last
    attempt; the retry count is the number of attempts after the first.

    Returns:
        The record, or None when the test was never executed.
    """
    if not test.attempts:
        return None

    status, is_flaky = classify(test.attempts)
    last = test.attempts[-1]

    return NormalizedRecord(
        test_id=test.identity,
        title=test.title,
        file=test.file,
        suite_name=test.suite_name,
        status=status,
        raw_status=last.status,
        duration_ms=last.duration_ms,
        retries=len(test.attempts) - 1,
        is_flaky=is_flaky,
        errors=list(last.errors),
        steps=flatten_steps(last.steps),
        stdout=list(last.stdout),
        stderr=list(last.stderr),
        attachments=list(last.attachments),
    )


def normalize_tests(tests: Iterable[LogicalTest]) -> Iterator[NormalizedRecord]:
    """Normalize tests in order, skipping the ones that never ran."""
    for test in tests:
        record = normalize_test(test)
        if record is not None:
            yield record
