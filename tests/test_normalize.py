"""Tests for attempt classification and record normalization."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mailreport.core.models import AttemptStatus, FinalStatus, Step
from mailreport.normalize import classify, flatten_steps, normalize_test, normalize_tests
from tests.factories import make_attempt, make_attempts, make_logical_test

statuses = st.sampled_from([s.value for s in AttemptStatus])


class TestClassify:
    """Test suite for the classification rules."""

    def test_single_pass_is_passed_and_not_flaky(self):
        """Given one passing attempt, the test passed."""
        assert classify(make_attempts("passed")) == (FinalStatus.PASSED, False)

    def test_pass_after_failure_is_flaky(self):
        """Given failed then passed, the test is flaky."""
        assert classify(make_attempts("failed", "passed")) == (FinalStatus.FLAKY, True)

    def test_pass_after_timeout_is_flaky(self):
        """Given a timed-out attempt then a pass, the test is flaky."""
        assert classify(make_attempts("timedOut", "passed")) == (FinalStatus.FLAKY, True)

    def test_repeated_clean_passes_are_not_flaky(self):
        """Given only passing attempts, retries alone do not make a test flaky."""
        assert classify(make_attempts("passed", "passed")) == (FinalStatus.PASSED, False)

    def test_timed_out_last_attempt_counts_as_failed(self):
        """Given a final timeout, the final status is failed."""
        assert classify(make_attempts("passed", "timedOut")) == (FinalStatus.FAILED, False)

    def test_skipped_last_attempt_wins(self):
        """Given a final skip, the test is skipped even after failures."""
        assert classify(make_attempts("failed", "skipped")) == (FinalStatus.SKIPPED, False)

    def test_interrupted_last_attempt(self):
        assert classify(make_attempts("interrupted")) == (FinalStatus.INTERRUPTED, False)

    def test_all_failures_is_failed(self):
        assert classify(make_attempts("failed", "failed", "failed")) == (FinalStatus.FAILED, False)

    def test_no_attempts_raises(self):
        """Given no attempts, classification is undefined."""
        with pytest.raises(ValueError, match="without attempts"):
            classify([])

    @given(st.lists(statuses, max_size=4))
    def test_flaky_iff_passed_after_non_pass(self, earlier: list[str]):
        """Property: a final pass is flaky exactly when some earlier attempt did not pass."""
        # Given
        attempts = make_attempts(*earlier, "passed")

        # When
        status, is_flaky = classify(attempts)

        # Then
        expected_flaky = any(s != "passed" for s in earlier)
        assert is_flaky is expected_flaky
        assert status is (FinalStatus.FLAKY if expected_flaky else FinalStatus.PASSED)

    @given(st.lists(statuses, min_size=1, max_size=5))
    def test_flaky_flag_matches_status(self, sequence: list[str]):
        """Property: the flaky flag is set exactly for the flaky status."""
        status, is_flaky = classify(make_attempts(*sequence))
        assert is_flaky is (status is FinalStatus.FLAKY)


class TestFlattenSteps:
    """Test suite for step tree flattening."""

    def test_flatten_nested_steps_depth_first(self):
        """Given nested steps, children follow their parent with depth + 1."""
        # Given
        steps = [
            Step(title="outer", duration_ms=30, steps=[Step(title="inner", error="nope")]),
            Step(title="second"),
        ]

        # When
        flat = flatten_steps(steps)

        # Then
        assert [(s.title, s.depth) for s in flat] == [("outer", 0), ("inner", 1), ("second", 0)]
        assert flat[1].error == "nope"
        assert flat[0].duration_ms == 30

    def test_flatten_empty(self):
        assert flatten_steps([]) == []


class TestNormalizeTest:
    """Test suite for normalize_test."""

    def test_flaky_record_uses_last_attempt(self):
        """Given failed then passed, the record is flaky with one retry."""
        # Given
        test = make_logical_test(
            attempts=[
                make_attempt("failed", duration_ms=1200, retry=0, error_message="boom"),
                make_attempt("passed", duration_ms=800, retry=1),
            ]
        )

        # When
        record = normalize_test(test)

        # Then
        assert record.status is FinalStatus.FLAKY
        assert record.is_flaky is True
        assert record.retries == 1
        assert record.duration_ms == 800
        assert record.errors == []
        assert record.raw_status is AttemptStatus.PASSED

    @given(st.integers(min_value=2, max_value=6))
    def test_retries_is_attempts_minus_one(self, n: int):
        """Property: N attempts ending in a pass after a failure give retries N - 1."""
        test = make_logical_test(attempts=make_attempts(*(["failed"] * (n - 1)), "passed"))
        record = normalize_test(test)
        assert record.retries == n - 1
        assert record.status is FinalStatus.FLAKY

    def test_timed_out_keeps_raw_status_for_display(self):
        """Given a final timeout, the record fails but displays as timedOut."""
        # When
        record = normalize_test(make_logical_test(attempts=make_attempts("timedOut")))

        # Then
        assert record.status is FinalStatus.FAILED
        assert record.raw_status is AttemptStatus.TIMED_OUT
        assert record.display_status == "timedOut"

    def test_identity_and_suite_name(self):
        """Given no test id, the record id falls back to file::title."""
        record = normalize_test(
            make_logical_test(title="t", file="a.spec.ts", suite_path=["a.spec.ts", "Login"])
        )
        assert record.test_id == "a.spec.ts::t"
        assert record.suite_name == "a.spec.ts › Login"

    def test_unexecuted_test_yields_none(self):
        """Given a test that never ran, there is nothing to normalize."""
        assert normalize_test(make_logical_test(attempts=[])) is None

    def test_normalize_does_not_mutate_input(self):
        """Normalization copies attempt data instead of sharing lists."""
        # Given
        test = make_logical_test(attempts=[make_attempt("failed", error_message="boom")])

        # When
        record = normalize_test(test)
        record.errors.clear()

        # Then
        assert len(test.attempts[0].errors) == 1

    def test_normalize_tests_skips_unexecuted(self):
        tests = [
            make_logical_test(title="ran"),
            make_logical_test(title="skipped by runner", attempts=[]),
        ]
        assert [r.title for r in normalize_tests(tests)] == ["ran"]
