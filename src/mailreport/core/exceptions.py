"""Shared exceptions for the mailreport package."""

from __future__ import annotations

from pathlib import Path


class MailReportError(Exception):
    """Base class for all mailreport errors."""


class SourceUnavailable(MailReportError):
    """Raised when an input artifact never appeared within the wait budget.

    This is a reportable condition, not a crash: callers fall back to a
    lower-fidelity source or finish gracefully.
    """

    def __init__(self, path: Path, attempts: int) -> None:
        self.path = path
        self.attempts = attempts
        super().__init__(f"{path} not found after {attempts} attempts")


class MalformedInput(MailReportError):
    """Raised when an artifact exists but cannot be parsed into the expected shape."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed report {path}: {reason}")


class DeliveryFailure(MailReportError):
    """Raised when the rendered report could not be handed to the mail transport."""


class InvariantViolation(MailReportError):
    """Data-quality problem detected while aggregating results.

    Never propagated past the pipeline; logged and recorded as a diagnostic.
    """


class AggregatorFinalized(MailReportError):
    """Raised when folding into a run aggregator that was already finalized."""

    def __init__(self) -> None:
        super().__init__("Run aggregator is finalized and can no longer be modified")
