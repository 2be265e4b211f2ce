"""Abstract base class for result sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from mailreport.core.models import LogicalTest, RunConfig


class ResultSource(ABC):
    """A producer of logical tests for one run.

    Every implementation yields the same shape: one ``LogicalTest`` per
    declared test, with its attempts ordered original run first. Tests that
    never ran are included with no attempts.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return a short name for the kind of source."""

    @abstractmethod
    def logical_tests(self) -> list[LogicalTest]:
        """Return the declared tests of the run, in report order."""

    @property
    def declared_count(self) -> int:
        """Number of tests declared for the run."""
        return len(self.logical_tests())

    @property
    def start_time(self) -> datetime | None:
        """When the run started, if the source knows."""
        return None

    @property
    def duration_ms(self) -> int | None:
        """Wall-clock duration of the run, if the source knows."""
        return None

    @property
    def config(self) -> RunConfig:
        """Runner configuration for the run."""
        return RunConfig()
