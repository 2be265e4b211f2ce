"""Result sources: where logical tests come from.

Usage:
    from mailreport.sources import StaticReportSource

    source = StaticReportSource.from_path(Path("test-results.json"))
    tests = source.logical_tests()
"""

from .base import ResultSource
from .live import LiveRunListener, TestDescriptor, replay_events
from .static import StaticReportSource, flatten_suites, load_json_document
from .wait import wait_for_artifact

__all__ = [
    "LiveRunListener",
    "ResultSource",
    "StaticReportSource",
    "TestDescriptor",
    "flatten_suites",
    "load_json_document",
    "replay_events",
    "wait_for_artifact",
]
