"""mailreport - Playwright test results summarized and delivered by mail."""

__version__ = "1.0.0"

from mailreport.core.models import (
    Capability,
    DetailedReport,
    FinalStatus,
    NormalizedRecord,
    RunSummary,
    SuiteResult,
)

__all__ = [
    "Capability",
    "DetailedReport",
    "FinalStatus",
    "NormalizedRecord",
    "RunSummary",
    "SuiteResult",
]
