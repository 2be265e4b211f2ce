"""Pytest configuration and fixtures."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from mailreport.config import Settings, get_settings
from mailreport.logging import configure_logging

if TYPE_CHECKING:
    from collections.abc import Generator

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Settings are cached per process; start every test from a clean cache."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def quiet_logging() -> None:
    configure_logging(log_level="WARNING")


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def results_file(tmp_path: Path) -> Path:
    """A copy of the sample Playwright JSON report in a temp dir."""
    target = tmp_path / "test-results.json"
    shutil.copy(FIXTURES_DIR / "playwright-results.json", target)
    return target


@pytest.fixture
def events_file(tmp_path: Path) -> Path:
    target = tmp_path / "events.jsonl"
    shutil.copy(FIXTURES_DIR / "run-events.jsonl", target)
    return target


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every artifact into a temp dir, with no real waiting."""
    return Settings(
        _env_file=None,
        results_path=tmp_path / "test-results.json",
        detailed_report_path=tmp_path / "detailed-test-report.json",
        html_report_path=tmp_path / "playwright-report" / "index.html",
        results_wait_attempts=2,
        detailed_wait_attempts=2,
        wait_interval_seconds=0.01,
        email_user="qa-bot@example.com",
        email_recipients="dev@example.com, lead@example.com",
        report_title="Solution Builder Test Report",
    )
