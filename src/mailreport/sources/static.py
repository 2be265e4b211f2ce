"""Static source: a Playwright JSON report (``test-results.json``) on disk."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from mailreport.core.exceptions import MalformedInput
from mailreport.core.models import LogicalTest, RunConfig, parse_timestamp
from mailreport.sources.base import ResultSource
from mailreport.sources.parsing import as_ms, parse_attempt

UNKNOWN_FILE = "unknown"


def load_json_document(path: Path) -> dict[str, Any]:
    """
    Read a JSON report document.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        MalformedInput: If the file is not a JSON object.
    """
    if not path.exists():
        raise FileNotFoundError(f"Report file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise MalformedInput(path, f"invalid JSON: {e}") from e
    except UnicodeDecodeError as e:
        raise MalformedInput(path, f"not UTF-8 text: {e}") from e

    if not isinstance(data, dict):
        raise MalformedInput(path, "top-level value is not an object")
    return data


def flatten_suites(
    suites: list[dict[str, Any]],
    parent_path: list[str] | None = None,
    parent_file: str | None = None,
) -> list[LogicalTest]:
    """Recursively flatten nested suites into logical tests.

    A suite contributes the tests of its own specs, then recurses into its
    child suites; the suite path accumulates on the way down and the file is
    inherited from the nearest ancestor that declares one.
    """
    tests: list[LogicalTest] = []
    parent_path = parent_path or []

    for suite in suites:
        suite_path = [*parent_path, suite.get("title", "")]
        file = suite.get("file") or parent_file

        for spec in suite.get("specs") or []:
            tests.extend(_spec_tests(spec, suite_path, file))

        tests.extend(flatten_suites(suite.get("suites") or [], suite_path, file))

    return tests


def _spec_tests(spec: dict[str, Any], suite_path: list[str], file: str | None) -> list[LogicalTest]:
    """Build one logical test per test entry of a spec (one per project)."""
    tests = []
    for test in spec.get("tests") or []:
        location = test.get("location") or {}
        results = test.get("results") or []
        tests.append(
            LogicalTest(
                title=spec.get("title") or test.get("title") or "Unknown test",
                file=file or location.get("file") or UNKNOWN_FILE,
                test_id=test.get("testId") or None,
                suite_path=list(suite_path),
                attempts=[parse_attempt(r, i) for i, r in enumerate(results)],
            )
        )
    return tests


class StaticReportSource(ResultSource):
    """Logical tests read from a serialized hierarchical Playwright report."""

    def __init__(self, data: dict[str, Any], path: Path | str = "<memory>") -> None:
        self.path = path
        self._data = data
        try:
            self._tests = flatten_suites(data["suites"])
            stats = data.get("stats") or {}
            self._start_time = parse_timestamp(stats.get("startTime"))
            self._duration = as_ms(stats["duration"]) if "duration" in stats else None
            self._config = RunConfig.from_dict(data.get("config"))
        except KeyError as e:
            raise MalformedInput(path, f"missing field {e}") from e
        except (AttributeError, TypeError) as e:
            raise MalformedInput(path, f"unexpected structure: {e}") from e

    @classmethod
    def from_path(cls, path: Path) -> StaticReportSource:
        """Load a Playwright JSON report from disk."""
        return cls(load_json_document(path), path)

    @property
    def name(self) -> str:
        return "static"

    @property
    def raw(self) -> dict[str, Any]:
        """The parsed document, for degraded rendering."""
        return self._data

    def logical_tests(self) -> list[LogicalTest]:
        return list(self._tests)

    @property
    def start_time(self) -> datetime | None:
        return self._start_time

    @property
    def duration_ms(self) -> int | None:
        return self._duration

    @property
    def config(self) -> RunConfig:
        return self._config
