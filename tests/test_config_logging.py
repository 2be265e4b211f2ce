"""Tests for settings and structured logging."""

from __future__ import annotations

import json
from io import StringIO
from pathlib import Path

import pytest
import structlog
from pydantic import ValidationError

from mailreport.config import Settings, get_settings
from mailreport.logging import MASK, configure_logging, get_logger, mask_credentials, run_context


class TestSettings:
    """Test suite for Settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        """Given no environment, defaults match the runner's artifact layout."""
        for var in ("RESULTS_PATH", "DETAILED_REPORT_PATH", "EMAIL_RECIPIENTS", "GROUPING_CHAIN"):
            monkeypatch.delenv(var, raising=False)

        settings = Settings(_env_file=None)

        assert settings.results_path == Path("test-results.json")
        assert settings.detailed_report_path == Path("detailed-test-report.json")
        assert settings.html_report_path == Path("playwright-report/index.html")
        assert settings.results_wait_attempts == 10
        assert settings.detailed_wait_attempts == 20
        assert settings.wait_interval_seconds == 0.5
        assert settings.grouping_strategies == ["display_name", "case_id", "title"]

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("EMAIL_USER", "bot@example.com")
        monkeypatch.setenv("EMAIL_RECIPIENTS", "a@example.com, b@example.com,")
        monkeypatch.setenv("SMTP_PORT", "587")

        settings = Settings(_env_file=None)

        assert settings.email_user == "bot@example.com"
        assert settings.recipients == ["a@example.com", "b@example.com"]
        assert settings.smtp_port == 587

    def test_env_file(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text("REPORT_TITLE=Nightly Regression\n")

        settings = Settings(_env_file=env_file)

        assert settings.report_title == "Nightly Regression"

    def test_wait_attempts_must_be_positive(self):
        with pytest.raises(ValidationError, match="at least 1"):
            Settings(_env_file=None, results_wait_attempts=0)

    def test_unknown_grouping_strategy_rejected(self):
        with pytest.raises(ValidationError, match="folder"):
            Settings(_env_file=None, grouping_chain="display_name,folder")

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestLogging:
    """Test suite for logging configuration."""

    def test_json_output(self):
        """Given JSON format, each event is one JSON object with context."""
        # Given
        output = StringIO()
        configure_logging(log_level="INFO", json_format=True, stream=output)
        logger = get_logger("mailreport.test")

        # When
        logger.info("report_written", path="detailed-test-report.json")

        # Then
        parsed = json.loads(output.getvalue().strip())
        assert parsed["event"] == "report_written"
        assert parsed["path"] == "detailed-test-report.json"
        assert parsed["level"] == "info"
        assert parsed["logger"] == "mailreport.test"
        assert "timestamp" in parsed

    def test_level_filtering(self):
        output = StringIO()
        configure_logging(log_level="WARNING", json_format=True, stream=output)
        logger = get_logger("mailreport.test")

        logger.info("hidden")
        logger.warning("shown")

        lines = output.getvalue().strip().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["event"] == "shown"

    def test_console_output(self):
        output = StringIO()
        configure_logging(log_level="INFO", json_format=False, stream=output)

        get_logger("mailreport.test").warning("delivery_failed", error="relay down")

        text = output.getvalue()
        assert "delivery_failed" in text
        assert "relay down" in text

    def test_processor_chain(self):
        """Given JSON format, credentials are masked before the JSON renderer runs."""
        configure_logging(log_level="INFO", json_format=True, stream=StringIO())

        processors = structlog.get_config()["processors"]

        assert processors[0] is structlog.contextvars.merge_contextvars
        assert mask_credentials in processors
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_credentials_are_masked(self):
        output = StringIO()
        configure_logging(log_level="INFO", json_format=True, stream=output)

        get_logger("mailreport.delivery").info("smtp_login", smtp_password="hunter2", password="")

        parsed = json.loads(output.getvalue())
        assert parsed["smtp_password"] == MASK
        assert parsed["password"] == ""

    def test_run_context_binds_fields(self):
        """Given a run context, events inside it carry the command and events after do not."""
        # Given
        output = StringIO()
        configure_logging(log_level="INFO", json_format=True, stream=output)
        logger = get_logger("mailreport.cli")

        # When
        with run_context(command="send"):
            logger.info("inside")
        logger.info("outside")

        # Then
        inside, outside = (json.loads(line) for line in output.getvalue().splitlines())
        assert inside["command"] == "send"
        assert "command" not in outside

    def test_exception_is_rendered(self):
        output = StringIO()
        configure_logging(log_level="INFO", json_format=True, stream=output)

        try:
            raise ValueError("bad duration")
        except ValueError:
            get_logger("mailreport.test").exception("parse_failed")

        parsed = json.loads(output.getvalue())
        assert "ValueError: bad duration" in parsed["exception"]

    def test_unknown_level_falls_back_to_info(self):
        output = StringIO()
        configure_logging(log_level="chatty", json_format=True, stream=output)
        logger = get_logger("mailreport.test")

        logger.debug("hidden")
        logger.info("shown")

        assert [json.loads(line)["event"] for line in output.getvalue().splitlines()] == ["shown"]
