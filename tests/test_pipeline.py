"""Tests for the end-to-end report pipeline."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from mailreport.config import Settings
from mailreport.core.exceptions import DeliveryFailure, MalformedInput
from mailreport.delivery import PLAYWRIGHT_REPORT_FILENAME, MailMessage, Mailer
from mailreport.pipeline import ReportPipeline
from mailreport.rendering import read_detailed_report, write_detailed_report
from tests.factories import make_report


class RecordingMailer(Mailer):
    """Mailer that keeps messages instead of sending them."""

    def __init__(self, fail: bool = False):
        self.sent: list[MailMessage] = []
        self.fail = fail

    async def send(self, message: MailMessage) -> None:
        if self.fail:
            raise DeliveryFailure("relay down")
        self.sent.append(message)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


class TestGenerate:
    """Test suite for the generate flow."""

    @pytest.mark.asyncio
    async def test_generate_writes_report_and_sends(
        self, settings: Settings, results_file: Path, mailer: RecordingMailer
    ):
        """Given a results file, the detailed report is written and mailed."""
        # When
        outcome = await ReportPipeline(settings, mailer).generate()

        # Then
        assert outcome.detailed_path == settings.detailed_report_path
        report = read_detailed_report(settings.detailed_report_path)
        assert report.summary.not_run == 1
        assert outcome.delivered is True
        assert len(mailer.sent) == 1
        message = mailer.sent[0]
        assert message.subject == "Solution Builder Test Report - 01/15/2025"
        assert message.recipients == ["dev@example.com", "lead@example.com"]
        assert message.sender == "qa-bot@example.com"

    @pytest.mark.asyncio
    async def test_generate_without_send(
        self, settings: Settings, results_file: Path, mailer: RecordingMailer
    ):
        outcome = await ReportPipeline(settings, mailer).generate(send=False)

        assert settings.detailed_report_path.exists()
        assert outcome.delivered is False
        assert mailer.sent == []

    @pytest.mark.asyncio
    async def test_missing_results_is_graceful(self, settings: Settings, mailer: RecordingMailer):
        """Given no results file, generate skips without writing anything."""
        # When
        outcome = await ReportPipeline(settings, mailer).generate()

        # Then
        assert outcome.skipped
        assert not settings.detailed_report_path.exists()
        assert mailer.sent == []

    @pytest.mark.asyncio
    async def test_malformed_results_write_nothing(self, settings: Settings, mailer: RecordingMailer):
        """Given an unparseable results file, no partial report is written."""
        # Given
        settings.results_path.write_text("{broken")

        # When/Then
        with pytest.raises(MalformedInput):
            await ReportPipeline(settings, mailer).generate()
        assert not settings.detailed_report_path.exists()

    @pytest.mark.asyncio
    async def test_delivery_failure_keeps_artifacts(self, settings: Settings, results_file: Path):
        """Given a failing transport, the report is still written and the error returned."""
        # When
        outcome = await ReportPipeline(settings, RecordingMailer(fail=True)).generate()

        # Then
        assert settings.detailed_report_path.exists()
        assert outcome.delivered is False
        assert outcome.delivery_error == "relay down"

    @pytest.mark.asyncio
    async def test_html_output_and_attachment(
        self, settings: Settings, results_file: Path, mailer: RecordingMailer, tmp_path: Path
    ):
        """Given an HTML output path and a Playwright report, both are used."""
        # Given
        settings.html_output_path = tmp_path / "out" / "summary.html"
        settings.html_report_path.parent.mkdir(parents=True)
        settings.html_report_path.write_text("<html>playwright</html>")

        # When
        outcome = await ReportPipeline(settings, mailer).generate()

        # Then
        assert outcome.html_path.read_text(encoding="utf-8") == outcome.rendered.html
        attachments = mailer.sent[0].attachments
        assert [a.filename for a in attachments] == [PLAYWRIGHT_REPORT_FILENAME]


class TestSend:
    """Test suite for the send flow."""

    @pytest.mark.asyncio
    async def test_send_prefers_detailed_report(self, settings: Settings, mailer: RecordingMailer):
        # Given
        write_detailed_report(make_report(), settings.detailed_report_path)

        # When
        outcome = await ReportPipeline(settings, mailer).send()

        # Then
        assert not outcome.report.is_degraded
        assert "Detailed Results" in mailer.sent[0].html_body

    @pytest.mark.asyncio
    async def test_send_falls_back_to_degraded(
        self, settings: Settings, results_file: Path, mailer: RecordingMailer
    ):
        """Given only the raw results, a basic report is sent."""
        # When
        outcome = await ReportPipeline(settings, mailer).send()

        # Then
        assert outcome.report.is_degraded
        assert outcome.delivered
        assert "Basic report." in mailer.sent[0].html_body

    @pytest.mark.asyncio
    async def test_unreadable_detailed_report_falls_back(
        self, settings: Settings, results_file: Path, mailer: RecordingMailer
    ):
        settings.detailed_report_path.write_text(json.dumps({"suites": []}))

        outcome = await ReportPipeline(settings, mailer).send()

        assert outcome.report.is_degraded

    @pytest.mark.asyncio
    async def test_send_without_any_results(self, settings: Settings, mailer: RecordingMailer):
        """Given no report at all, send finishes quietly."""
        outcome = await ReportPipeline(settings, mailer).send()

        assert outcome.skipped
        assert mailer.sent == []


class TestReplayAndClean:
    """Test suite for replay and clean."""

    @pytest.mark.asyncio
    async def test_replay_writes_report(
        self, settings: Settings, events_file: Path, mailer: RecordingMailer
    ):
        with events_file.open() as lines:
            outcome = await ReportPipeline(settings, mailer).replay(lines, send=False)

        assert outcome.report.summary.not_run == 1
        assert read_detailed_report(settings.detailed_report_path).summary.flaky == 1

    def test_clean_removes_stale_report(self, settings: Settings, mailer: RecordingMailer):
        write_detailed_report(make_report(), settings.detailed_report_path)
        pipeline = ReportPipeline(settings, mailer)

        assert pipeline.clean() is True
        assert not settings.detailed_report_path.exists()
        assert pipeline.clean() is False

    def test_render_file(self, settings: Settings, mailer: RecordingMailer):
        write_detailed_report(make_report(), settings.detailed_report_path)

        rendered = ReportPipeline(settings, mailer).render_file(settings.detailed_report_path)

        assert rendered.subject.startswith("Solution Builder Test Report")
