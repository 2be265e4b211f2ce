"""End-to-end report pipeline.

Source -> normalization -> aggregation -> rendering -> delivery, run once
per test run. Artifacts are written before delivery is attempted, so a mail
failure never loses the canonical document.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from mailreport.aggregation import RunAggregator
from mailreport.config import Settings
from mailreport.core.exceptions import DeliveryFailure, MalformedInput, SourceUnavailable
from mailreport.core.models import DetailedReport
from mailreport.delivery import MailMessage, Mailer, SmtpMailer, playwright_report_attachment
from mailreport.grouping import GroupingStrategy, build_chain
from mailreport.logging import get_logger
from mailreport.normalize import normalize_tests
from mailreport.rendering.canonical import read_detailed_report, write_detailed_report
from mailreport.rendering.degraded import build_degraded_report
from mailreport.rendering.html import RenderedReport, render_report
from mailreport.sources.base import ResultSource
from mailreport.sources.live import replay_events
from mailreport.sources.static import StaticReportSource, load_json_document
from mailreport.sources.wait import wait_for_artifact

logger = get_logger(__name__)


@dataclass
class PipelineOutcome:
    """What a pipeline run produced."""

    report: DetailedReport | None = None
    rendered: RenderedReport | None = None
    detailed_path: Path | None = None
    html_path: Path | None = None
    delivered: bool = False
    delivery_error: str | None = None
    skipped_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


def build_report(source: ResultSource) -> DetailedReport:
    """Normalize and aggregate every logical test of a source."""
    aggregator = RunAggregator(declared_count=source.declared_count)
    aggregator.fold_all(normalize_tests(source.logical_tests()))
    return aggregator.finalize(
        start_time=source.start_time,
        duration_ms=source.duration_ms,
        config=source.config,
    )


def mailer_from_settings(settings: Settings) -> SmtpMailer:
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        use_tls=settings.smtp_use_tls,
        username=settings.smtp_username,
        password=settings.smtp_password,
        timeout=settings.smtp_timeout_seconds,
    )


class ReportPipeline:
    """Runs the report stages with one set of settings."""

    def __init__(self, settings: Settings, mailer: Mailer | None = None) -> None:
        self.settings = settings
        self.mailer = mailer or mailer_from_settings(settings)

    @property
    def chain(self) -> list[GroupingStrategy]:
        return build_chain(self.settings.grouping_strategies, self.settings.case_id_pattern)

    async def generate(self, send: bool | None = None) -> PipelineOutcome:
        """Build the canonical report from the static results file.

        Waits for the results file first. If it never shows up the run ends
        gracefully with a skipped outcome.

        Raises:
            MalformedInput: If the results file cannot be parsed. Nothing is
                written in that case.
        """
        settings = self.settings
        try:
            path = await wait_for_artifact(
                settings.results_path,
                max_attempts=settings.results_wait_attempts,
                interval=settings.wait_interval_seconds,
            )
        except SourceUnavailable as e:
            logger.warning("source_not_found", path=str(e.path), attempts=e.attempts)
            return PipelineOutcome(skipped_reason=f"No test results found at {e.path}")

        source = StaticReportSource.from_path(path)
        report = build_report(source)
        return await self.publish(report, send=send)

    async def replay(self, lines: Iterable[str], send: bool | None = None) -> PipelineOutcome:
        """Build the canonical report from a recorded live event stream."""
        report = replay_events(lines, source=getattr(lines, "name", "<events>"))
        return await self.publish(report, send=send)

    async def publish(self, report: DetailedReport, send: bool | None = None) -> PipelineOutcome:
        """Persist, render and optionally deliver a canonical report."""
        outcome = PipelineOutcome(report=report)
        outcome.detailed_path = write_detailed_report(report, self.settings.detailed_report_path)
        logger.info(
            "report_written",
            path=str(outcome.detailed_path),
            suites=len(report.suites),
            executed=report.summary.executed,
        )

        outcome.rendered = self.render(report)
        outcome.html_path = self._write_html(outcome.rendered)

        if self._should_send(send):
            await self._deliver(outcome)
        return outcome

    async def send(self) -> PipelineOutcome:
        """Deliver the best available report.

        Prefers the canonical document; falls back to a degraded report built
        from the raw results file; finishes quietly when neither exists.
        """
        settings = self.settings
        report = await self._load_canonical()
        if report is None:
            report = self._load_degraded()
        if report is None:
            logger.warning(
                "no_test_results",
                detailed_path=str(settings.detailed_report_path),
                results_path=str(settings.results_path),
            )
            return PipelineOutcome(skipped_reason="No test results available")

        outcome = PipelineOutcome(report=report)
        outcome.rendered = self.render(report)
        outcome.html_path = self._write_html(outcome.rendered)
        await self._deliver(outcome)
        return outcome

    def render(self, report: DetailedReport, generated_at: datetime | None = None) -> RenderedReport:
        return render_report(
            report,
            title=self.settings.report_title,
            chain=self.chain,
            generated_at=generated_at,
        )

    def render_file(self, path: Path) -> RenderedReport:
        """Render a canonical document from disk without delivering it."""
        return self.render(read_detailed_report(path))

    def clean(self) -> bool:
        """Remove a stale canonical document left over from a previous run."""
        path = self.settings.detailed_report_path
        if not path.exists():
            return False
        path.unlink()
        logger.info("stale_report_removed", path=str(path))
        return True

    def _should_send(self, send: bool | None) -> bool:
        return self.settings.send_email if send is None else send

    async def _load_canonical(self) -> DetailedReport | None:
        settings = self.settings
        try:
            path = await wait_for_artifact(
                settings.detailed_report_path,
                max_attempts=settings.detailed_wait_attempts,
                interval=settings.wait_interval_seconds,
            )
            return read_detailed_report(path)
        except SourceUnavailable:
            return None
        except MalformedInput as e:
            logger.warning("detailed_report_unreadable", path=str(e.path), reason=e.reason)
            return None

    def _load_degraded(self) -> DetailedReport | None:
        path = self.settings.results_path
        if not path.exists():
            return None
        logger.info("degraded_report", path=str(path))
        return build_degraded_report(load_json_document(path), path)

    def _write_html(self, rendered: RenderedReport) -> Path | None:
        path = self.settings.html_output_path
        if path is None:
            return None
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(rendered.html, encoding="utf-8")
        logger.info("html_written", path=str(path))
        return path

    async def _deliver(self, outcome: PipelineOutcome) -> None:
        settings = self.settings
        rendered = outcome.rendered
        attachment = playwright_report_attachment(settings.html_report_path)
        message = MailMessage(
            sender=settings.email_user,
            recipients=settings.recipients,
            subject=rendered.subject,
            html_body=rendered.html,
            attachments=[attachment] if attachment else [],
        )
        try:
            await self.mailer.send(message)
        except DeliveryFailure as e:
            logger.warning("delivery_failed", error=str(e))
            outcome.delivery_error = str(e)
            return
        outcome.delivered = True
