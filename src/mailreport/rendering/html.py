"""HTML summary document for mail delivery.

One renderer serves both fidelity levels. The report's ``Capability`` flags
decide which sections are emitted: per-test detail needs ``RECORDS``, retry
badges and the flaky column need ``RETRIES``, the not-run column needs
``NOT_RUN``. Rendering is pure: it returns strings and never touches disk.

Every piece of free text (titles, messages, logs, paths) goes through
``escape_html`` before it is placed in markup.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from mailreport.core.models import (
    Capability,
    DetailedReport,
    ErrorInfo,
    FlatStep,
    NormalizedRecord,
    SuiteResult,
)
from mailreport.grouping import GroupingResult, GroupingStrategy, group_test_cases
from mailreport.rendering.formatting import (
    escape_html,
    format_duration,
    format_long_datetime,
    format_pass_rate,
    format_short_datetime,
    format_subject_date,
    status_badge,
    status_icon,
)

DEFAULT_TITLE = "Automation Test Report"

_CSS = """\
body { font-family: 'Inter', -apple-system, 'Segoe UI', Arial, sans-serif;
       background: #eef0f7; padding: 24px; line-height: 1.5; color: #212529; }
.container { max-width: 1200px; margin: 0 auto; background: #ffffff;
             border-radius: 12px; overflow: hidden; box-shadow: 0 10px 30px rgba(0,0,0,0.15); }
.header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: #ffffff;
          padding: 24px 40px; text-align: center; }
.header h1 { font-size: 32px; margin: 0 0 6px 0; }
.header .date { font-size: 14px; opacity: 0.85; }
.status-banner { padding: 20px; text-align: center; color: #ffffff; font-size: 26px;
                 font-weight: 800; letter-spacing: 3px; }
.notice { margin: 20px 40px 0 40px; padding: 14px 18px; border-radius: 8px; font-size: 14px; }
.notice.degraded { background: #fff3cd; border: 1px solid #ffc107; color: #664d03; }
.notice.diagnostics { background: #f8d7da; border: 1px solid #dc3545; color: #842029; }
.section { padding: 24px 40px; }
.section h2 { font-size: 20px; margin: 0 0 14px 0; }
table { width: 100%; border-collapse: collapse; }
th { background: #f8f9fa; padding: 12px 15px; font-size: 13px; text-transform: uppercase;
     border-bottom: 2px solid #dee2e6; }
td { padding: 12px 15px; border-bottom: 1px solid #dee2e6; }
.summary-table td { text-align: center; font-size: 22px; font-weight: 800; }
.num { text-align: center; font-weight: 600; color: #495057; }
.mono { font-family: monospace; }
.badge { display: inline-block; padding: 5px 14px; border-radius: 20px; color: #ffffff;
         font-weight: 700; font-size: 11px; letter-spacing: 0.5px; }
.suite { border: 1px solid #dee2e6; border-radius: 8px; margin-bottom: 18px; }
.suite-header { background: #f8f9fa; padding: 12px 18px; font-weight: 700; }
.suite-header .stat { margin-left: 12px; font-weight: 600; color: #6c757d; }
.test { padding: 12px 18px; border-top: 1px solid #e9ecef; }
.test-title { font-weight: 600; }
.retry { font-size: 12px; color: #b58100; font-weight: 600; margin-left: 8px; }
.error { background: #fff5f5; border-left: 4px solid #dc3545; padding: 10px 14px; margin-top: 10px; }
.error-stack { white-space: pre-wrap; font-family: monospace; font-size: 12px; color: #6c757d; }
.steps { margin-top: 10px; font-size: 13px; }
.step-error { color: #dc3545; font-size: 11px; font-weight: 600; }
.logs { margin-top: 10px; background: #212529; color: #f8f9fa; padding: 10px 14px;
        border-radius: 6px; font-family: monospace; font-size: 12px; }
.logs.stderr { color: #ffb4b4; }
.attachments { margin-top: 10px; font-size: 13px; }
.footer { text-align: center; padding: 18px; font-size: 12px; color: #6c757d; }
"""


@dataclass
class RenderedReport:
    """Subject line and HTML body ready for delivery."""

    subject: str
    html: str
    grouping: GroupingResult


def render_report(
    report: DetailedReport,
    title: str = DEFAULT_TITLE,
    chain: list[GroupingStrategy] | None = None,
    generated_at: datetime | None = None,
) -> RenderedReport:
    """Render a report into a mail subject and HTML body.

    Args:
        report: Canonical or degraded report.
        title: Report title, used for the subject and page header.
        chain: Grouping strategy chain for the test case matrix.
        generated_at: Render timestamp shown in the footer (defaults to now).

    Returns:
        RenderedReport with subject, HTML and the test case grouping used.
    """
    generated_at = generated_at or datetime.now(UTC)
    grouping = group_test_cases(report, chain)

    # Degraded reports have no trustworthy run start; date them by render time
    subject_date = generated_at if report.is_degraded else report.summary.start_time
    subject = f"{title} - {format_subject_date(subject_date)}"

    body = "\n".join(
        [
            _render_header(title, report),
            _render_status_banner(report, grouping),
            _render_degraded_notice(report),
            _render_diagnostics([*report.summary.diagnostics, *grouping.diagnostics]),
            _render_summary_table(report, grouping),
            _render_execution_info(report),
            _render_case_matrix(grouping),
            _render_suite_details(report),
            _render_footer(generated_at),
        ]
    )
    document = (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n<head>\n<meta charset="UTF-8">\n'
        f"<title>{escape_html(title)}</title>\n<style>\n{_CSS}</style>\n</head>\n"
        f'<body>\n<div class="container">\n{body}\n</div>\n</body>\n</html>\n'
    )
    return RenderedReport(subject=subject, html=document, grouping=grouping)


def _render_header(title: str, report: DetailedReport) -> str:
    executed = format_long_datetime(report.summary.start_time)
    return (
        '<div class="header">'
        f"<h1>{escape_html(title)}</h1>"
        f'<div class="date">Executed {escape_html(executed)}</div>'
        "</div>"
    )


def _render_status_banner(report: DetailedReport, grouping: GroupingResult) -> str:
    failed = report.summary.status == "failed" or grouping.failed > 0
    color = "#dc3545" if failed else "#28a745"
    label = "FAILED" if failed else "PASSED"
    return f'<div class="status-banner" style="background: {color};">📊 TEST RUN {label}</div>'


def _render_degraded_notice(report: DetailedReport) -> str:
    if not report.is_degraded:
        return ""
    return (
        '<div class="notice degraded"><strong>Basic report.</strong> '
        "Detailed results were not available, so this summary was computed from the raw "
        "test results. It shows pass/fail counts per top-level suite only, without "
        "retry, flaky or per-test detail.</div>"
    )


def _render_diagnostics(diagnostics: list[str]) -> str:
    if not diagnostics:
        return ""
    items = "".join(f"<li>{escape_html(d)}</li>" for d in diagnostics)
    return (
        '<div class="notice diagnostics"><strong>Data quality warnings</strong>'
        f"<ul>{items}</ul></div>"
    )


def _render_summary_table(report: DetailedReport, grouping: GroupingResult) -> str:
    summary = report.summary
    columns = [
        ("Total Test Cases", str(grouping.total), "#212529"),
        ("Passed", str(grouping.passed), "#28a745"),
        ("Failed", str(grouping.failed), "#dc3545"),
        ("Skipped", str(grouping.skipped), "#ffc107"),
    ]
    if Capability.RETRIES in report.capabilities and summary.flaky > 0:
        columns.append(("Flaky", str(summary.flaky), "#fd7e14"))
    if Capability.NOT_RUN in report.capabilities and summary.not_run > 0:
        columns.append(("Not Run", str(summary.not_run), "#6c757d"))
    columns.append(("Pass Rate", format_pass_rate(grouping.pass_rate), "#212529"))
    columns.append(("Duration", format_duration(summary.duration_ms), "#212529"))

    head = "".join(f"<th>{name}</th>" for name, _, _ in columns)
    cells = "".join(f'<td style="color: {color};">{value}</td>' for _, value, color in columns)
    return (
        '<div class="section"><h2>Summary</h2>'
        f'<table class="summary-table"><thead><tr>{head}</tr></thead>'
        f"<tbody><tr>{cells}</tr></tbody></table></div>"
    )


def _render_execution_info(report: DetailedReport) -> str:
    summary = report.summary
    rows = [
        ("Start Time", format_short_datetime(summary.start_time)),
        ("End Time", format_short_datetime(summary.end_time)),
        ("Duration", format_duration(summary.duration_ms)),
        ("Tests Executed", str(summary.executed)),
    ]
    if Capability.NOT_RUN in report.capabilities:
        rows.append(("Tests Declared", str(summary.total_tests)))
    if report.config.workers is not None:
        rows.append(("Workers", str(report.config.workers)))
    if report.config.projects:
        rows.append(("Projects", ", ".join(report.config.projects)))

    body = "".join(
        f'<tr><td style="font-weight: 600;">{name}</td><td>{escape_html(value)}</td></tr>'
        for name, value in rows
    )
    return f'<div class="section"><h2>Execution Details</h2><table>{body}</table></div>'


def _render_case_matrix(grouping: GroupingResult) -> str:
    rows = []
    for number, group in enumerate(grouping.groups, 1):
        background = "#f8f9fa" if number % 2 == 0 else "#ffffff"
        rows.append(
            f'<tr style="background: {background};">'
            f'<td class="num">{number}</td>'
            f'<td style="font-weight: 600;">{escape_html(group.display_label)}</td>'
            f'<td class="num">{status_badge(group.status.value)}</td>'
            f'<td class="num mono">{format_duration(group.duration_ms)}</td>'
            f'<td style="color: #6c757d; font-size: 13px;">{escape_html(group.scenario_text)}</td>'
            "</tr>"
        )
    if not rows:
        rows.append(
            '<tr><td colspan="5" style="text-align: center; color: #6c757d;">'
            "No tests found</td></tr>"
        )

    return (
        '<div class="section"><h2>Test Case Results</h2><table>'
        "<thead><tr><th>#</th><th>Test Case</th><th>Status</th><th>Duration</th>"
        "<th>Scenarios</th></tr></thead>"
        f"<tbody>{''.join(rows)}</tbody></table></div>"
    )


def _render_suite_details(report: DetailedReport) -> str:
    if Capability.RECORDS not in report.capabilities or not report.suites:
        return ""
    show_retries = Capability.RETRIES in report.capabilities
    suites = "".join(_render_suite(suite, show_retries) for suite in report.suites)
    return f'<div class="section"><h2>Detailed Results</h2>{suites}</div>'


def _render_suite(suite: SuiteResult, show_retries: bool) -> str:
    stats = [f'<span class="stat">✅ {suite.passed}</span>']
    if suite.failed:
        stats.append(f'<span class="stat">❌ {suite.failed}</span>')
    if suite.skipped:
        stats.append(f'<span class="stat">⏭️ {suite.skipped}</span>')
    if show_retries and suite.flaky:
        stats.append(f'<span class="stat">🔄 {suite.flaky}</span>')
    if suite.interrupted:
        stats.append(f'<span class="stat">⛔ {suite.interrupted}</span>')
    stats.append(f'<span class="stat">{format_duration(suite.duration_ms)}</span>')

    tests = "".join(_render_test(record, show_retries) for record in suite.tests)
    return (
        '<div class="suite"><div class="suite-header">'
        f"📁 {escape_html(suite.suite_name)} "
        f'<span class="mono" style="font-weight: 400;">{escape_html(suite.file)}</span>'
        f"{''.join(stats)}</div>{tests}</div>"
    )


def _render_test(record: NormalizedRecord, show_retries: bool) -> str:
    status = record.display_status
    retry = ""
    if show_retries and record.retries > 0:
        retry = f'<span class="retry">🔄 Retry {record.retries}</span>'

    sections = [
        _render_errors(record.errors),
        _render_steps(record.steps),
        _render_logs("📋 Standard Output", record.stdout, "stdout"),
        _render_logs("🔴 Error Output", record.stderr, "stderr"),
        _render_attachments(record),
    ]
    return (
        '<div class="test">'
        f'<span class="test-title">{status_icon(status)} {escape_html(record.title)}</span> '
        f"{status_badge(status)} "
        f'<span class="mono">{format_duration(record.duration_ms)}</span>{retry}'
        f"{''.join(sections)}</div>"
    )


def _render_errors(errors: list[ErrorInfo]) -> str:
    parts = []
    for error in errors:
        location = ""
        if error.location:
            where = f"{error.location.file}:{error.location.line}:{error.location.column}"
            location = f'<div>📍 Location: <code>{escape_html(where)}</code></div>'
        stack = f'<div class="error-stack">{escape_html(error.stack)}</div>' if error.stack else ""
        parts.append(
            f'<div class="error"><strong>{escape_html(error.message)}</strong>'
            f"{location}{stack}</div>"
        )
    return "".join(parts)


def _render_steps(steps: list[FlatStep]) -> str:
    if not steps:
        return ""
    rows = []
    for step in steps:
        icon = "❌" if step.error else "✅"
        error = (
            f'<div class="step-error">⚠️ Error: {escape_html(step.error)}</div>'
            if step.error
            else ""
        )
        rows.append(
            f'<div style="padding-left: {step.depth * 18}px;">'
            f"{icon} {escape_html(step.title)} "
            f'<span class="mono" style="color: #6c757d;">{format_duration(step.duration_ms)}</span>'
            f"{error}</div>"
        )
    return f'<div class="steps"><strong>Steps</strong>{"".join(rows)}</div>'


def _render_logs(title: str, lines: list[str], kind: str) -> str:
    if not lines:
        return ""
    body = "".join(f"<div>{escape_html(line)}</div>" for line in lines)
    return f'<div class="logs {kind}"><strong>{title}</strong>{body}</div>'


def _render_attachments(record: NormalizedRecord) -> str:
    if not record.attachments:
        return ""
    items = []
    for attachment in record.attachments:
        path = f" <span class=\"mono\">{escape_html(attachment.path)}</span>" if attachment.path else ""
        items.append(
            f"<li>📎 {escape_html(attachment.name)} "
            f"({escape_html(attachment.content_type)}){path}</li>"
        )
    return f'<div class="attachments"><strong>Attachments</strong><ul>{"".join(items)}</ul></div>'


def _render_footer(generated_at: datetime) -> str:
    return (
        '<div class="footer">'
        f"Report generated at {escape_html(format_short_datetime(generated_at))}"
        "</div>"
    )
