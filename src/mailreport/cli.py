"""Typer CLI for mailreport."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError

from mailreport.config import Settings, get_settings
from mailreport.core.exceptions import MailReportError
from mailreport.display import SummaryDisplay
from mailreport.logging import configure_logging, get_logger, run_context
from mailreport.pipeline import PipelineOutcome, ReportPipeline

logger = get_logger(__name__)

app = typer.Typer(
    name="mailreport",
    help="Summarize Playwright test results and mail them as an HTML report",
    no_args_is_help=True,
)

ResultsOption = Annotated[
    Path | None,
    typer.Option(
        "-r",
        "--results",
        help="Playwright JSON report (default: RESULTS_PATH or test-results.json)",
    ),
]
DetailedOption = Annotated[
    Path | None,
    typer.Option(
        "-d",
        "--detailed",
        help="Canonical report path (default: DETAILED_REPORT_PATH)",
    ),
]
HtmlOutputOption = Annotated[
    Path | None,
    typer.Option(
        "--html-output",
        help="Also write the rendered HTML summary here",
    ),
]
SendOption = Annotated[
    bool | None,
    typer.Option(
        "--send/--no-send",
        help="Mail the report (default: SEND_EMAIL)",
    ),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option(
        "--log-level",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    ),
]
QuietOption = Annotated[
    bool,
    typer.Option(
        "-q",
        "--quiet",
        help="Suppress the terminal summary",
    ),
]


def load_settings(**overrides: Any) -> Settings:
    """Settings from the environment with non-None CLI overrides applied."""
    try:
        settings = get_settings()
    except ValidationError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=2) from e

    update = {key: value for key, value in overrides.items() if value is not None}
    if update:
        settings = settings.model_copy(update=update)
    configure_logging(settings.log_level, settings.log_json_format)
    return settings


def _run(settings: Settings, action: str, quiet: bool = False, **kwargs: Any) -> int:
    """Run one async pipeline action and map the outcome to an exit code."""
    pipeline = ReportPipeline(settings)
    with run_context(command=action):
        try:
            outcome: PipelineOutcome = asyncio.run(getattr(pipeline, action)(**kwargs))
        except MailReportError as e:
            logger.error("pipeline_failed", error=str(e))
            typer.echo(f"Error: {e}", err=True)
            return 1

    SummaryDisplay(quiet=quiet).show(outcome)
    return 0


@app.command()
def generate(
    results: ResultsOption = None,
    detailed: DetailedOption = None,
    html_output: HtmlOutputOption = None,
    send: SendOption = None,
    log_level: LogLevelOption = None,
    quiet: QuietOption = False,
) -> None:
    """Build the detailed report from a Playwright JSON report.

    Waits for the results file; if it never appears the command exits
    successfully without writing anything.
    """
    settings = load_settings(
        results_path=results,
        detailed_report_path=detailed,
        html_output_path=html_output,
        log_level=log_level,
    )
    raise typer.Exit(code=_run(settings, "generate", quiet=quiet, send=send))


@app.command()
def send(
    results: ResultsOption = None,
    detailed: DetailedOption = None,
    html_output: HtmlOutputOption = None,
    log_level: LogLevelOption = None,
    quiet: QuietOption = False,
) -> None:
    """Mail the best available report.

    Uses the detailed report when present, else a basic report computed
    from the raw results file.
    """
    settings = load_settings(
        results_path=results,
        detailed_report_path=detailed,
        html_output_path=html_output,
        log_level=log_level,
    )
    raise typer.Exit(code=_run(settings, "send", quiet=quiet))


@app.command()
def replay(
    events: Annotated[
        Path,
        typer.Argument(
            help="JSON-lines file of runner events (onBegin/onTestEnd/onEnd)",
        ),
    ],
    detailed: DetailedOption = None,
    html_output: HtmlOutputOption = None,
    send: SendOption = None,
    log_level: LogLevelOption = None,
    quiet: QuietOption = False,
) -> None:
    """Build the detailed report from a recorded live event stream."""
    settings = load_settings(
        detailed_report_path=detailed,
        html_output_path=html_output,
        log_level=log_level,
    )
    if not events.is_file():
        typer.echo(f"Error: event file not found: {events}", err=True)
        raise typer.Exit(code=1)

    with events.open(encoding="utf-8") as lines:
        exit_code = _run(settings, "replay", quiet=quiet, lines=lines, send=send)
    raise typer.Exit(code=exit_code)


@app.command()
def render(
    detailed: DetailedOption = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "-o",
            "--output",
            help="Write the HTML here instead of stdout",
        ),
    ] = None,
    log_level: LogLevelOption = None,
) -> None:
    """Render a detailed report to HTML without sending it."""
    settings = load_settings(detailed_report_path=detailed, log_level=log_level)
    path = settings.detailed_report_path
    if not path.exists():
        typer.echo(f"Error: detailed report not found: {path}", err=True)
        raise typer.Exit(code=1)

    try:
        rendered = ReportPipeline(settings).render_file(path)
    except MailReportError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    if output is None:
        typer.echo(rendered.html)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(rendered.html, encoding="utf-8")
        typer.echo(f"{rendered.subject}: {output}", err=True)


@app.command()
def clean(
    detailed: DetailedOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Delete a stale detailed report before a new run."""
    settings = load_settings(detailed_report_path=detailed, log_level=log_level)
    removed = ReportPipeline(settings).clean()
    if removed:
        typer.echo(f"Removed {settings.detailed_report_path}")


def main() -> None:
    """Entry point for the Typer CLI."""
    app()
