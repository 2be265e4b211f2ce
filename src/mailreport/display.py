"""Rich-based terminal summary of a pipeline run."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mailreport.core.models import Capability
from mailreport.pipeline import PipelineOutcome
from mailreport.rendering.formatting import format_duration, format_pass_rate


class SummaryDisplay:
    """Prints pipeline outcomes to the terminal.

    Quiet mode suppresses everything, for scripting.
    """

    def __init__(self, console: Console | None = None, quiet: bool = False):
        self.console = console or Console(highlight=False)
        self.quiet = quiet

    def show(self, outcome: PipelineOutcome) -> None:
        if self.quiet:
            return

        if outcome.skipped:
            self.console.print(f"[yellow]Skipped:[/yellow] {escape(outcome.skipped_reason)}")
            return

        report = outcome.report
        summary = report.summary
        color = "red" if summary.status == "failed" else "green"
        mode = " [dim](basic report)[/dim]" if report.is_degraded else ""
        self.console.print(f"[bold {color}]Test run {summary.status.upper()}[/bold {color}]{mode}")

        table = Table(show_header=True, header_style="bold")
        columns = [
            ("Total", str(summary.executed), "white"),
            ("Passed", str(summary.passed), "green"),
            ("Failed", str(summary.failed), "red"),
            ("Skipped", str(summary.skipped), "yellow"),
        ]
        if Capability.RETRIES in report.capabilities:
            columns.append(("Flaky", str(summary.flaky), "magenta"))
        if Capability.NOT_RUN in report.capabilities:
            columns.append(("Not Run", str(summary.not_run), "dim"))
        columns.append(("Duration", format_duration(summary.duration_ms), "white"))

        for name, _, style in columns:
            table.add_column(name, style=style, justify="right")
        table.add_row(*(value for _, value, _ in columns))
        self.console.print(table)

        if outcome.rendered:
            grouping = outcome.rendered.grouping
            self.console.print(
                f"Test cases: {grouping.total} "
                f"([green]{grouping.passed} passed[/green], "
                f"[red]{grouping.failed} failed[/red], "
                f"[yellow]{grouping.skipped} skipped[/yellow]) "
                f"pass rate {format_pass_rate(grouping.pass_rate)}"
            )

        for diagnostic in summary.diagnostics:
            self.console.print(f"[red]![/red] {escape(diagnostic)}")

        self._print_artifacts(outcome)

    def _print_artifacts(self, outcome: PipelineOutcome) -> None:
        if outcome.detailed_path:
            self.console.print(f"[dim]Detailed report:[/dim] {escape(str(outcome.detailed_path))}")
        if outcome.html_path:
            self.console.print(f"[dim]HTML summary:[/dim] {escape(str(outcome.html_path))}")

        if outcome.delivered:
            self.console.print(f"[green]✓[/green] Report mailed: {escape(outcome.rendered.subject)}")
        elif outcome.delivery_error:
            self.console.print(f"[yellow]Mail not sent:[/yellow] {escape(outcome.delivery_error)}")
