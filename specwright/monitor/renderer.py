"""Rich terminal renderer for generation runs.

Color scheme
------------
- green     : WRITTEN
- dim       : UNCHANGED
- bold red  : FAILED
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console, Group
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from specwright.models.runs import ArtifactOutcome, ArtifactResult, GenerationRun, RunOutcome

LOG_PREFIX = "[specwright]"

_OUTCOME_LABELS: dict[ArtifactOutcome, str] = {
    ArtifactOutcome.WRITTEN: "[green]WRITTEN[/green]",
    ArtifactOutcome.UNCHANGED: "[dim]UNCHANGED[/dim]",
    ArtifactOutcome.FAILED: "[bold red]FAILED[/bold red]",
}

_RUN_STYLES: dict[RunOutcome, str] = {
    RunOutcome.SUCCEEDED: "green",
    RunOutcome.UNCHANGED: "blue",
    RunOutcome.PARTIAL_FAILURE: "yellow",
    RunOutcome.FAILED: "red",
}


def configure_logging(level: str | int = "INFO", console: Console | None = None) -> None:
    """Route ``specwright`` loggers through a Rich handler with a prefix."""
    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter(f"{LOG_PREFIX} %(message)s"))
    logger = logging.getLogger("specwright")
    logger.handlers = [handler]
    logger.setLevel(level)
    logger.propagate = False


class RunRenderer:
    """Renders ``GenerationRun`` records as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    service_path:
        When given, paths are shown relative to it.
    """

    def __init__(self, console: Console | None = None, service_path: Path | None = None) -> None:
        self.console = console or Console()
        self.service_path = service_path

    def _display_path(self, path: Path) -> str:
        if self.service_path is not None:
            try:
                return str(path.relative_to(self.service_path))
            except ValueError:
                pass
        return str(path)

    def render_run(self, run: GenerationRun) -> Panel:
        """Render a GenerationRun as a Panel containing an outcome table."""
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Artifact", min_width=10)
        table.add_column("Outcome", justify="center", min_width=12)
        table.add_column("Published to", min_width=20)
        table.add_column("Error")

        for result in run.artifacts:
            self._add_row(table, result.kind.value, result)
        for result in run.copies:
            self._add_row(table, "spec copy", result)

        duration = ""
        if run.finished_at is not None:
            seconds = (run.finished_at - run.started_at).total_seconds()
            duration = f"  |  [bold]Took:[/bold] {seconds:.2f}s"
        style = _RUN_STYLES[run.outcome]
        summary = (
            f"[bold]Run:[/bold] {run.run_id}  |  "
            f"[bold]Outcome:[/bold] [{style}]{run.outcome.value}[/{style}]  |  "
            f"[bold]Written:[/bold] {run.written_count}{duration}"
        )

        return Panel(
            Group(table, Text(""), Text.from_markup(summary)),
            title="[bold]specwright[/bold]",
            border_style=style,
            padding=(1, 2),
        )

    def _add_row(self, table: Table, label: str, result: ArtifactResult) -> None:
        table.add_row(
            label,
            _OUTCOME_LABELS[result.outcome],
            self._display_path(result.published_path),
            Text(result.error or "", style="red"),
        )

    def print_run(self, run: GenerationRun) -> None:
        self.console.print(self.render_run(run))
