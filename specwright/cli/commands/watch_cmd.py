"""``specwright watch``: generate, then regenerate on every source change.

Hidden files and every output path are excluded from the watch, so the
command's own writes never re-trigger it.  Failures are logged and retried;
the command only exits on Ctrl+C or a broken configuration file.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from specwright.cli.commands._common import load_orchestrator, setup_logging
from specwright.models.config import ConfigurationError
from specwright.monitor.renderer import RunRenderer

console = Console()


def watch_cmd(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Host configuration file (YAML or TOML). Defaults to specwright.yml.",
    ),
    service_path: Path = typer.Option(
        Path("."),
        "--service-path",
        "-s",
        help="Project root and watch root.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every artifact."),
    reload: bool = typer.Option(
        True,
        "--reload/--no-reload",
        help="Keep watching after the first run (overrides reloadHandler).",
    ),
) -> None:
    """Generate, then watch the project and regenerate on change."""
    setup_logging(verbose, console)
    try:
        orchestrator = load_orchestrator(config_file, service_path, reload_handler=reload)
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    try:
        last_run = asyncio.run(orchestrator.generate_and_watch())
    except KeyboardInterrupt:
        console.print("[dim]Stopped watching.[/dim]")
        return

    if last_run is not None:
        RunRenderer(console, orchestrator.service_path).print_run(last_run)
