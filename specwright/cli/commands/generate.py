"""``specwright generate``: one-shot generation (packaging builds).

Runs the pipeline once and prints the outcome of every artifact.  A missing
``spec`` or ``routes`` block fails with exit code 1.  Generator failures are
reported but only change the exit code with ``--strict``.
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


def generate_cmd(
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
        help="Project root; output paths resolve against it.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every artifact."),
    strict: bool = typer.Option(
        False, "--strict", help="Exit with status 1 if any artifact failed."
    ),
) -> None:
    """Generate the spec, routes and client once."""
    setup_logging(verbose, console)
    try:
        orchestrator = load_orchestrator(config_file, service_path)
        run = asyncio.run(orchestrator.generate())
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    RunRenderer(console, orchestrator.service_path).print_run(run)
    if strict and not run.ok:
        raise typer.Exit(code=1)
