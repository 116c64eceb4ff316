"""Main Typer application; imports and registers all CLI commands.

Entry point: ``specwright`` (configured via pyproject.toml project.scripts).

Commands: generate, watch, outputs, hook.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from specwright.cli.commands._common import load_orchestrator, setup_logging
from specwright.cli.commands.generate import generate_cmd
from specwright.cli.commands.watch_cmd import watch_cmd
from specwright.models.config import ConfigurationError
from specwright.models.runs import GenerationRun
from specwright.monitor.renderer import RunRenderer

app = typer.Typer(
    name="specwright",
    help="specwright: incremental API spec, routes and client generation.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

console = Console()

# Register subcommands
app.command(name="generate", help="Generate the spec, routes and client once.")(generate_cmd)
app.command(name="watch", help="Generate, then regenerate on every change.")(watch_cmd)


@app.command(name="outputs", help="List every path specwright writes to.")
def outputs_cmd(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Host configuration file."),
    service_path: Path = typer.Option(Path("."), "--service-path", "-s", help="Project root."),
) -> None:
    """Print the output paths excluded from watching (useful for .gitignore)."""
    try:
        orchestrator = load_orchestrator(config_file, service_path)
        paths = orchestrator.output_paths()
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    for path in sorted(paths):
        try:
            shown = path.relative_to(orchestrator.service_path)
        except ValueError:
            shown = path
        console.print(str(shown), highlight=False)


@app.command(name="hook", help="Run the entry point bound to a host lifecycle event.")
def hook_cmd(
    name: str = typer.Argument(..., help="Lifecycle event, e.g. before:package:createDeploymentArtifacts."),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Host configuration file."),
    service_path: Path = typer.Option(Path("."), "--service-path", "-s", help="Project root."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every artifact."),
) -> None:
    """Invoke a lifecycle hook the way the host would."""
    setup_logging(verbose, console)
    try:
        orchestrator = load_orchestrator(config_file, service_path)
        result = asyncio.run(orchestrator.invoke_hook(name))
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)
    except KeyError as exc:
        console.print(f"[bold red]{escape(exc.args[0])}[/bold red]")
        raise typer.Exit(code=2)
    except KeyboardInterrupt:
        return

    if isinstance(result, GenerationRun):
        RunRenderer(console, orchestrator.service_path).print_run(result)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
