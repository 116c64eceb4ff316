"""Shared option handling for CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console

from specwright.config import settings
from specwright.core.orchestrator import Orchestrator
from specwright.models.config import load_plugin_config
from specwright.monitor.renderer import configure_logging


def setup_logging(verbose: bool, console: Console | None = None) -> None:
    """Verbose mode shows every published/unchanged artifact."""
    configure_logging(logging.DEBUG if verbose else settings.log_level, console=console)


def load_orchestrator(
    config_file: Optional[Path],
    service_path: Path,
    *,
    reload_handler: Optional[bool] = None,
) -> Orchestrator:
    """Build an Orchestrator from CLI options.

    ``config_file`` defaults to ``settings.config_file`` under the service
    path.  Raises ConfigurationError if it cannot be loaded.
    """
    service_path = service_path.resolve()
    path = config_file if config_file is not None else service_path / settings.config_file
    config = load_plugin_config(path)
    if reload_handler is not None:
        config = config.model_copy(update={"reload_handler": reload_handler})
    return Orchestrator(config, service_path)
