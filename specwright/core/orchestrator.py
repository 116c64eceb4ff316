"""Orchestrator: the entry points a host calls.

The Orchestrator wires the StagingArea, GenerationPipeline and WatchLoop
together and exposes two entry points with different error
contracts:

- ``generate()`` (packaging): raises ``ConfigurationError`` when the spec or
  routes block is missing, so automated builds fail loudly.  Generator
  failures are captured on the returned GenerationRun, never raised.
- ``generate_and_watch()`` (development server): never raises.  Failures
  become warnings and scheduled retries.

``hooks`` maps host lifecycle event names to these entry points.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from watchfiles import awatch

from specwright.config import SpecwrightSettings
from specwright.config import settings as default_settings
from specwright.core.generators import GeneratorSet, resolve_generators
from specwright.core.pipeline import GenerationPipeline
from specwright.core.staging import StagingArea, output_paths
from specwright.core.watch import ChangeSource, WatchLoop
from specwright.models.config import ConfigurationError, PluginConfig
from specwright.models.runs import GenerationRun

logger = logging.getLogger(__name__)

PLUGIN_NAME = "specwright"


class Orchestrator:
    """Central coordinator for one project.

    Parameters
    ----------
    config:
        Host configuration.  Not hot-reloaded: construct a new Orchestrator
        to pick up changes.
    service_path:
        Project root; relative output paths and the watch root resolve here.
    generators:
        Explicit generators.  Resolved from ``config.generators`` if None.
    settings:
        Runtime settings.  Uses the module-level defaults if None.
    watcher:
        Change source for the watch loop (``watchfiles.awatch``).
    """

    def __init__(
        self,
        config: PluginConfig,
        service_path: Path | str,
        *,
        generators: GeneratorSet | None = None,
        settings: SpecwrightSettings | None = None,
        watcher: ChangeSource = awatch,
    ) -> None:
        self.config = config
        self.service_path = Path(service_path).resolve()
        self.settings = settings or default_settings
        self._generators = generators
        self._watcher = watcher
        self._pipeline: GenerationPipeline | None = None
        self._watch_loop: WatchLoop | None = None
        self._stop_requested = False

        self.hooks: dict[str, Callable[[], Awaitable[Any]]] = {
            f"{PLUGIN_NAME}:run": self.generate,
            "before:offline:start": self.generate_and_watch,
            "before:package:createDeploymentArtifacts": self.generate,
        }

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    @property
    def pipeline(self) -> GenerationPipeline:
        """The pipeline, built on first use.  Raises ConfigurationError."""
        if self._pipeline is None:
            staging = StagingArea(self.service_path, self.config, self.settings.work_dir_name)
            generators = self._generators or resolve_generators(self.config, self.service_path)
            self._pipeline = GenerationPipeline(self.config, staging, generators)
        return self._pipeline

    @property
    def watch_loop(self) -> WatchLoop | None:
        return self._watch_loop

    def output_paths(self) -> frozenset[Path]:
        """Every path this orchestrator writes to."""
        return output_paths(self.config, self.service_path, self.settings.work_dir_name)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def generate(self) -> GenerationRun:
        """One-shot generation.  Raises ConfigurationError on missing config."""
        return await self.pipeline.run()

    async def generate_and_watch(self) -> GenerationRun | None:
        """Generate, then keep regenerating on change when ``reloadHandler`` is set.

        Never raises.  Returns the last completed run (None if nothing ran).
        """
        try:
            pipeline = self.pipeline
            exclusions = self.output_paths()
        except ConfigurationError as exc:
            logger.error("%s", exc)
            return None

        if not self.config.reload_handler:
            try:
                return await pipeline.run()
            except Exception as exc:
                logger.warning("Generation failed: %s", exc)
                return None

        self._watch_loop = WatchLoop(
            pipeline.run,
            self.service_path,
            exclusions,
            settings=self.settings,
            watcher=self._watcher,
        )
        if self._stop_requested:
            self._stop_requested = False
            self._watch_loop.stop()
        await self._watch_loop.run(run_immediately=True)
        return self._watch_loop.last_run

    def stop(self) -> None:
        """Stop watching after the in-flight run completes.

        A stop requested before the watch loop exists is applied as soon as
        ``generate_and_watch()`` builds it.
        """
        if self._watch_loop is None:
            self._stop_requested = True
            return
        self._watch_loop.stop()

    # ------------------------------------------------------------------
    # Host lifecycle
    # ------------------------------------------------------------------

    async def invoke_hook(self, name: str) -> Any:
        """Run the entry point registered for a lifecycle event name."""
        try:
            hook = self.hooks[name]
        except KeyError:
            raise KeyError(
                f"Unknown lifecycle hook {name!r}. Known: {sorted(self.hooks)}"
            ) from None
        logger.debug("%s", name)
        return await hook()
