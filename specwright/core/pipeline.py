"""Generation pipeline: spec first, then routes and client, publish what changed.

Run lifecycle:
1. Generate the spec into the staging area.
2. Fingerprint it; if it matches the last remembered fingerprint, stop
   (``unchanged``) without touching anything downstream.  Otherwise publish.
3. Generate routes and client concurrently against the *published* spec,
   publishing each one that changed.  One failing never cancels the other.
4. Mirror the published spec into any extra copy destinations.

Generator and publish failures are recorded on the GenerationRun and logged
as warnings; ``run()`` itself only raises on programming errors.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from specwright.core.generators import GeneratorSet, invoke
from specwright.core.hasher import afingerprint_file
from specwright.core.publisher import publish
from specwright.core.staging import StagingArea
from specwright.models.artifacts import ArtifactKind, ArtifactSpec, Fingerprint
from specwright.models.config import (
    ClientConfig,
    ConfigurationError,
    PluginConfig,
    RoutesConfig,
)
from specwright.models.runs import (
    ArtifactOutcome,
    ArtifactResult,
    GenerationRun,
    PublishOutcome,
)

logger = logging.getLogger(__name__)

_PUBLISH_TO_ARTIFACT = {
    PublishOutcome.WRITTEN: ArtifactOutcome.WRITTEN,
    PublishOutcome.UNCHANGED: ArtifactOutcome.UNCHANGED,
}


def _result(
    artifact: ArtifactSpec, outcome: ArtifactOutcome, error: BaseException | None = None
) -> ArtifactResult:
    return ArtifactResult(
        kind=artifact.kind,
        staged_path=artifact.staged_path,
        published_path=artifact.published_path,
        outcome=outcome,
        error=f"{type(error).__name__}: {error}" if error is not None else None,
    )


class GenerationPipeline:
    """Dependency-ordered, short-circuiting artifact generation.

    Holds the last published spec fingerprint in memory so that a run whose
    spec bytes did not change skips route and client generation entirely.
    The fingerprint belongs to this instance; separate pipelines never
    share it.

    Parameters
    ----------
    config:
        Host configuration.  Deep-copied at the start of every run, so
        generators that mutate their config cannot leak into the next run.
    staging:
        Staging area giving the staged/published path of every artifact.
    generators:
        The spec, route and (optional) client generators.
    """

    def __init__(
        self,
        config: PluginConfig,
        staging: StagingArea,
        generators: GeneratorSet,
    ) -> None:
        if config.client is not None and generators.client is None:
            raise ConfigurationError("A client output is configured but no client generator")
        self._config = config
        self._staging = staging
        self._generators = generators
        self._last_spec_fingerprint: Fingerprint | None = None
        # At most one run in flight per pipeline.
        self._lock = asyncio.Lock()

    @property
    def staging(self) -> StagingArea:
        return self._staging

    @property
    def last_spec_fingerprint(self) -> Fingerprint | None:
        return self._last_spec_fingerprint

    def forget_spec(self) -> None:
        """Drop the remembered fingerprint; the next run regenerates everything."""
        self._last_spec_fingerprint = None

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> GenerationRun:
        """Execute one generation run and return its record."""
        async with self._lock:
            started_at = datetime.now(timezone.utc)
            config = self._config.model_copy(deep=True)
            spec_config, routes_config = config.require_generation_config()
            artifacts: list[ArtifactResult] = []
            copies: list[ArtifactResult] = []

            def finish(short_circuited: bool = False) -> GenerationRun:
                run = GenerationRun(
                    started_at=started_at,
                    finished_at=datetime.now(timezone.utc),
                    artifacts=artifacts,
                    copies=copies,
                    short_circuited=short_circuited,
                )
                logger.info("Generation run %s %s (%s)", run.run_id, run.outcome.value, run.summary())
                return run

            spec = self._staging.spec_artifact()

            # 1. Spec
            logger.debug("Generating spec...")
            try:
                self._staging.reset(spec)
                staged_config = spec_config.model_copy(
                    update={"output_directory": spec.staged_path.parent}
                )
                await invoke(self._generators.spec, staged_config)
            except Exception as exc:
                self.forget_spec()
                logger.warning("Spec generation failed: %s", exc)
                artifacts.append(_result(spec, ArtifactOutcome.FAILED, exc))
                return finish()

            # 2. Short-circuit or publish
            staged_fp = await afingerprint_file(spec.staged_path)
            if staged_fp == self._last_spec_fingerprint:
                logger.debug("Spec unchanged; skipping routes and client")
                artifacts.append(_result(spec, ArtifactOutcome.UNCHANGED))
                return finish(short_circuited=True)

            try:
                outcome = await publish(spec.staged_path, spec.published_path)
            except OSError as exc:
                self.forget_spec()
                logger.warning("Publishing spec to %s failed: %s", spec.published_path, exc)
                artifacts.append(_result(spec, ArtifactOutcome.FAILED, exc))
                return finish()
            self._last_spec_fingerprint = staged_fp
            logger.debug("Spec %s: %s", outcome.value, spec.published_path)
            artifacts.append(_result(spec, _PUBLISH_TO_ARTIFACT[outcome]))

            # 3. Routes and client, concurrently
            downstream = [
                self._generate_routes(routes_config, spec.published_path),
            ]
            client = self._staging.artifact(ArtifactKind.CLIENT)
            if client is not None and config.client is not None:
                downstream.append(
                    self._generate_client(client, config.client, spec.published_path)
                )
            artifacts.extend(await asyncio.gather(*downstream))

            # 4. Extra spec copies
            for dest in self._staging.spec_copy_destinations():
                copies.append(await self._copy_spec(spec, dest))

            if any(r.outcome == ArtifactOutcome.FAILED for r in artifacts + copies):
                # Retry on the next run even if the spec is unchanged.
                self.forget_spec()

            return finish()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _generate_routes(self, config: RoutesConfig, spec_path: Path) -> ArtifactResult:
        artifact = self._staging.routes_artifact()
        staged_config = config.model_copy(update={"routes_dir": artifact.staged_path.parent})
        logger.debug("Generating routes...")
        return await self._generate_and_publish(
            artifact, self._generators.routes, staged_config, spec_path
        )

    async def _generate_client(
        self, artifact: ArtifactSpec, config: ClientConfig, spec_path: Path
    ) -> ArtifactResult:
        staged_config = config.model_copy(update={"output": artifact.staged_path})
        logger.debug("Generating client...")
        return await self._generate_and_publish(
            artifact, self._generators.client, staged_config, spec_path
        )

    async def _generate_and_publish(
        self, artifact: ArtifactSpec, generator: Callable[..., Any], *args: Any
    ) -> ArtifactResult:
        try:
            self._staging.reset(artifact)
            await invoke(generator, *args)
            outcome = await publish(artifact.staged_path, artifact.published_path)
        except Exception as exc:
            logger.warning("%s generation failed: %s", artifact.kind.value.capitalize(), exc)
            return _result(artifact, ArtifactOutcome.FAILED, exc)
        logger.debug("%s %s: %s", artifact.kind.value.capitalize(), outcome.value, artifact.published_path)
        return _result(artifact, _PUBLISH_TO_ARTIFACT[outcome])

    async def _copy_spec(self, spec: ArtifactSpec, dest: Path) -> ArtifactResult:
        copy = ArtifactSpec(kind=ArtifactKind.SPEC, staged_path=spec.published_path, published_path=dest)
        try:
            outcome = await publish(spec.published_path, dest)
        except OSError as exc:
            logger.warning("Copying spec to %s failed: %s", dest, exc)
            return _result(copy, ArtifactOutcome.FAILED, exc)
        logger.debug("Spec copy %s: %s", outcome.value, dest)
        return _result(copy, _PUBLISH_TO_ARTIFACT[outcome])
