"""Staging area: where generators write before anything is published.

Generators never write to public paths directly.  Their output lands in a
hidden per-project directory (``<service_path>/.specwright`` by default)
that mirrors the configured output layout, so the host's own file watcher
never sees a half-written artifact.

Layout for ``spec.outputDirectory = "api"``::

    <service_path>/.specwright/api/swagger.json   (staged)
    <service_path>/api/swagger.json               (published)
"""

from __future__ import annotations

from pathlib import Path

from specwright.models.artifacts import ArtifactKind, ArtifactSpec
from specwright.models.config import PluginConfig

DEFAULT_WORK_DIR = ".specwright"


class StagingArea:
    """Maps configured outputs to staged and published paths.

    Parameters
    ----------
    service_path:
        Project root.  Relative output paths resolve against it.
    config:
        Host configuration.  ``spec`` and ``routes`` are required
        (``ConfigurationError`` otherwise).
    work_dir_name:
        Name of the hidden staging directory under ``service_path``.
    """

    def __init__(
        self,
        service_path: Path | str,
        config: PluginConfig,
        work_dir_name: str = DEFAULT_WORK_DIR,
    ) -> None:
        self.service_path = Path(service_path).resolve()
        self.work_dir = self.service_path / work_dir_name
        self._config = config
        spec, routes = config.require_generation_config()

        spec_published = self._resolve(spec.output_directory) / spec.file_name
        routes_published = self._resolve(routes.routes_dir) / routes.routes_file_name

        self._artifacts: dict[ArtifactKind, ArtifactSpec] = {
            ArtifactKind.SPEC: self._make(ArtifactKind.SPEC, spec_published),
            ArtifactKind.ROUTES: self._make(ArtifactKind.ROUTES, routes_published),
        }
        if config.client is not None:
            self._artifacts[ArtifactKind.CLIENT] = self._make(
                ArtifactKind.CLIENT, self._resolve(config.client.output)
            )

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def _resolve(self, path: Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.service_path / path

    def _relative(self, published: Path) -> Path:
        """Path of ``published`` below the service path (anchor-stripped if outside)."""
        try:
            return published.relative_to(self.service_path)
        except ValueError:
            return Path(*published.parts[1:])

    def _make(self, kind: ArtifactKind, published: Path) -> ArtifactSpec:
        return ArtifactSpec(
            kind=kind,
            staged_path=self.work_dir / self._relative(published),
            published_path=published,
        )

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def artifact(self, kind: ArtifactKind) -> ArtifactSpec | None:
        """Return the ArtifactSpec for a kind, or None if not configured."""
        return self._artifacts.get(kind)

    def spec_artifact(self) -> ArtifactSpec:
        return self._artifacts[ArtifactKind.SPEC]

    def routes_artifact(self) -> ArtifactSpec:
        return self._artifacts[ArtifactKind.ROUTES]

    def artifacts(self) -> list[ArtifactSpec]:
        """All configured artifacts, spec first."""
        return list(self._artifacts.values())

    def spec_copy_destinations(self) -> list[Path]:
        """Extra destinations for the published spec, one per ``copies`` entry."""
        spec_rel = self._relative(self.spec_artifact().published_path)
        return [self._resolve(copy_dir) / spec_rel for copy_dir in self._config.copies]

    def reset(self, artifact: ArtifactSpec) -> None:
        """Remove a stale staged file so a silent generator cannot republish it."""
        artifact.staged_path.unlink(missing_ok=True)
        artifact.staged_path.parent.mkdir(parents=True, exist_ok=True)


def output_paths(
    config: PluginConfig,
    service_path: Path | str,
    work_dir_name: str = DEFAULT_WORK_DIR,
) -> frozenset[Path]:
    """Every path the orchestrator itself writes to.

    The watch loop excludes these so its own writes never re-trigger it.
    Recomputed from configuration whenever watching starts.
    """
    staging = StagingArea(service_path, config, work_dir_name)
    paths: set[Path] = {staging.work_dir}
    for artifact in staging.artifacts():
        paths.add(artifact.staged_path)
        paths.add(artifact.published_path)
    paths.update(staging.spec_copy_destinations())
    return frozenset(paths)
