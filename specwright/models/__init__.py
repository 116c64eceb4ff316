"""specwright data models: Pydantic v2."""

from specwright.models.artifacts import ArtifactKind, ArtifactSpec, Fingerprint
from specwright.models.config import (
    ClientConfig,
    ConfigurationError,
    GeneratorRef,
    GeneratorRefs,
    PluginConfig,
    RoutesConfig,
    SpecConfig,
    load_plugin_config,
)
from specwright.models.runs import (
    VALID_WATCH_TRANSITIONS,
    ArtifactOutcome,
    ArtifactResult,
    GenerationRun,
    PublishOutcome,
    RunOutcome,
    WatchState,
)

__all__ = [
    # artifacts
    "ArtifactKind",
    "ArtifactSpec",
    "Fingerprint",
    # config
    "SpecConfig",
    "RoutesConfig",
    "ClientConfig",
    "GeneratorRef",
    "GeneratorRefs",
    "PluginConfig",
    "ConfigurationError",
    "load_plugin_config",
    # runs
    "PublishOutcome",
    "ArtifactOutcome",
    "ArtifactResult",
    "RunOutcome",
    "GenerationRun",
    "WatchState",
    "VALID_WATCH_TRANSITIONS",
]
