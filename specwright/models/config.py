"""Host configuration models (the ``specwright`` block of the host file).

Keys are accepted in camelCase, as written in ``serverless.yml``, or in
snake_case.  Keys the models do not know are kept and handed through to the
generators untouched.

These models are *not* frozen: generators receive a deep copy
per run and are free to mutate it.
"""

from __future__ import annotations

import shlex
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator
from pydantic.alias_generators import to_camel

CONFIG_KEY = "specwright"


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or malformed."""


_HOST_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="allow",
)


class SpecConfig(BaseModel):
    """Where the interface-description document is written."""

    model_config = _HOST_MODEL_CONFIG

    output_directory: Path
    spec_file_base_name: str = "swagger"
    yaml: bool = False

    @property
    def file_name(self) -> str:
        return f"{self.spec_file_base_name}.{'yaml' if self.yaml else 'json'}"


class RoutesConfig(BaseModel):
    """Where the generated routing glue is written."""

    model_config = _HOST_MODEL_CONFIG

    routes_dir: Path
    routes_file_name: str = "routes.ts"


class ClientConfig(BaseModel):
    """Client library target.  A bare string is shorthand for ``output``."""

    model_config = _HOST_MODEL_CONFIG

    output: Path

    @model_validator(mode="before")
    @classmethod
    def _from_path(cls, data: Any) -> Any:
        if isinstance(data, (str, Path)):
            return {"output": data}
        return data


class GeneratorRef(BaseModel):
    """Points at a generator: an import path or a command line.

    ``entry_point`` is ``"package.module:callable"``.  ``command`` is an
    argv list (or a string split with shlex) whose ``{placeholders}`` are
    filled from the generator's configuration.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    entry_point: str | None = None
    command: list[str] | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"entry_point": data}
        if isinstance(data, dict) and isinstance(data.get("command"), str):
            return {**data, "command": shlex.split(data["command"])}
        return data

    @model_validator(mode="after")
    def _exactly_one(self) -> GeneratorRef:
        if (self.entry_point is None) == (self.command is None):
            raise ValueError("generator needs exactly one of 'entryPoint' or 'command'")
        return self


class GeneratorRefs(BaseModel):
    """Generator per artifact kind."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    spec: GeneratorRef | None = None
    routes: GeneratorRef | None = None
    client: GeneratorRef | None = None


class PluginConfig(BaseModel):
    """The full ``specwright`` configuration block."""

    model_config = _HOST_MODEL_CONFIG

    reload_handler: bool = False
    spec: SpecConfig | None = None
    routes: RoutesConfig | None = None
    client: ClientConfig | None = None
    copies: list[Path] = []  # e.g. a bundler's intermediate output directory
    generators: GeneratorRefs = GeneratorRefs()

    def require_generation_config(self) -> tuple[SpecConfig, RoutesConfig]:
        """Return the spec and routes blocks, or raise ConfigurationError."""
        if self.spec is None:
            raise ConfigurationError(
                f"No custom.{CONFIG_KEY}.spec configuration found"
            )
        if self.routes is None:
            raise ConfigurationError(
                f"No custom.{CONFIG_KEY}.routes configuration found"
            )
        return self.spec, self.routes


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _read_document(path: Path) -> Any:
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration file {path}: {exc}") from exc

    try:
        if path.suffix == ".toml":
            return tomllib.loads(raw.decode("utf-8"))
        return yaml.safe_load(raw) or {}
    except (tomllib.TOMLDecodeError, yaml.YAMLError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Cannot parse configuration file {path}: {exc}") from exc


def extract_block(document: Any) -> Any:
    """Find the specwright block in a parsed host document.

    Lookup order: ``custom.specwright`` (serverless.yml), then
    ``tool.specwright`` (pyproject.toml), then the document itself.
    """
    if not isinstance(document, dict):
        return document
    for section in ("custom", "tool"):
        container = document.get(section)
        if isinstance(container, dict) and CONFIG_KEY in container:
            return container[CONFIG_KEY]
    return document


def load_plugin_config(path: Path | str) -> PluginConfig:
    """Load and validate a PluginConfig from a YAML or TOML file."""
    path = Path(path)
    block = extract_block(_read_document(path))
    if block is None:
        block = {}
    if not isinstance(block, dict):
        raise ConfigurationError(
            f"The {CONFIG_KEY} block in {path} must be a mapping, got {type(block).__name__}"
        )
    try:
        return PluginConfig.model_validate(block)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {path}:\n{exc}") from exc
