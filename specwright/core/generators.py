"""Pluggable generator backends.

The three generators are opaque to the orchestrator.  Any callable with the
right shape satisfies the protocols below, sync or async:

- ``SpecGenerator(config)`` writes the interface-description document to
  ``config.output_directory / config.file_name``.
- ``RouteGenerator(config, spec_path)`` writes routing glue to
  ``config.routes_dir / config.routes_file_name``.
- ``ClientGenerator(config, spec_path)`` writes the client to
  ``config.output``.

Generators are named in configuration either by import path
(``"mypkg.codegen:make_spec"``) or as a command line run in the service
directory, e.g.::

    generators:
      spec:
        command: npx tsoa spec --outputDirectory {output_directory}
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Protocol, runtime_checkable

from pydantic import BaseModel

from specwright.models.config import (
    ClientConfig,
    ConfigurationError,
    GeneratorRef,
    PluginConfig,
    RoutesConfig,
    SpecConfig,
)

logger = logging.getLogger(__name__)


class GeneratorError(RuntimeError):
    """Raised when a generator reports failure."""


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class SpecGenerator(Protocol):
    def __call__(self, config: SpecConfig) -> Any: ...


@runtime_checkable
class RouteGenerator(Protocol):
    def __call__(self, config: RoutesConfig, spec_path: Path) -> Any: ...


@runtime_checkable
class ClientGenerator(Protocol):
    def __call__(self, config: ClientConfig, spec_path: Path) -> Any: ...


@dataclass(frozen=True)
class GeneratorSet:
    """The generators one orchestrator uses."""

    spec: SpecGenerator
    routes: RouteGenerator
    client: ClientGenerator | None = None


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------


def _is_async(fn: Callable[..., Any]) -> bool:
    return inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(
        getattr(fn, "__call__", None)
    )


async def invoke(generator: Callable[..., Any], *args: Any) -> Any:
    """Call a generator without blocking the event loop.

    Coroutine functions are awaited directly; plain callables run in a
    worker thread (and an awaitable they return is awaited).
    """
    if _is_async(generator):
        return await generator(*args)
    result = await asyncio.to_thread(generator, *args)
    if inspect.isawaitable(result):
        result = await result
    return result


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


def load_entry_point(ref: str) -> Callable[..., Any]:
    """Import ``"package.module:attr"`` and return the callable."""
    module_name, sep, attr_path = ref.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigurationError(
            f"Invalid generator entry point {ref!r}; expected 'module:callable'"
        )
    try:
        target: Any = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            target = getattr(target, attr)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(f"Cannot load generator {ref!r}: {exc}") from exc
    if not callable(target):
        raise ConfigurationError(f"Generator {ref!r} is not callable")
    return target


class CommandGenerator:
    """Runs an external command as a generator.

    Each argv element may contain ``{placeholders}``, filled from the
    generator's configuration fields (``output_directory``, ``routes_dir``,
    ``output``, ...) plus ``spec_path`` and ``service_path``.

    Parameters
    ----------
    argv:
        Command line, already split.
    cwd:
        Working directory for the command (the service path).
    """

    def __init__(self, argv: list[str], cwd: Path) -> None:
        if not argv:
            raise ConfigurationError("Generator command is empty")
        self.argv = list(argv)
        self.cwd = Path(cwd)

    def _format(self, config: BaseModel, spec_path: Path | None) -> list[str]:
        context: dict[str, Any] = config.model_dump()
        context["service_path"] = self.cwd
        context["spec_path"] = spec_path if spec_path is not None else ""
        if isinstance(config, SpecConfig):
            context["output_file"] = Path(config.output_directory) / config.file_name
        try:
            return [part.format_map(context) for part in self.argv]
        except (KeyError, IndexError, ValueError) as exc:
            raise GeneratorError(
                f"Cannot format command {self.argv!r}: unknown placeholder {exc}"
            ) from exc

    async def __call__(self, config: BaseModel, spec_path: Path | None = None) -> None:
        argv = self._format(config, spec_path)
        logger.debug("Running generator command: %s", " ".join(argv))
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=self.cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            detail = (stderr or stdout).decode("utf-8", errors="replace").strip()
            raise GeneratorError(
                f"{argv[0]} exited with status {proc.returncode}: {detail[-2000:]}"
            )

    def __repr__(self) -> str:
        return f"CommandGenerator(argv={self.argv!r}, cwd={str(self.cwd)!r})"


def resolve_generator(ref: GeneratorRef, service_path: Path) -> Callable[..., Any]:
    """Turn a configured GeneratorRef into a callable."""
    if ref.entry_point is not None:
        return load_entry_point(ref.entry_point)
    return CommandGenerator(ref.command or [], service_path)


def resolve_generators(config: PluginConfig, service_path: Path | str) -> GeneratorSet:
    """Build the GeneratorSet named by ``config.generators``."""
    service_path = Path(service_path)
    refs = config.generators
    if refs.spec is None:
        raise ConfigurationError("No generator configured for the spec artifact")
    if refs.routes is None:
        raise ConfigurationError("No generator configured for the routes artifact")
    if config.client is not None and refs.client is None:
        raise ConfigurationError("A client output is configured but no client generator")

    return GeneratorSet(
        spec=resolve_generator(refs.spec, service_path),
        routes=resolve_generator(refs.routes, service_path),
        client=resolve_generator(refs.client, service_path) if refs.client else None,
    )
