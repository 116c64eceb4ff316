"""Shared test fixtures for specwright."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from specwright.config import SpecwrightSettings
from specwright.core.generators import GeneratorSet
from specwright.core.pipeline import GenerationPipeline
from specwright.core.staging import StagingArea
from specwright.models.config import (
    ClientConfig,
    PluginConfig,
    RoutesConfig,
    SpecConfig,
)


class FakeGenerators:
    """Deterministic in-process generators that record their calls.

    The spec generator is async, the route generator is sync (so it runs in a
    worker thread) and the client generator is async.
    """

    def __init__(self) -> None:
        self.spec_content = b'{"openapi": "3.0.0", "paths": {}}'
        self.calls: dict[str, int] = {"spec": 0, "routes": 0, "client": 0}
        self.fail: set[str] = set()
        self.silent: set[str] = set()  # "succeed" without writing anything
        self.spec_configs: list[SpecConfig] = []

    def _check(self, kind: str) -> bool:
        self.calls[kind] += 1
        if kind in self.fail:
            raise RuntimeError(f"{kind} generator exploded")
        return kind not in self.silent

    async def spec(self, config: SpecConfig) -> None:
        self.spec_configs.append(config)
        if not self._check("spec"):
            return
        out = Path(config.output_directory) / config.file_name
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(self.spec_content)

    def routes(self, config: RoutesConfig, spec_path: Path) -> None:
        if not self._check("routes"):
            return
        out = Path(config.routes_dir) / config.routes_file_name
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(b"// generated routes\n// " + Path(spec_path).read_bytes())

    async def client(self, config: ClientConfig, spec_path: Path) -> None:
        await asyncio.sleep(0)
        if not self._check("client"):
            return
        out = Path(config.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(b"// generated client\n// " + Path(spec_path).read_bytes())

    def as_set(self, *, client: bool = False) -> GeneratorSet:
        return GeneratorSet(
            spec=self.spec,
            routes=self.routes,
            client=self.client if client else None,
        )


@pytest.fixture
def service_path(tmp_path: Path) -> Path:
    """Provide an empty project root with one source file."""
    root = tmp_path / "service"
    (root / "src").mkdir(parents=True)
    (root / "src" / "handler.ts").write_text("export const handler = () => 1;\n")
    return root.resolve()


@pytest.fixture
def plugin_config() -> PluginConfig:
    """Provide the example configuration: api/openapi.json + src/generated/routes.ts."""
    return PluginConfig(
        spec=SpecConfig(output_directory=Path("api"), spec_file_base_name="openapi"),
        routes=RoutesConfig(routes_dir=Path("src/generated"), routes_file_name="routes.ts"),
    )


@pytest.fixture
def client_config(plugin_config: PluginConfig) -> PluginConfig:
    """The example configuration plus a client target."""
    return plugin_config.model_copy(
        update={"client": ClientConfig(output=Path("client/index.ts"))}
    )


@pytest.fixture
def fake_generators() -> FakeGenerators:
    return FakeGenerators()


@pytest.fixture
def fast_settings() -> SpecwrightSettings:
    """Settings with short debounce and retry delays."""
    return SpecwrightSettings(
        debounce_ms=20,
        step_ms=10,
        retry_initial_delay=0.01,
        retry_max_delay=0.05,
    )


@pytest.fixture
def make_pipeline(
    service_path: Path, fake_generators: FakeGenerators
) -> Callable[..., GenerationPipeline]:
    """Factory fixture: build a GenerationPipeline over the test project."""

    def _factory(config: PluginConfig, **overrides: Any) -> GenerationPipeline:
        staging = StagingArea(service_path, config)
        generators = overrides.pop(
            "generators", fake_generators.as_set(client=config.client is not None)
        )
        return GenerationPipeline(config, staging, generators)

    return _factory
