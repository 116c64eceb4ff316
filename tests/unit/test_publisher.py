"""Tests for the conditional publisher: write only when bytes changed."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from specwright.core.publisher import publish
from specwright.models.runs import PublishOutcome


@pytest.fixture
def staged(tmp_path: Path) -> Path:
    path = tmp_path / ".specwright" / "api" / "openapi.json"
    path.parent.mkdir(parents=True)
    path.write_bytes(b'{"openapi": "3.0.0"}')
    return path


class TestPublish:
    @pytest.mark.asyncio
    async def test_missing_destination_is_written(self, tmp_path: Path, staged: Path):
        dest = tmp_path / "api" / "openapi.json"
        outcome = await publish(staged, dest)
        assert outcome is PublishOutcome.WRITTEN
        assert dest.read_bytes() == staged.read_bytes()

    @pytest.mark.asyncio
    async def test_creates_parent_directories(self, tmp_path: Path, staged: Path):
        dest = tmp_path / "deep" / "nested" / "dir" / "openapi.json"
        await publish(staged, dest)
        assert dest.is_file()

    @pytest.mark.asyncio
    async def test_identical_bytes_leave_destination_untouched(
        self, tmp_path: Path, staged: Path
    ):
        dest = tmp_path / "api" / "openapi.json"
        await publish(staged, dest)
        os.utime(dest, ns=(1_000_000_000, 1_000_000_000))

        outcome = await publish(staged, dest)

        assert outcome is PublishOutcome.UNCHANGED
        assert dest.stat().st_mtime_ns == 1_000_000_000

    @pytest.mark.asyncio
    async def test_changed_bytes_overwrite(self, tmp_path: Path, staged: Path):
        dest = tmp_path / "api" / "openapi.json"
        dest.parent.mkdir(parents=True)
        dest.write_bytes(b"stale")
        outcome = await publish(staged, dest)
        assert outcome is PublishOutcome.WRITTEN
        assert dest.read_bytes() == b'{"openapi": "3.0.0"}'

    @pytest.mark.asyncio
    async def test_no_temporary_files_left_behind(self, tmp_path: Path, staged: Path):
        dest = tmp_path / "api" / "openapi.json"
        await publish(staged, dest)
        assert [p.name for p in dest.parent.iterdir()] == ["openapi.json"]

    @pytest.mark.asyncio
    async def test_missing_staged_file_raises(self, tmp_path: Path):
        dest = tmp_path / "api" / "openapi.json"
        dest.parent.mkdir(parents=True)
        dest.write_bytes(b"published")
        with pytest.raises(OSError):
            await publish(tmp_path / "nowhere.json", dest)
        assert dest.read_bytes() == b"published"
        assert [p.name for p in dest.parent.iterdir()] == ["openapi.json"]
