"""Conditional Publisher: copy a staged file only when its bytes changed.

This is the single idempotency primitive used for every artifact.  Calling
``publish`` when nothing changed performs no filesystem write at all, so the
destination's mtime is untouched and downstream watchers stay quiet.

Writes are atomic per file: the bytes land in a temporary file next to the
destination, which is then moved over it with ``os.replace``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from pathlib import Path

from specwright.core.hasher import afingerprint_file
from specwright.models.runs import PublishOutcome

logger = logging.getLogger(__name__)


def _atomic_copy(src: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        shutil.copyfile(src, tmp)
        os.replace(tmp, dest)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


async def publish(staged: Path | str, dest: Path | str) -> PublishOutcome:
    """Publish ``staged`` to ``dest`` if their contents differ.

    Both fingerprints are computed concurrently.  I/O errors while copying
    (missing staged file, permissions, disk full) propagate to the caller.
    """
    staged, dest = Path(staged), Path(dest)
    staged_fp, dest_fp = await asyncio.gather(
        afingerprint_file(staged), afingerprint_file(dest)
    )

    if staged_fp == dest_fp:
        return PublishOutcome.UNCHANGED

    await asyncio.to_thread(_atomic_copy, staged, dest)
    logger.debug("Published %s -> %s", staged, dest)
    return PublishOutcome.WRITTEN
