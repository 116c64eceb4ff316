"""Content fingerprinting for change detection.

Fingerprints are SHA-1 digests of a file's bytes.  They detect change, they
do not prove integrity.  A file that cannot be read gets an *unstable*
fingerprint (a fresh random digest on every call), so any comparison
against it reports "different" and a conditional publish goes ahead.
"""

from __future__ import annotations

import asyncio
import hashlib
import uuid
from pathlib import Path

from specwright.models.artifacts import Fingerprint


def sha1_hex(data: bytes) -> str:
    """Return the SHA-1 hex digest of raw bytes."""
    return hashlib.sha1(data).hexdigest()


def unstable_fingerprint() -> Fingerprint:
    """A fingerprint that is never equal to any other."""
    return Fingerprint(digest=sha1_hex(uuid.uuid4().bytes), stable=False)


def fingerprint_file(path: Path | str) -> Fingerprint:
    """Fingerprint a file's full byte content.

    Missing files, permission errors and directories all yield an unstable
    fingerprint.  This never raises.
    """
    try:
        data = Path(path).read_bytes()
    except OSError:
        return unstable_fingerprint()
    return Fingerprint(digest=sha1_hex(data))


async def afingerprint_file(path: Path | str) -> Fingerprint:
    """``fingerprint_file`` off the event loop."""
    return await asyncio.to_thread(fingerprint_file, path)
