"""Artifact identity and content fingerprint models."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ArtifactKind(str, Enum):
    """Logical kind of a derived artifact."""

    SPEC = "spec"
    ROUTES = "routes"
    CLIENT = "client"


class ArtifactSpec(BaseModel):
    """Identifies one derived artifact.

    The generator writes to ``staged_path`` (inside the staging area); the
    Conditional Publisher copies it to ``published_path`` when the bytes
    differ.  Built once per orchestrator and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    kind: ArtifactKind
    staged_path: Path
    published_path: Path


class Fingerprint(BaseModel):
    """Digest of a file's bytes, used only for change detection.

    An unstable fingerprint (file could not be read) carries a random
    digest, so it never compares equal to any other fingerprint.
    """

    model_config = ConfigDict(frozen=True)

    digest: str  # sha1 hex
    stable: bool = True
