"""Generation run records and the watch-loop state model."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from specwright.models.artifacts import ArtifactKind


class PublishOutcome(str, Enum):
    """Result of a single conditional publish."""

    WRITTEN = "written"
    UNCHANGED = "unchanged"


class ArtifactOutcome(str, Enum):
    """Per-artifact outcome within one generation run."""

    WRITTEN = "written"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class RunOutcome(str, Enum):
    """Overall outcome of one generation run."""

    SUCCEEDED = "succeeded"
    UNCHANGED = "unchanged"  # spec short-circuit, nothing downstream ran
    PARTIAL_FAILURE = "partial_failure"
    FAILED = "failed"  # spec stage failed, nothing downstream attempted


class WatchState(str, Enum):
    """States of the watch loop."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    STOPPED = "stopped"


# Enforced by WatchLoop. FAILED -> IDLE re-arms the subscription (retry).
VALID_WATCH_TRANSITIONS: dict[WatchState, set[WatchState]] = {
    WatchState.IDLE: {WatchState.RUNNING, WatchState.STOPPED},
    WatchState.RUNNING: {WatchState.SUCCEEDED, WatchState.FAILED, WatchState.STOPPED},
    WatchState.SUCCEEDED: {WatchState.IDLE},
    WatchState.FAILED: {WatchState.IDLE},
    WatchState.STOPPED: set(),  # terminal
}


def _new_run_id() -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return f"gen-{ts}-{uuid.uuid4().hex[:4]}"


class ArtifactResult(BaseModel):
    """What happened to one artifact during a run."""

    model_config = ConfigDict(frozen=True)

    kind: ArtifactKind
    staged_path: Path
    published_path: Path
    outcome: ArtifactOutcome
    error: str | None = None  # populated when outcome is FAILED


class GenerationRun(BaseModel):
    """One end-to-end execution of the generation pipeline.

    Created per run and discarded after logging/reporting.  ``artifacts``
    lists the artifacts attempted, in order; ``copies`` holds the extra
    spec copies published at the end of the run.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=_new_run_id)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    artifacts: list[ArtifactResult] = []
    copies: list[ArtifactResult] = []
    short_circuited: bool = False

    @property
    def outcome(self) -> RunOutcome:
        spec = self.result_for(ArtifactKind.SPEC)
        if spec is None or spec.outcome == ArtifactOutcome.FAILED:
            return RunOutcome.FAILED
        if any(r.outcome == ArtifactOutcome.FAILED for r in self.artifacts + self.copies):
            return RunOutcome.PARTIAL_FAILURE
        if self.short_circuited:
            return RunOutcome.UNCHANGED
        return RunOutcome.SUCCEEDED

    @property
    def ok(self) -> bool:
        """True when nothing failed."""
        return self.outcome in (RunOutcome.SUCCEEDED, RunOutcome.UNCHANGED)

    @property
    def written_count(self) -> int:
        return sum(
            1 for r in self.artifacts + self.copies if r.outcome == ArtifactOutcome.WRITTEN
        )

    def result_for(self, kind: ArtifactKind) -> ArtifactResult | None:
        """Return the result for an artifact kind, or None if not attempted."""
        for result in self.artifacts:
            if result.kind == kind:
                return result
        return None

    def summary(self) -> str:
        """One-line summary, e.g. ``spec: written, routes: unchanged``."""
        parts = [f"{r.kind.value}: {r.outcome.value}" for r in self.artifacts]
        if self.copies:
            written = sum(1 for r in self.copies if r.outcome == ArtifactOutcome.WRITTEN)
            parts.append(f"copies: {written}/{len(self.copies)} written")
        return ", ".join(parts) or "nothing attempted"
