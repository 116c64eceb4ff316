"""Watch loop with coalescing and failure recovery.

The loop is an explicit state machine::

    IDLE -> RUNNING -> SUCCEEDED -> IDLE
                    -> FAILED    -> IDLE   (retry scheduled)
    IDLE | RUNNING -> STOPPED

File changes only set a pending flag.  The loop waits for that flag (or a
retry deadline), clears it, and awaits exactly one run.  Changes that arrive
while a run is in flight therefore collapse into a single follow-up run,
started only after the current one settles.  Runs never overlap and the
loop never recurses.

If the change source itself fails, it is resubscribed with the same backoff
as failed runs until the loop stops.

The watcher excludes hidden paths and every output path the orchestrator
writes, so publishing never re-triggers generation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from watchfiles import Change, DefaultFilter, awatch

from specwright.config import SpecwrightSettings
from specwright.config import settings as default_settings
from specwright.models.runs import VALID_WATCH_TRANSITIONS, GenerationRun, WatchState

logger = logging.getLogger(__name__)

Runner = Callable[[], Awaitable[GenerationRun]]
ChangeSource = Callable[..., AsyncIterator[set[tuple[Change, str]]]]


class InvalidTransitionError(RuntimeError):
    """Raised when a requested watch state transition is not valid."""


class WatchFilter(DefaultFilter):
    """watchfiles filter that also drops hidden paths and our own outputs.

    Parameters
    ----------
    root:
        Watched root.  Hidden-ness is judged on the path below it.
    exclusions:
        Output paths (files or directories) that must never trigger a run.
    """

    def __init__(self, root: Path | str, exclusions: Iterable[Path | str]) -> None:
        super().__init__()
        self.root = Path(root).resolve()
        self.exclusions = frozenset(Path(p) for p in exclusions)
        # Directories holding outputs report mtime changes when we publish.
        self._output_parents = frozenset(
            parent
            for p in self.exclusions
            for parent in p.parents
            if self.root in parent.parents
        )

    def __call__(self, change: Change, path: str) -> bool:
        if not super().__call__(change, path):
            return False
        p = Path(path)
        try:
            rel = p.relative_to(self.root)
        except ValueError:
            rel = p
        if any(part.startswith(".") for part in rel.parts):
            return False
        if p in self.exclusions or any(parent in self.exclusions for parent in p.parents):
            return False
        if p in self._output_parents:
            return False
        return True


@dataclass
class WatchSession:
    """State of one active subscription."""

    root: Path
    exclusions: frozenset[Path]
    in_flight: bool = False
    subscriptions: int = 0
    runs: int = 0
    failures: int = 0
    coalesced_events: int = 0
    pending_changes: set[Path] = field(default_factory=set)


class WatchLoop:
    """Serializes regeneration runs in response to file changes.

    Parameters
    ----------
    runner:
        Coroutine function performing one generation run.
    root:
        Directory to watch recursively.
    exclusions:
        Paths to ignore, normally ``output_paths(config, root)``.
    settings:
        Debounce and retry settings.
    watcher:
        Change source with the ``watchfiles.awatch`` signature.
    """

    def __init__(
        self,
        runner: Runner,
        root: Path | str,
        exclusions: Iterable[Path | str],
        *,
        settings: SpecwrightSettings | None = None,
        watcher: ChangeSource = awatch,
    ) -> None:
        self._runner = runner
        self._settings = settings or default_settings
        self._watcher = watcher
        self.session = WatchSession(
            root=Path(root).resolve(),
            exclusions=frozenset(Path(p) for p in exclusions),
        )
        self._state = WatchState.IDLE
        self._trigger = asyncio.Event()
        self._stop = asyncio.Event()
        self._retry_delay: float | None = None
        self.last_run: GenerationRun | None = None

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def retry_delay(self) -> float | None:
        """Delay before the scheduled retry, or None when none is pending."""
        return self._retry_delay

    def _transition(self, target: WatchState) -> None:
        allowed = VALID_WATCH_TRANSITIONS.get(self._state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition watch loop from {self._state.value} to {target.value}. "
                f"Allowed: {[s.value for s in allowed]}"
            )
        self._state = target

    def _shutdown(self) -> None:
        if self._state in (WatchState.SUCCEEDED, WatchState.FAILED):
            self._transition(WatchState.IDLE)
        if self._state is not WatchState.STOPPED:
            self._transition(WatchState.STOPPED)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def notify(self, paths: Iterable[Path | str] = ()) -> None:
        """Record changed paths and request a run."""
        changed = {Path(p) for p in paths}
        for p in sorted(changed):
            logger.debug("File %s has been changed", p)
        self.session.pending_changes.update(changed)
        if self.session.in_flight:
            self.session.coalesced_events += 1
        self._trigger.set()

    def stop(self) -> None:
        """Stop once the in-flight run (if any) has finished."""
        self._stop.set()

    async def run(self, *, run_immediately: bool = True) -> None:
        """Subscribe and process changes until ``stop()`` is called."""
        if self._state is WatchState.STOPPED:
            raise InvalidTransitionError("Watch loop has already stopped")
        if run_immediately:
            self._trigger.set()

        subscription = asyncio.create_task(self._subscribe())
        logger.info("Watching %s for changes", self.session.root)
        try:
            while await self._wait_for_trigger():
                await self._run_once()
        finally:
            self._stop.set()
            subscription.cancel()
            await asyncio.gather(subscription, return_exceptions=True)
            self._shutdown()
            logger.info(
                "Stopped watching %s after %d run(s), %d failure(s)",
                self.session.root,
                self.session.runs,
                self.session.failures,
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _subscribe(self) -> None:
        watch_filter = WatchFilter(self.session.root, self.session.exclusions)
        kwargs: dict[str, Any] = {
            "watch_filter": watch_filter,
            "debounce": self._settings.debounce_ms,
            "step": self._settings.step_ms,
            "stop_event": self._stop,
            "recursive": True,
        }
        if self._settings.force_polling:
            kwargs["force_polling"] = True

        delay: float | None = None
        while not self._stop.is_set():
            self.session.subscriptions += 1
            try:
                async for changes in self._watcher(self.session.root, **kwargs):
                    delay = None
                    self.notify(path for _, path in changes)
            except Exception as exc:
                delay = self._settings.next_retry_delay(delay)
                logger.warning(
                    "File watcher for %s failed: %s; resubscribing in %.2fs",
                    self.session.root,
                    exc,
                    delay,
                )
            else:
                if self._stop.is_set():
                    return
                delay = self._settings.next_retry_delay(delay)
                logger.warning(
                    "File watcher for %s ended; resubscribing in %.2fs", self.session.root, delay
                )
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

    async def _wait_for_trigger(self) -> bool:
        """Wait for a change, a retry deadline or stop.  False means stop."""
        if self._stop.is_set():
            return False
        trigger = asyncio.ensure_future(self._trigger.wait())
        stop = asyncio.ensure_future(self._stop.wait())
        try:
            await asyncio.wait(
                {trigger, stop},
                timeout=self._retry_delay,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            trigger.cancel()
            stop.cancel()

        if self._stop.is_set():
            return False
        if not self._trigger.is_set():
            logger.info("Retrying generation after %.2fs", self._retry_delay or 0.0)
        self._trigger.clear()
        return True

    async def _run_once(self) -> None:
        self._transition(WatchState.RUNNING)
        self.session.in_flight = True
        self.session.pending_changes.clear()
        self.session.runs += 1
        failed = False
        try:
            run = await self._runner()
        except Exception as exc:
            failed = True
            logger.warning("Generation failed: %s", exc)
        else:
            self.last_run = run
            if not run.ok:
                failed = True
                logger.warning("Generation run %s: %s", run.outcome.value, run.summary())
        finally:
            self.session.in_flight = False

        if failed:
            self.session.failures += 1
            self._retry_delay = self._settings.next_retry_delay(self._retry_delay)
            self._transition(WatchState.FAILED)
            logger.warning("Scheduled retry in %.2fs", self._retry_delay)
        else:
            self._retry_delay = None
            self._transition(WatchState.SUCCEEDED)
        self._transition(WatchState.IDLE)
