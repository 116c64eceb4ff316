"""Runtime settings, read from the environment.

Host configuration (what to generate, where) lives in
``specwright.models.config``.  These settings control how the orchestrator
behaves: logging, the staging directory name, watch debouncing and retry
backoff.  They are read from ``SPECWRIGHT_*`` environment variables or a
``.env`` file.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class SpecwrightSettings(BaseSettings):
    """Runtime settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export SPECWRIGHT_LOG_LEVEL=DEBUG
        export SPECWRIGHT_DEBOUNCE_MS=800
        export SPECWRIGHT_FORCE_POLLING=true
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SPECWRIGHT_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Host configuration file, relative to the service path
    config_file: Path = Path("specwright.yml")

    # Hidden per-project staging directory
    work_dir_name: str = ".specwright"

    # Watch loop: a change batch is only delivered after this much quiet
    debounce_ms: int = 300
    step_ms: int = 50
    force_polling: bool = False

    # Failure recovery backoff
    retry_initial_delay: float = 0.5
    retry_max_delay: float = 30.0
    retry_backoff_factor: float = 2.0

    def next_retry_delay(self, previous: float | None) -> float:
        """Exponential backoff: initial delay, then multiplied, capped."""
        if previous is None:
            return self.retry_initial_delay
        return min(previous * self.retry_backoff_factor, self.retry_max_delay)


# Module-level singleton: import as `from specwright.config import settings`
settings = SpecwrightSettings()
