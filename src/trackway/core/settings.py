"""Settings for Trackway.

Trackway itself needs very little configuration: chains are built in code.
What is configurable is how the runner *reports* what it does: log level,
output format, and whether step values may appear in log events.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Step values routinely hold user input (passwords, tokens), so they
    stay out of the logs unless someone opts in.

    - **Pydantic validation:** Type-checked at startup, not at log time
    - **Environment-driven:** Reads ``TRACKWAY_*`` env vars and ``.env`` files
    - **Sensible defaults:** Works out of the box, logs no values

Examples:
    >>> from trackway.core.settings import TrackwaySettings
    >>> TrackwaySettings(log_level="DEBUG", trace_steps=True).trace_steps
    True

Tags:
    settings, configuration, pydantic, environment, trackway

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class TrackwaySettings(BaseSettings):
    """Runner and logging settings.

    Fields
    ──────
    log_level    : Structlog log level
    json_logs    : True for JSON, False for console, None to auto-detect a tty
    service      : Service name attached to every log event
    log_values   : Include step values in halt/trace log events
    trace_steps  : Emit a debug event for every executed step
    """

    model_config = SettingsConfigDict(
        env_prefix="TRACKWAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None
    service: str = "trackway"

    # ── Runner ───────────────────────────────────────────────────
    log_values: bool = Field(
        default=False,
        description="Include step values in log events (may expose user input)",
    )
    trace_steps: bool = False

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LEVELS)}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> TrackwaySettings:
    """Return the process-wide settings, read once from the environment."""
    return TrackwaySettings()


__all__ = ["TrackwaySettings", "get_settings"]
