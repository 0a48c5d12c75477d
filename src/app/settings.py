"""Configuration helpers for the review scheduler runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

from src.db.schedules import DEFAULT_HISTORY_SIZE


_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    strict_tags: bool
    history_size: int

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", "Review Scheduler")
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        strict_tags = os.getenv("SRS_STRICT_TAGS", "false").lower() in _TRUE_VALUES

        try:
            history_size = int(os.getenv("SRS_HISTORY_SIZE", str(DEFAULT_HISTORY_SIZE)))
        except ValueError as exc:
            raise RuntimeError("SRS_HISTORY_SIZE must be an integer.") from exc

        if history_size < 1:
            raise RuntimeError("SRS_HISTORY_SIZE must be a positive integer.")

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            strict_tags=strict_tags,
            history_size=history_size,
        )
