"""Runner settings, read from the environment.

``RunnerSettings`` carries the defaults a :class:`~jobqueue.runner.Runner`
falls back to when it is constructed without an explicit limit, plus the
logging knobs used by :func:`jobqueue.logging.configure_logging`.

Environment variables use the ``JOBQUEUE_`` prefix::

    JOBQUEUE_CONCURRENCY=4
    JOBQUEUE_LOG_LEVEL=DEBUG
    JOBQUEUE_LOG_FORMAT=json

Examples:
    >>> from jobqueue.settings import get_settings
    >>> get_settings().concurrency
    1
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONCURRENCY = 1


def is_valid_concurrency(value: Any) -> bool:
    """True for positive ints. ``bool`` is rejected even though it is an ``int``."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def coerce_concurrency(value: Any) -> int:
    """Return ``value`` as a positive int, or :data:`DEFAULT_CONCURRENCY`.

    Numeric strings (as read from the environment) are parsed first.
    """
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return DEFAULT_CONCURRENCY
    return value if is_valid_concurrency(value) else DEFAULT_CONCURRENCY


class RunnerSettings(BaseSettings):
    """Defaults shared by every runner in the process.

    Fields
    ──────
    concurrency  : Limit used when ``Runner()`` gets no explicit value
    log_level    : Structlog log level
    log_format   : ``json``, ``console``, or ``None`` to pick by TTY
    """

    model_config = SettingsConfigDict(
        env_prefix="JOBQUEUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    concurrency: int = DEFAULT_CONCURRENCY

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: Literal["json", "console"] | None = None

    @field_validator("concurrency", mode="before")
    @classmethod
    def _positive_concurrency(cls, value: Any) -> int:
        return coerce_concurrency(value)

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


@lru_cache(maxsize=1)
def get_settings() -> RunnerSettings:
    """Cached settings instance. Call ``get_settings.cache_clear()`` to reload."""
    return RunnerSettings()


__all__ = [
    "DEFAULT_CONCURRENCY",
    "RunnerSettings",
    "coerce_concurrency",
    "get_settings",
    "is_valid_concurrency",
]
