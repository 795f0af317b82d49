"""
cogc_planning.config.postgres – PostgreSQL connection and pool settings.

Env vars: DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT,
DB_POOL_RECYCLE, DB_ECHO, DB_APPLICATION_NAME.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from cogc_planning.core.exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "postgresql://localhost/cogc_planning"
_SCHEMES = ("postgresql://", "postgres://", "postgresql+asyncpg://")


@dataclass(frozen=True)
class PostgresConfig:
    """Connection settings; the URL is converted to postgresql+asyncpg by the engine."""

    url: str
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    # Seconds before a pooled connection is recycled
    pool_recycle: int = 1800
    echo: bool = False
    application_name: str = "cogc-planning"

    def __post_init__(self) -> None:
        if not self.url.startswith(_SCHEMES):
            raise ConfigurationError(
                "DATABASE_URL must start with postgresql://, postgres:// or postgresql+asyncpg://",
                details={"url_scheme": self.url.split(":", 1)[0]},
            )
        for name in ("pool_size", "pool_timeout", "pool_recycle"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {getattr(self, name)!r}")
        if self.max_overflow < 0:
            raise ConfigurationError(f"max_overflow must be >= 0, got {self.max_overflow!r}")
        if not self.application_name.strip():
            raise ConfigurationError("application_name must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> PostgresConfig:
        env = os.environ

        def _int(attr: str, var: str, default: int) -> int:
            if attr in overrides:
                return int(overrides[attr])
            raw = env.get(var)
            try:
                return int(raw) if raw else default
            except ValueError as exc:
                raise ConfigurationError(f"{var} must be an integer, got {raw!r}", cause=exc) from exc

        echo = overrides.get("echo")
        if echo is None:
            echo = env.get("DB_ECHO", "").strip().lower() in ("1", "true", "yes")
        return cls(
            url=str(overrides.get("url") or env.get("DATABASE_URL") or DEFAULT_DATABASE_URL).strip(),
            pool_size=_int("pool_size", "DB_POOL_SIZE", 10),
            max_overflow=_int("max_overflow", "DB_MAX_OVERFLOW", 20),
            pool_timeout=_int("pool_timeout", "DB_POOL_TIMEOUT", 30),
            pool_recycle=_int("pool_recycle", "DB_POOL_RECYCLE", 1800),
            echo=bool(echo),
            application_name=str(overrides.get("application_name") or env.get("DB_APPLICATION_NAME") or "cogc-planning"),
        )


def load_postgres_config(**overrides: Any) -> PostgresConfig:
    """Load and validate PostgreSQL config from environment (with optional overrides)."""
    return PostgresConfig.from_env(**overrides)
