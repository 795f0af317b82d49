"""
cogc_planning.infra.database.engine – async SQLAlchemy 2.0 engine and session factory.

The engine and the factory are cached per process; close_engine() resets both.
ensure_database_exists() creates the target database on first run.
"""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse, urlunparse

import asyncpg
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Registers every ORM model on Base.metadata
import cogc_planning.infra.database.models  # noqa: F401
from cogc_planning.infra.database.models.base import Base

if TYPE_CHECKING:
    from cogc_planning.config import PostgresConfig

logger = logging.getLogger(__name__)

# Database names are interpolated into CREATE DATABASE
_DBNAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _config(config: Optional["PostgresConfig"]) -> "PostgresConfig":
    if config is not None:
        return config
    from cogc_planning.config import load_postgres_config
    return load_postgres_config()


def _asyncpg_url(url: str) -> str:
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


def _plain_url(url: str) -> str:
    return url.replace("postgresql+asyncpg://", "postgresql://", 1)


async def ensure_database_exists(config: Optional["PostgresConfig"] = None) -> None:
    """Create the target database through the maintenance "postgres" database when missing."""
    parsed = urlparse(_plain_url(_config(config).url))
    dbname = (parsed.path or "").strip("/") or "postgres"
    if dbname == "postgres":
        return
    if not _DBNAME_PATTERN.match(dbname):
        logger.warning("ensure_database_exists: skipping unsafe database name %r", dbname)
        return
    maintenance_url = urlunparse(parsed._replace(path="/postgres"))
    try:
        conn = await asyncpg.connect(maintenance_url)
    except (OSError, asyncpg.PostgresError) as exc:
        logger.debug("ensure_database_exists: postgres unreachable (%s), skipping", exc)
        return
    try:
        if await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", dbname) is None:
            await conn.execute(f'CREATE DATABASE "{dbname}"')
            logger.info("Database created: %s", dbname)
    finally:
        await conn.close()


def build_engine(
    config: Optional["PostgresConfig"] = None,
    *,
    use_null_pool: bool = False,
) -> AsyncEngine:
    """Create and cache the async engine. ``use_null_pool`` disables pooling (one-shot scripts)."""
    global _engine
    if _engine is not None:
        return _engine
    config = _config(config)
    connect_args = {"server_settings": {"application_name": config.application_name, "jit": "off"}}
    if use_null_pool:
        pool_args = {"poolclass": NullPool}
    else:
        pool_args = {
            "pool_size": config.pool_size,
            "max_overflow": config.max_overflow,
            "pool_timeout": config.pool_timeout,
            "pool_recycle": config.pool_recycle,
            "pool_pre_ping": True,
        }
    _engine = create_async_engine(
        _asyncpg_url(config.url), echo=config.echo, connect_args=connect_args, **pool_args
    )
    logger.info("AsyncEngine created (pool_size=%s)", "null" if use_null_pool else config.pool_size)
    return _engine


def build_session_factory(engine: Optional[AsyncEngine] = None) -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            engine or build_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def init_db(config: Optional["PostgresConfig"] = None) -> None:
    """Create the tables from the ORM models. Development schema management only."""
    engine = build_engine(config)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialised")


async def close_engine() -> None:
    """Dispose the connection pool. Call on app shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("AsyncEngine disposed")
    _engine = None
    _session_factory = None
