"""Database configuration and session management."""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from autobrief.config.settings import settings

# Import models so they are attached to Base.metadata before table creation
from autobrief.models import Base  # noqa: F401 - ensures metadata is registered

logger = logging.getLogger(__name__)

_SCHEMA_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _normalise_schema_name(raw_schema: str | None) -> str | None:
    """Return a sanitised schema name or None when invalid/empty."""

    if raw_schema is None:
        return None

    schema = raw_schema.strip()
    if not schema:
        return None

    if not _SCHEMA_NAME_PATTERN.fullmatch(schema):
        logger.warning(
            "Ignoring invalid schema name '%s'; falling back to default search_path.",
            raw_schema,
        )
        return None

    return schema


def _quote_identifier(identifier: str) -> str:
    """Return a double-quoted SQL identifier, escaping inner quotes."""

    return identifier.replace('"', '""')


_IS_POSTGRES = settings.database.url.startswith("postgresql")
_SCHEMA_NAME = (
    _normalise_schema_name(settings.database.schema_name) if _IS_POSTGRES else None
)


def _create_engine() -> AsyncEngine:
    """Create an async engine with environment-appropriate pooling."""

    engine_options: dict[str, Any] = {
        "echo": settings.debug,
        "future": True,
        "pool_pre_ping": True,
    }

    if ":memory:" in settings.database.url:
        # One shared connection, otherwise every checkout sees an empty database.
        engine_options["poolclass"] = StaticPool
        engine_options["connect_args"] = {"check_same_thread": False}
    elif settings.database.serverless or settings.debug:
        # Serverless databases pause between requests; never hold connections.
        engine_options["poolclass"] = NullPool

    return create_async_engine(settings.database.url, **engine_options)


engine: AsyncEngine = _create_engine()

SessionFactory = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def _ensure_search_path(target: Any) -> None:
    """Set the search_path on the given session/connection when a schema is configured."""

    if not _SCHEMA_NAME:
        return

    quoted_schema = _quote_identifier(_SCHEMA_NAME)
    await target.execute(text(f'SET search_path TO "{quoted_schema}", public'))


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Async context manager that yields a configured SQLAlchemy session."""

    async with SessionFactory() as session:
        await _ensure_search_path(session)
        yield session


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency-compatible generator yielding a configured session."""

    async with session_scope() as session:
        yield session


async def init_models() -> None:
    """Create database tables if they do not exist."""

    async with engine.begin() as conn:
        if _SCHEMA_NAME:
            quoted_schema = _quote_identifier(_SCHEMA_NAME)
            await conn.execute(
                text(f'CREATE SCHEMA IF NOT EXISTS "{quoted_schema}"')
            )
        await _ensure_search_path(conn)
        await conn.run_sync(Base.metadata.create_all)

    if _SCHEMA_NAME:
        logger.info("Ensured database tables in schema '%s'.", _SCHEMA_NAME)
    else:
        logger.info("Ensured database tables in default schema.")


async def dispose_engine() -> None:
    """Dispose of the engine and release pooled connections."""

    await engine.dispose()


__all__ = [
    "engine",
    "SessionFactory",
    "session_scope",
    "get_session",
    "init_models",
    "dispose_engine",
]
