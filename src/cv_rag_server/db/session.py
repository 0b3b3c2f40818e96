"""
Database Session Management

Provides the async SQLAlchemy engine and session factory for the PostgreSQL
vector store. The engine is built lazily so the application can start (and
report a configuration error per request) when DATABASE_URL is absent.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)

from ..config import settings
from ..core.errors import ConfigurationError


# Understood by libpq but rejected by asyncpg.connect()
_LIBPQ_ONLY_PARAMS = (
    "channel_binding",
    "gssencmode",
    "sslcert",
    "sslkey",
    "sslrootcert",
    "sslcrl",
)


def to_async_url(url: str) -> str:
    """
    Rewrite a libpq-style URL (as issued by hosted Postgres providers) for
    the asyncpg driver.

    The scheme becomes `postgresql+asyncpg`, `sslmode` becomes asyncpg's
    `ssl`, and query parameters asyncpg cannot accept are dropped.

    >>> to_async_url("postgres://u:p@host/db?sslmode=require&channel_binding=require")
    'postgresql+asyncpg://u:p@host/db?ssl=require'
    """
    parsed = make_url(url)

    if parsed.drivername in ("postgres", "postgresql"):
        parsed = parsed.set(drivername="postgresql+asyncpg")

    query = dict(parsed.query)
    if "sslmode" in query:
        query.setdefault("ssl", query.pop("sslmode"))
    for key in _LIBPQ_ONLY_PARAMS:
        query.pop(key, None)

    parsed = parsed.set(query=query)
    return parsed.render_as_string(hide_password=False)


@lru_cache
def get_engine(database_url: Optional[str] = None) -> AsyncEngine:
    url = database_url or settings.database_url
    if not url:
        raise ConfigurationError("Missing required configuration: DATABASE_URL")

    return create_async_engine(
        to_async_url(url),
        echo=False,  # Set True for SQL debugging
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


@lru_cache
def get_session_factory(database_url: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(database_url),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def dispose_engine() -> None:
    """Close pooled connections if an engine was ever created."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
