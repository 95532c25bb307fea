"""Database engine factory — SQLite (aiosqlite) or PostgreSQL (asyncpg)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from tube_relay.config.settings import DatabaseConfig


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from database configuration.

    Args:
        config: Database configuration with DSN, pool settings, etc.

    Returns:
        A configured ``AsyncEngine`` ready for use.
    """
    kwargs: dict[str, Any] = {
        "echo": config.debug_sql,
    }

    is_sqlite = "sqlite" in config.dsn
    if not is_sqlite:
        kwargs["pool_size"] = config.max_idle_connections
        kwargs["max_overflow"] = config.max_open_connections - config.max_idle_connections
        kwargs["pool_pre_ping"] = True
    elif ":memory:" in config.dsn:
        # One shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool

    engine = create_async_engine(config.dsn, **kwargs)
    if is_sqlite:
        # Link rows cascade on delete, as the relational schema expects
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine
