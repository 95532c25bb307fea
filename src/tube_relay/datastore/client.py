"""Datastore — async SQLAlchemy engine plus error-translating sessions.

Every repository call opens its own short session through
:meth:`Datastore.session`, which turns any ``SQLAlchemyError`` raised inside
the block into a ``PersistenceFailure`` naming the operation.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tube_relay.datastore.engines import create_engine
from tube_relay.errors.relay_errors import PersistenceFailure

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.orm import DeclarativeBase

    from tube_relay.config.settings import DatabaseConfig

logger = logging.getLogger(__name__)

_ERR_NOT_OPEN = "Datastore is not open. Call open() first."


class Datastore:
    """Owns the engine and hands out sessions to the repositories.

    Usage::

        ds = Datastore(db_config)
        await ds.open()
        async with ds.session("list subscriptions") as session:
            ...
        await ds.close()
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError(_ERR_NOT_OPEN)
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self, *, base: type[DeclarativeBase] | None = None) -> None:
        """Create the engine; with *base*, also create its tables."""
        self._engine = create_engine(self._config)
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)
        if base is not None:
            async with self._engine.begin() as conn:
                await conn.run_sync(base.metadata.create_all)
        logger.info("Datastore opened (%s)", self._config.engine)

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.info("Datastore closed")

    @asynccontextmanager
    async def session(self, operation: str = "datastore call") -> AsyncIterator[AsyncSession]:
        """Yield a session; storage errors surface as ``PersistenceFailure``.

        Raises:
            RuntimeError: If the datastore is not open.
            PersistenceFailure: If SQLAlchemy fails inside the block.
        """
        if self._sessions is None:
            raise RuntimeError(_ERR_NOT_OPEN)
        try:
            async with self._sessions() as session:
                yield session
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"{operation} failed: {exc}") from exc
