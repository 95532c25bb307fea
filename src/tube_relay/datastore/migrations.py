"""Table creation at startup.

Schema migrations are managed outside this service; the relay only creates
the tables declared by its ORM models when they are missing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from tube_relay.engine.models.base import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


async def run_auto_migrate(engine: AsyncEngine) -> None:
    """Create every relay table that does not exist yet."""
    import tube_relay.engine.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
