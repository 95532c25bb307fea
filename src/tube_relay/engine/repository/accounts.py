"""Reddit accounts repository."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update

from tube_relay.engine.models.account import RedditAccount
from tube_relay.engine.repository.base import expect_one

if TYPE_CHECKING:
    from tube_relay.datastore.client import Datastore


class AccountRepository:
    """Data access layer for authorized Reddit accounts."""

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def create(self, account: RedditAccount) -> RedditAccount:
        """Persist a newly authorized account."""
        async with self._ds.session("create account") as session:
            session.add(account)
            await session.commit()
            await session.refresh(account)
        return account

    async def get_by_id(self, account_id: int) -> RedditAccount | None:
        """Find an account by primary key."""
        async with self._ds.session("get account") as session:
            return await session.get(RedditAccount, account_id)

    async def list_all(self) -> list[RedditAccount]:
        """List every account."""
        async with self._ds.session("list accounts") as session:
            result = await session.execute(select(RedditAccount).order_by(RedditAccount.id))
            return list(result.scalars().all())

    async def update_credential(
        self,
        account_id: int,
        oauth_token: dict[str, Any],
        expires_at: int,
    ) -> None:
        """Store a refreshed OAuth token and its expiry."""
        async with self._ds.session("update credential") as session:
            stmt = (
                update(RedditAccount)
                .where(RedditAccount.id == account_id)
                .values(oauth_token=oauth_token, expires_at=expires_at)
            )
            result = await session.execute(stmt)
            await session.commit()
        expect_one(result.rowcount, "update credential")  # type: ignore[union-attr]

    async def set_moderation(self, account_id: int, *, enabled: bool) -> None:
        """Toggle whether this account rotates pinned posts."""
        async with self._ds.session("update moderation flag") as session:
            stmt = (
                update(RedditAccount)
                .where(RedditAccount.id == account_id)
                .values(moderate_submissions=enabled)
            )
            result = await session.execute(stmt)
            await session.commit()
        expect_one(result.rowcount, "update moderation flag")  # type: ignore[union-attr]

    async def count(self) -> int:
        """Count accounts."""
        async with self._ds.session("count accounts") as session:
            return (await session.execute(select(func.count(RedditAccount.id)))).scalar() or 0
