"""Subreddits repository."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import insert, select

from tube_relay.engine.models.links import reddit_account_subreddits
from tube_relay.engine.models.subreddit import Subreddit

if TYPE_CHECKING:
    from tube_relay.datastore.client import Datastore


class SubredditRepository:
    """Data access layer for subreddits and account → subreddit links."""

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def get_or_create(
        self,
        name: str,
        *,
        title_prefix: str | None = None,
        title_suffix: str | None = None,
        flair_id: str | None = None,
    ) -> Subreddit:
        """Return the subreddit named *name*, creating it on first use.

        An existing row is returned unchanged.
        """
        async with self._ds.session("get or create subreddit") as session:
            result = await session.execute(select(Subreddit).where(Subreddit.name == name))
            subreddit = result.scalar_one_or_none()
            if subreddit is not None:
                return subreddit
            subreddit = Subreddit(
                name=name,
                title_prefix=title_prefix,
                title_suffix=title_suffix,
                flair_id=flair_id,
            )
            session.add(subreddit)
            await session.commit()
            await session.refresh(subreddit)
            return subreddit

    async def list_for_account(self, account_id: int) -> list[Subreddit]:
        """List the subreddits an account posts into."""
        link = reddit_account_subreddits
        async with self._ds.session("list linked subreddits") as session:
            stmt = (
                select(Subreddit)
                .join(link, link.c.subreddit_id == Subreddit.id)
                .where(link.c.reddit_account_id == account_id)
                .order_by(Subreddit.id)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def link_account(self, account_id: int, subreddit_id: int) -> bool:
        """Link a subreddit to an account. Returns False if already linked."""
        link = reddit_account_subreddits
        async with self._ds.session("link subreddit") as session:
            existing = await session.execute(
                select(link.c.subreddit_id).where(
                    link.c.reddit_account_id == account_id,
                    link.c.subreddit_id == subreddit_id,
                )
            )
            if existing.first() is not None:
                return False
            await session.execute(
                insert(link).values(reddit_account_id=account_id, subreddit_id=subreddit_id)
            )
            await session.commit()
        return True
