"""Subscriptions repository."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, func, insert, select, update

from tube_relay.engine.models.account import RedditAccount
from tube_relay.engine.models.links import subscription_reddit_accounts
from tube_relay.engine.models.subscription import Subscription
from tube_relay.engine.repository.base import expect_one

if TYPE_CHECKING:
    from tube_relay.datastore.client import Datastore


class SubscriptionRepository:
    """Data access layer for hub subscriptions and their linked accounts."""

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def create(self, subscription: Subscription) -> Subscription:
        """Persist a new subscription."""
        async with self._ds.session("create subscription") as session:
            session.add(subscription)
            await session.commit()
            await session.refresh(subscription)
        return subscription

    async def get_by_id(self, subscription_id: str) -> Subscription | None:
        """Find a subscription by primary key."""
        async with self._ds.session("get subscription") as session:
            return await session.get(Subscription, subscription_id)

    async def update_expiry(self, subscription_id: str, expires: int | None) -> None:
        """Move a subscription's lease expiry."""
        async with self._ds.session("update subscription expiry") as session:
            stmt = (
                update(Subscription)
                .where(Subscription.id == subscription_id)
                .values(expires=expires)
            )
            result = await session.execute(stmt)
            await session.commit()
        expect_one(result.rowcount, "update subscription expiry")  # type: ignore[union-attr]

    async def delete_by_channel_id(self, channel_id: str) -> int:
        """Delete every subscription for a channel. Returns the number removed."""
        async with self._ds.session("delete subscription") as session:
            stmt = delete(Subscription).where(Subscription.channel_id == channel_id)
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount or 0  # type: ignore[union-attr]

    async def list_all(self) -> list[Subscription]:
        """List every subscription."""
        async with self._ds.session("list subscriptions") as session:
            result = await session.execute(select(Subscription).order_by(Subscription.channel_name))
            return list(result.scalars().all())

    async def list_with_expiry(self) -> list[Subscription]:
        """List subscriptions that carry a known lease expiry."""
        async with self._ds.session("list subscriptions") as session:
            stmt = select(Subscription).where(Subscription.expires.isnot(None))
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def list_lapsed(self, now: int) -> list[Subscription]:
        """List subscriptions whose lease expired before *now*."""
        async with self._ds.session("list subscriptions") as session:
            stmt = select(Subscription).where(
                Subscription.expires.isnot(None),
                Subscription.expires <= now,
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count(self) -> int:
        """Count subscriptions."""
        async with self._ds.session("count subscriptions") as session:
            return (await session.execute(select(func.count(Subscription.id)))).scalar() or 0

    # -- Linked accounts --

    async def list_accounts(self, subscription_id: str) -> list[RedditAccount]:
        """List the Reddit accounts that receive this subscription's uploads."""
        async with self._ds.session("list linked accounts") as session:
            stmt = (
                select(RedditAccount)
                .join(
                    subscription_reddit_accounts,
                    subscription_reddit_accounts.c.reddit_account_id == RedditAccount.id,
                )
                .where(subscription_reddit_accounts.c.subscription_id == subscription_id)
                .order_by(RedditAccount.id)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def link_account(self, subscription_id: str, account_id: int) -> bool:
        """Link an account to a subscription. Returns False if already linked."""
        link = subscription_reddit_accounts
        async with self._ds.session("link account") as session:
            existing = await session.execute(
                select(link.c.subscription_id).where(
                    link.c.subscription_id == subscription_id,
                    link.c.reddit_account_id == account_id,
                )
            )
            if existing.first() is not None:
                return False
            await session.execute(
                insert(link).values(subscription_id=subscription_id, reddit_account_id=account_id)
            )
            await session.commit()
        return True
