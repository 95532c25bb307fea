"""Submissions repository."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import exists, func, insert, select, update

from tube_relay.engine.models.links import subscription_submissions
from tube_relay.engine.models.submission import Submission
from tube_relay.engine.repository.base import expect_one

if TYPE_CHECKING:
    from tube_relay.datastore.client import Datastore


class SubmissionRepository:
    """Data access layer for Reddit submissions."""

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def exists(self, subreddit_id: int, video_id: str) -> bool:
        """Whether *video_id* was already submitted to *subreddit_id*."""
        async with self._ds.session("check submission") as session:
            stmt = select(
                exists().where(
                    Submission.subreddit_id == subreddit_id,
                    Submission.video_id == video_id,
                )
            )
            return bool((await session.execute(stmt)).scalar())

    async def create(
        self,
        submission: Submission,
        *,
        subscription_id: str | None = None,
    ) -> Submission:
        """Persist a submission, linking it to the subscription that produced it."""
        async with self._ds.session("create submission") as session:
            session.add(submission)
            await session.flush()
            if subscription_id is not None:
                await session.execute(
                    insert(subscription_submissions).values(
                        subscription_id=subscription_id,
                        submission_id=submission.id,
                    )
                )
            await session.commit()
            await session.refresh(submission)
        return submission

    async def list_for_subreddit(self, subreddit_id: int) -> list[Submission]:
        """List a subreddit's submissions, oldest first."""
        async with self._ds.session("list submissions") as session:
            stmt = (
                select(Submission)
                .where(Submission.subreddit_id == subreddit_id)
                .order_by(Submission.created_at.asc(), Submission.id.asc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def set_stickied(self, submission_id: str, *, stickied: bool) -> None:
        """Record a submission's pinned state."""
        async with self._ds.session("update submission") as session:
            stmt = (
                update(Submission)
                .where(Submission.id == submission_id)
                .values(stickied=stickied)
            )
            result = await session.execute(stmt)
            await session.commit()
        expect_one(result.rowcount, "update submission")  # type: ignore[union-attr]

    async def count(self) -> int:
        """Count submissions."""
        async with self._ds.session("count submissions") as session:
            return (await session.execute(select(func.count(Submission.id)))).scalar() or 0
