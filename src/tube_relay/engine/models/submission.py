"""Submission model — a link post created on Reddit."""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tube_relay.engine.models.base import Base


class Submission(Base):
    """A Reddit post relaying one video into one subreddit.

    ``id`` is the Reddit fullname (``t3_...``). ``stickied`` is flipped by
    the pin rotation; rows are never deleted.
    """

    __tablename__ = "submissions"
    __table_args__ = (Index("ix_submissions_subreddit_video", "subreddit_id", "video_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    video_id: Mapped[str] = mapped_column(String(32), nullable=False)
    stickied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reddit_account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("reddit_accounts.id", ondelete="CASCADE"), nullable=False
    )
    subreddit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("subreddits.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<Submission id={self.id} video={self.video_id} stickied={self.stickied}>"
