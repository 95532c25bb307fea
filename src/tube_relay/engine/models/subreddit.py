"""Subreddit model — a posting target."""

from __future__ import annotations

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tube_relay.engine.models.base import Base


class Subreddit(Base):
    """A subreddit posts are submitted to, created the first time it is targeted."""

    __tablename__ = "subreddits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    title_prefix: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    title_suffix: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    flair_id: Mapped[str | None] = mapped_column(String(64), nullable=True, default=None)

    def compose_title(self, title: str) -> str:
        """Wrap a video title with this subreddit's prefix and suffix."""
        return f"{self.title_prefix or ''}{title}{self.title_suffix or ''}"

    def __repr__(self) -> str:
        return f"<Subreddit id={self.id} name={self.name}>"
