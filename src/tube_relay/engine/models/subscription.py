"""Subscription model — a verified hub subscription for one channel."""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tube_relay.engine.models.base import Base


class Subscription(Base):
    """A push subscription to a YouTube channel's upload feed.

    Created when the hub's subscribe verification succeeds, its ``expires``
    is moved forward on every renewal, and it is deleted when the hub
    confirms an unsubscribe.
    """

    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    channel_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    channel_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    hmac_secret: Mapped[str] = mapped_column(Text, nullable=False)
    callback_url: Mapped[str] = mapped_column(Text, nullable=False)
    expires: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
        default=None,
        comment="Unix timestamp the hub lease lapses at; NULL when unknown",
    )
    post_shorts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Subscription id={self.id} channel={self.channel_id} expires={self.expires}>"
