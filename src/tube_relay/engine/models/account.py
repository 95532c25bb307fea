"""RedditAccount model — an authorized Reddit account."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tube_relay.engine.models.base import Base


class RedditAccount(Base):
    """A Reddit account the relay posts as.

    ``oauth_token`` holds the token response as returned by Reddit
    (``access_token``, ``token_type``, ``expires_in``, ``scope`` and
    optionally ``refresh_token``); ``expires_at`` is the unix timestamp
    the access token stops being valid.
    """

    __tablename__ = "reddit_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    client_id: Mapped[str] = mapped_column(Text, nullable=False)
    client_secret: Mapped[str] = mapped_column(Text, nullable=False)
    moderate_submissions: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    oauth_token: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<RedditAccount id={self.id} username={self.username}>"
