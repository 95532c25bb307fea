"""PendingForm model — state carried across an asynchronous callback."""

from __future__ import annotations

import enum
from typing import Any

from sqlalchemy import JSON, BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from tube_relay.engine.models.base import Base


class FormKind(enum.StrEnum):
    """What a pending form is waiting for."""

    YOUTUBE = "youtube"
    REDDIT = "reddit"


class PendingForm(Base):
    """Form input stored until the hub verification or OAuth callback arrives.

    For YouTube subscriptions the form id is the future subscription id;
    for Reddit authorizations it is the OAuth ``state`` value.
    """

    __tablename__ = "forms"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    form_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
