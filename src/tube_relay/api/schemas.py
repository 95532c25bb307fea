"""Request/response schemas for the HTTP layer.

Kept separate from the ORM models; routes map between the two.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from tube_relay.reddit.models import AuthorizeDuration


class ErrorResponse(BaseModel):
    """Error body: ``{"code": "...", "message": "..."}``."""

    code: str
    message: str


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------


class SubscribeForm(BaseModel):
    """POST /forms/subscribe."""

    topic_url: str
    hmac_secret: str
    callback_url: str
    post_shorts: bool = False


class SubscribeAccepted(BaseModel):
    subscription_id: str
    callback_url: str


class RedditAuthorizeForm(BaseModel):
    """POST /forms/reddit."""

    duration: AuthorizeDuration = AuthorizeDuration.PERMANENT
    scopes: str = "identity,submit"


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


class SubscriptionResponse(BaseModel):
    id: str
    channel_id: str
    channel_name: str
    callback_url: str
    expires: int | None = None
    post_shorts: bool = False


class NotificationResult(BaseModel):
    """Outcome of a content notification."""

    relayed: bool
    created: int = 0
    skipped: int = 0
    failed: int = 0


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """A Reddit account with its credentials left out."""

    id: int
    username: str
    moderate_submissions: bool
    expires_at: int
    scopes: list[str] = Field(default_factory=list)


class AccountUpdateRequest(BaseModel):
    """PATCH /accounts/{account_id}."""

    moderate_submissions: bool


class SubredditLinkRequest(BaseModel):
    """POST /accounts/{account_id}/subreddits."""

    name: str = Field(min_length=1, max_length=64)
    title_prefix: str | None = None
    title_suffix: str | None = None
    flair_id: str | None = None


class SubredditResponse(BaseModel):
    id: int
    name: str
    title_prefix: str | None = None
    title_suffix: str | None = None
    flair_id: str | None = None


class LinkResponse(BaseModel):
    """Result of a link request; ``linked`` is False when it already existed."""

    linked: bool
