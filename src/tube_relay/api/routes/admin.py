"""Listing and link management for subscriptions, accounts and subreddits."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, Response, status

from tube_relay.api.dependencies import get_engine
from tube_relay.api.schemas import (
    AccountResponse,
    AccountUpdateRequest,
    LinkResponse,
    SubredditLinkRequest,
    SubredditResponse,
    SubscriptionResponse,
)
from tube_relay.engine.client import RelayEngine  # noqa: TC001
from tube_relay.errors.definitions import ErrAccountNotFound, ErrSubscriptionNotFound
from tube_relay.reddit.models import OAuthToken

if TYPE_CHECKING:
    from tube_relay.engine.models.account import RedditAccount

router = APIRouter(tags=["admin"])


def account_response(account: RedditAccount) -> AccountResponse:
    token = OAuthToken.from_dict(account.oauth_token)
    return AccountResponse(
        id=account.id,
        username=account.username,
        moderate_submissions=account.moderate_submissions,
        expires_at=account.expires_at,
        scopes=sorted(token.scopes),
    )


async def _require_account(engine: RelayEngine, account_id: int) -> RedditAccount:
    account = await engine.accounts.get_by_id(account_id)
    if account is None:
        raise ErrAccountNotFound
    return account


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


@router.get("/subscriptions")
async def list_subscriptions(
    engine: Annotated[RelayEngine, Depends(get_engine)],
) -> list[SubscriptionResponse]:
    return [
        SubscriptionResponse(
            id=s.id,
            channel_id=s.channel_id,
            channel_name=s.channel_name,
            callback_url=s.callback_url,
            expires=s.expires,
            post_shorts=s.post_shorts,
        )
        for s in await engine.subscriptions.list_all()
    ]


@router.post("/subscriptions/{subscription_id}/accounts/{account_id}")
async def link_subscription_account(
    subscription_id: str,
    account_id: int,
    response: Response,
    engine: Annotated[RelayEngine, Depends(get_engine)],
) -> LinkResponse:
    """Send a subscription's uploads to an account."""
    if await engine.subscriptions.get_by_id(subscription_id) is None:
        raise ErrSubscriptionNotFound
    await _require_account(engine, account_id)
    linked = await engine.subscriptions.link_account(subscription_id, account_id)
    response.status_code = status.HTTP_201_CREATED if linked else status.HTTP_200_OK
    return LinkResponse(linked=linked)


@router.post("/subscriptions/{subscription_id}/resubscribe", status_code=status.HTTP_202_ACCEPTED)
async def resubscribe(
    subscription_id: str,
    engine: Annotated[RelayEngine, Depends(get_engine)],
) -> dict[str, str]:
    """Renew a subscription with the hub right away."""
    await engine.protocol.resubscribe(subscription_id)
    return {"status": "requested"}


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@router.get("/accounts")
async def list_accounts(
    engine: Annotated[RelayEngine, Depends(get_engine)],
) -> list[AccountResponse]:
    return [account_response(a) for a in await engine.accounts.list_all()]


@router.patch("/accounts/{account_id}")
async def update_account(
    account_id: int,
    body: AccountUpdateRequest,
    engine: Annotated[RelayEngine, Depends(get_engine)],
) -> AccountResponse:
    """Turn pin rotation on or off for an account."""
    account = await _require_account(engine, account_id)
    await engine.accounts.set_moderation(account_id, enabled=body.moderate_submissions)
    account.moderate_submissions = body.moderate_submissions
    return account_response(account)


@router.get("/accounts/{account_id}/subreddits")
async def list_account_subreddits(
    account_id: int,
    engine: Annotated[RelayEngine, Depends(get_engine)],
) -> list[SubredditResponse]:
    await _require_account(engine, account_id)
    return [
        SubredditResponse(
            id=s.id,
            name=s.name,
            title_prefix=s.title_prefix,
            title_suffix=s.title_suffix,
            flair_id=s.flair_id,
        )
        for s in await engine.subreddits.list_for_account(account_id)
    ]


@router.post("/accounts/{account_id}/subreddits")
async def link_account_subreddit(
    account_id: int,
    body: SubredditLinkRequest,
    response: Response,
    engine: Annotated[RelayEngine, Depends(get_engine)],
) -> LinkResponse:
    """Post an account's relays into a subreddit, creating it on first use."""
    await _require_account(engine, account_id)
    subreddit = await engine.subreddits.get_or_create(
        body.name.strip().removeprefix("r/"),
        title_prefix=body.title_prefix,
        title_suffix=body.title_suffix,
        flair_id=body.flair_id,
    )
    linked = await engine.subreddits.link_account(account_id, subreddit.id)
    response.status_code = status.HTTP_201_CREATED if linked else status.HTTP_200_OK
    return LinkResponse(linked=linked)
