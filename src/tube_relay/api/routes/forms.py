"""Form intake: YouTube subscriptions and Reddit authorization requests."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from tube_relay.api.dependencies import get_engine
from tube_relay.api.schemas import RedditAuthorizeForm, SubscribeAccepted, SubscribeForm
from tube_relay.engine.client import RelayEngine  # noqa: TC001

router = APIRouter(prefix="/forms", tags=["forms"])


@router.post("/subscribe", status_code=status.HTTP_202_ACCEPTED)
async def subscribe(
    form: SubscribeForm,
    engine: Annotated[RelayEngine, Depends(get_engine)],
) -> SubscribeAccepted:
    """Ask the hub to subscribe to a channel; verification follows asynchronously."""
    request = await engine.protocol.request_subscription(
        topic_url=form.topic_url,
        hmac_secret=form.hmac_secret,
        callback_url=form.callback_url,
        post_shorts=form.post_shorts,
    )
    return SubscribeAccepted(
        subscription_id=request.subscription_id,
        callback_url=request.callback_url,
    )


@router.post("/reddit")
async def authorize_reddit(
    form: RedditAuthorizeForm,
    engine: Annotated[RelayEngine, Depends(get_engine)],
) -> RedirectResponse:
    """Start the Reddit authorization flow."""
    url = await engine.authorization.begin(form.duration, form.scopes)
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)
