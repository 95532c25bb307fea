"""Hub callbacks: verification (GET) and content notifications (POST).

Mounted under ``hub.callback_path``; each subscription has its own
``/{subscription_id}`` callback.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import PlainTextResponse

from tube_relay.api.dependencies import get_engine
from tube_relay.api.schemas import NotificationResult
from tube_relay.engine.client import RelayEngine  # noqa: TC001
from tube_relay.websub.signature import SIGNATURE_HEADER

router = APIRouter(tags=["hub"])


@router.get("/{subscription_id}", response_class=PlainTextResponse)
async def verify_subscription(
    subscription_id: str,
    engine: Annotated[RelayEngine, Depends(get_engine)],
    mode: Annotated[str, Query(alias="hub.mode")],
    topic: Annotated[str, Query(alias="hub.topic")],
    challenge: Annotated[str, Query(alias="hub.challenge")],
    lease_seconds: Annotated[int | None, Query(alias="hub.lease_seconds")] = None,
) -> PlainTextResponse:
    """Answer a hub verification request by echoing ``hub.challenge``."""
    echoed = await engine.protocol.handle_verification(
        subscription_id,
        mode=mode,
        topic=topic,
        challenge=challenge,
        lease_seconds=lease_seconds,
    )
    return PlainTextResponse(echoed)


@router.post("/{subscription_id}")
async def receive_notification(
    subscription_id: str,
    request: Request,
    engine: Annotated[RelayEngine, Depends(get_engine)],
    signature: Annotated[str | None, Header(alias=SIGNATURE_HEADER)] = None,
) -> NotificationResult:
    """Accept a signed upload notification."""
    body = await request.body()
    report = await engine.protocol.receive_notification(subscription_id, body, signature)
    if report is None:
        return NotificationResult(relayed=False)
    return NotificationResult(
        relayed=True,
        created=len(report.created),
        skipped=len(report.skipped),
        failed=len(report.failed),
    )
