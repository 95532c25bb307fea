"""Reddit OAuth redirect target."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from tube_relay.api.dependencies import get_engine
from tube_relay.api.routes.admin import account_response
from tube_relay.api.schemas import AccountResponse
from tube_relay.engine.client import RelayEngine  # noqa: TC001

router = APIRouter(prefix="/reddit", tags=["reddit"])


@router.get("/callback", status_code=status.HTTP_201_CREATED)
async def oauth_callback(
    engine: Annotated[RelayEngine, Depends(get_engine)],
    code: Annotated[str | None, Query()] = None,
    state: Annotated[str | None, Query()] = None,
    error: Annotated[str | None, Query()] = None,
) -> AccountResponse:
    account = await engine.authorization.complete(code=code, state=state, error=error)
    return account_response(account)
