"""Credential refresher — lazily keeps an account's access token valid.

Tokens are checked right before they are used, never on a timer, so idle
accounts cost no upstream calls.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from tube_relay.reddit.models import OAuthToken

if TYPE_CHECKING:
    from collections.abc import Callable

    from tube_relay.engine.models.account import RedditAccount
    from tube_relay.engine.repository.accounts import AccountRepository
    from tube_relay.metrics.collector import RelayMetrics
    from tube_relay.reddit.client import RedditClient

logger = logging.getLogger(__name__)


class CredentialRefresher:
    """Refreshes expired OAuth tokens on demand and persists the result."""

    def __init__(
        self,
        accounts: AccountRepository,
        reddit: RedditClient,
        *,
        metrics: RelayMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._accounts = accounts
        self._reddit = reddit
        self._metrics = metrics
        self._clock = clock

    async def ensure_fresh(self, account: RedditAccount) -> OAuthToken:
        """Return a usable token for *account*.

        If the stored token has a refresh token and its expiry is at or
        before now, exchange it, persist the new token with
        ``expires_at = now + expires_in`` and return it. Otherwise return the
        stored token unchanged.

        Raises:
            UpstreamFailure: If the refresh exchange fails.
            PersistenceFailure: If the new token cannot be stored.
        """
        stored = OAuthToken.from_dict(account.oauth_token)
        now = int(self._clock())
        if stored.refresh_token is None or account.expires_at > now:
            return stored

        logger.info("Refreshing access token for u/%s", account.username)
        fresh = await self._reddit.refresh(
            account.client_id,
            account.client_secret,
            stored.refresh_token,
        )
        if fresh.refresh_token is None:
            # Reddit omits the refresh token from refresh responses
            fresh = OAuthToken(
                access_token=fresh.access_token,
                token_type=fresh.token_type,
                expires_in=fresh.expires_in,
                scope=fresh.scope,
                refresh_token=stored.refresh_token,
            )
        expires_at = now + fresh.expires_in
        await self._accounts.update_credential(account.id, fresh.to_dict(), expires_at)
        account.oauth_token = fresh.to_dict()
        account.expires_at = expires_at
        if self._metrics:
            self._metrics.record_token_refresh()
        return fresh
