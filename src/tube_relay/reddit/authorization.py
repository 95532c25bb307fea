"""Reddit account authorization (OAuth ``authorization_code`` flow).

``begin`` stores the requested duration and scopes under a fresh ``state``
and returns the authorize URL. Reddit later redirects the user back with
``code`` and ``state``, and ``complete`` turns that into a stored account.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING

from tube_relay.engine.models.account import RedditAccount
from tube_relay.engine.models.form import FormKind
from tube_relay.errors.definitions import ErrFormNotFound, ErrMissingScopeIdentity
from tube_relay.errors.relay_errors import ValidationFailure
from tube_relay.reddit.models import parse_scopes

if TYPE_CHECKING:
    from collections.abc import Callable

    from tube_relay.config.settings import RedditConfig
    from tube_relay.engine.repository.accounts import AccountRepository
    from tube_relay.engine.repository.forms import FormRepository
    from tube_relay.reddit.client import RedditClient
    from tube_relay.reddit.models import AuthorizeDuration

logger = logging.getLogger(__name__)


class RedditAuthorization:
    """Runs the two halves of the account authorization flow."""

    def __init__(
        self,
        config: RedditConfig,
        *,
        reddit: RedditClient,
        accounts: AccountRepository,
        forms: FormRepository,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._reddit = reddit
        self._accounts = accounts
        self._forms = forms
        self._clock = clock

    async def begin(self, duration: AuthorizeDuration, scopes: str) -> str:
        """Record the request and return the URL to send the user to.

        Raises:
            ValidationFailure: If the scope list is invalid.
        """
        requested = parse_scopes(scopes)
        state = str(uuid.uuid4())
        await self._forms.save(
            state,
            FormKind.REDDIT,
            {"duration": duration.value, "scopes": requested},
            created_at=int(self._clock()),
        )
        return self._reddit.authorize_url(state, duration, " ".join(requested))

    async def complete(
        self,
        *,
        code: str | None,
        state: str | None,
        error: str | None = None,
    ) -> RedditAccount:
        """Exchange the returned code and store the authorized account.

        Raises:
            ValidationFailure: If Reddit reported an error, the parameters are
                malformed or ``identity`` was not granted.
            NotFound: If ``state`` names no pending authorization.
            UpstreamFailure: If the token exchange or name lookup fails.
        """
        if error:
            if error == "access_denied":
                raise ValidationFailure("authorization was declined on Reddit")
            raise ValidationFailure(f"Reddit authorization failed: {error}")
        if not code:
            raise ValidationFailure("missing 'code' parameter")
        try:
            state = str(uuid.UUID(state or ""))
        except ValueError:
            raise ValidationFailure("'state' is not a valid identifier") from None

        if await self._forms.get(state, FormKind.REDDIT) is None:
            raise ErrFormNotFound

        token = await self._reddit.exchange_code(code)
        if not token.has_scope("identity"):
            raise ErrMissingScopeIdentity
        username = await self._reddit.get_username(token)

        account = await self._accounts.create(
            RedditAccount(
                username=username,
                client_id=self._config.client_id,
                client_secret=self._config.client_secret,
                moderate_submissions=False,
                oauth_token=token.to_dict(),
                expires_at=int(self._clock()) + token.expires_in,
            )
        )
        await self._forms.delete(state)
        logger.info("Authorized Reddit account u/%s", username)
        return account
