"""Reddit HTTP client — OAuth token exchange, submit, sticky.

Endpoints:
- POST ``{auth_url}/api/v1/access_token`` — ``authorization_code`` and
  ``refresh_token`` grants (HTTP basic auth with the app credentials)
- GET ``{api_url}/api/v1/me`` — account name
- POST ``{api_url}/api/submit`` — create a link post
- POST ``{api_url}/api/set_subreddit_sticky`` — pin / unpin a post
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx

from tube_relay.errors.relay_errors import UpstreamFailure
from tube_relay.reddit.models import OAuthToken, SubmitResult

if TYPE_CHECKING:
    from tube_relay.config.settings import RedditConfig
    from tube_relay.reddit.models import AuthorizeDuration

logger = logging.getLogger(__name__)


class RedditClient:
    """Async client for the Reddit OAuth and link-posting API.

    The ``httpx.AsyncClient`` is shared process-wide and owned by the engine.
    """

    def __init__(self, config: RedditConfig, client: httpx.AsyncClient) -> None:
        self._config = config
        self._client = client

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def authorize_url(self, state: str, duration: AuthorizeDuration, scopes: str) -> str:
        """Build the URL users are sent to in order to authorize the app."""
        query = urlencode(
            {
                "client_id": self._config.client_id,
                "response_type": "code",
                "state": state,
                "redirect_uri": self._config.redirect_url,
                "duration": duration.value,
                "scope": scopes,
            }
        )
        return f"{self._config.auth_url.rstrip('/')}/api/v1/authorize?{query}"

    async def exchange_code(self, code: str) -> OAuthToken:
        """Trade an authorization code for a token (``authorization_code`` grant)."""
        return await self._token_request(
            self._config.client_id,
            self._config.client_secret,
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._config.redirect_url,
            },
        )

    async def refresh(self, client_id: str, client_secret: str, refresh_token: str) -> OAuthToken:
        """Obtain a fresh access token (``refresh_token`` grant)."""
        return await self._token_request(
            client_id,
            client_secret,
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
        )

    async def get_username(self, token: OAuthToken) -> str:
        """Return the name of the account *token* belongs to."""
        data = await self._api_call("GET", "/api/v1/me", token, operation="me")
        name = data.get("name")
        if not name:
            raise UpstreamFailure("'name' field missing from /api/v1/me response")
        return str(name)

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    async def submit_link(
        self,
        token: OAuthToken,
        *,
        subreddit: str,
        title: str,
        url: str,
        flair_id: str | None = None,
    ) -> SubmitResult:
        """Create a link post.

        Raises:
            UpstreamFailure: On transport errors, non-2xx answers, a non-empty
                ``errors`` list, or an answer that does not identify the post.
        """
        form = {
            "api_type": "json",
            "kind": "link",
            "sr": subreddit,
            "title": title,
            "url": url,
            "resubmit": "true",
        }
        if flair_id:
            form["flair_id"] = flair_id
        data = await self._api_call("POST", "/api/submit", token, data=form, operation="submit")
        post = self._json_body(data, "submit").get("data")
        if not isinstance(post, dict):
            raise UpstreamFailure("Reddit submit response carries no post data")
        return SubmitResult.from_dict(post)

    async def set_sticky(self, token: OAuthToken, fullname: str, *, state: bool) -> None:
        """Pin (``state=True``) or unpin a post."""
        form = {
            "api_type": "json",
            "id": fullname,
            "state": "true" if state else "false",
        }
        data = await self._api_call(
            "POST", "/api/set_subreddit_sticky", token, data=form, operation="sticky"
        )
        self._json_body(data, "sticky")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _headers(self, token: OAuthToken | None = None) -> dict[str, str]:
        headers = {"User-Agent": self._config.user_agent}
        if token is not None:
            headers["Authorization"] = f"bearer {token.access_token}"
        return headers

    async def _token_request(
        self,
        client_id: str,
        client_secret: str,
        form: dict[str, str],
    ) -> OAuthToken:
        url = f"{self._config.auth_url.rstrip('/')}/api/v1/access_token"
        try:
            response = await self._client.post(
                url,
                data=form,
                auth=(client_id, client_secret),
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Reddit token request failed: {exc}") from exc

        if not response.is_success:
            raise UpstreamFailure(
                f"Reddit token request failed ({response.status_code}): {response.text[:200]}",
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamFailure("Reddit token request returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise UpstreamFailure("Reddit token request returned a non-object body")
        if "error" in data or not data.get("access_token"):
            raise UpstreamFailure(f"Reddit token request rejected: {data.get('error', data)}")
        return OAuthToken.from_dict(data)

    async def _api_call(
        self,
        method: str,
        path: str,
        token: OAuthToken,
        *,
        data: dict[str, str] | None = None,
        operation: str,
    ) -> dict[str, Any]:
        url = f"{self._config.api_url.rstrip('/')}{path}"
        try:
            response = await self._client.request(
                method,
                url,
                data=data,
                headers=self._headers(token),
            )
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Reddit {operation} request failed: {exc}") from exc

        if not response.is_success:
            raise UpstreamFailure(
                f"Reddit {operation} failed ({response.status_code}): {response.text[:200]}",
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFailure(f"Reddit {operation} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise UpstreamFailure(f"Reddit {operation} returned a non-object body")
        return payload

    @staticmethod
    def _json_body(data: dict[str, Any], operation: str) -> dict[str, Any]:
        """Unwrap an ``api_type=json`` envelope, raising on reported errors."""
        body = data.get("json") or {}
        if not isinstance(body, dict):
            raise UpstreamFailure(f"Reddit {operation} returned a malformed envelope")
        errors = body.get("errors") or []
        if errors:
            raise UpstreamFailure(f"Reddit {operation} reported errors: {errors}")
        return body
