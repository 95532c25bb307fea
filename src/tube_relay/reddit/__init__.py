"""Reddit destination provider: OAuth, posting, credential refresh."""

from __future__ import annotations

from tube_relay.reddit.authorization import RedditAuthorization
from tube_relay.reddit.client import RedditClient
from tube_relay.reddit.credentials import CredentialRefresher
from tube_relay.reddit.models import AuthorizeDuration, OAuthToken, SubmitResult, parse_scopes

__all__ = [
    "AuthorizeDuration",
    "CredentialRefresher",
    "OAuthToken",
    "RedditAuthorization",
    "RedditClient",
    "SubmitResult",
    "parse_scopes",
]
