"""Reddit API data models — OAuth tokens and submit results."""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from typing import Any

from tube_relay.errors.definitions import ErrMissingScopeIdentity
from tube_relay.errors.relay_errors import UpstreamFailure, ValidationFailure

# Scopes Reddit accepts on its authorize endpoint
REDDIT_SCOPES = frozenset(
    {
        "edit",
        "flair",
        "history",
        "identity",
        "modconfig",
        "modflair",
        "modlog",
        "modposts",
        "modwiki",
        "mysubreddits",
        "privatemessages",
        "read",
        "report",
        "save",
        "submit",
        "subscribe",
        "vote",
        "wikiedit",
        "wikiread",
    }
)


class AuthorizeDuration(enum.StrEnum):
    """Requested lifetime of an authorization."""

    PERMANENT = "permanent"
    TEMPORARY = "temporary"


@dataclass(frozen=True)
class OAuthToken:
    """Reddit ``/api/v1/access_token`` response.

    Attributes:
        access_token: Bearer token for ``oauth.reddit.com``.
        token_type: Always ``bearer``.
        expires_in: Lease length in seconds.
        scope: Space- or comma-separated granted scopes.
        refresh_token: Present for ``permanent`` authorizations.
    """

    access_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    scope: str = ""
    refresh_token: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OAuthToken:
        """Build from a JSON response or a stored credential."""
        return cls(
            access_token=str(data.get("access_token", "")),
            token_type=str(data.get("token_type", "bearer")),
            expires_in=int(data.get("expires_in", 3600)),
            scope=str(data.get("scope", "")),
            refresh_token=data.get("refresh_token") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for storage."""
        return asdict(self)

    @property
    def scopes(self) -> set[str]:
        """Granted scopes as a set."""
        return {s for s in self.scope.replace(",", " ").split() if s}

    def has_scope(self, scope: str) -> bool:
        """Whether *scope* was granted (``*`` grants everything)."""
        return "*" in self.scopes or scope in self.scopes


@dataclass(frozen=True)
class SubmitResult:
    """A created Reddit post."""

    id: str
    name: str
    url: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubmitResult:
        """Build from the ``data`` object of a submit answer.

        Raises:
            UpstreamFailure: If the answer names no post at all.
        """
        post_id = str(data.get("id") or "")
        name = str(data.get("name") or "")
        if not post_id and not name:
            raise UpstreamFailure("Reddit submit response carries no post id")
        if not post_id:
            post_id = name.removeprefix("t3_")
        return cls(
            id=post_id,
            name=name or f"t3_{post_id}",
            url=str(data.get("url", "")),
        )


def parse_scopes(scopes: str) -> list[str]:
    """Validate a comma-separated scope list for the authorize request.

    Raises:
        ValidationFailure: If the list is empty, repeats or names an
            unknown scope, or lacks ``identity``.
    """
    requested = [s.strip() for s in scopes.split(",") if s.strip()]
    if not requested:
        raise ValidationFailure("at least one scope is required")
    unknown = sorted(set(requested) - REDDIT_SCOPES)
    if unknown:
        raise ValidationFailure(f"unknown scopes: {', '.join(unknown)}")
    if len(set(requested)) != len(requested):
        raise ValidationFailure("scopes must not repeat")
    if "identity" not in requested:
        raise ErrMissingScopeIdentity
    return requested
