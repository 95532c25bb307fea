"""Hub HTTP client — subscribe requests and channel metadata.

Talks to two upstream endpoints:
- the PubSubHubbub hub (form-encoded ``POST`` subscribe requests)
- the channel's public Atom feed (display name lookup)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import parse_qs, urlsplit

import httpx

from tube_relay.errors.definitions import ErrInvalidTopic
from tube_relay.errors.relay_errors import UpstreamFailure
from tube_relay.websub.feed import parse_channel_name

if TYPE_CHECKING:
    from tube_relay.config.settings import HubConfig

logger = logging.getLogger(__name__)


def extract_channel_id(topic_url: str) -> str:
    """Return the ``channel_id`` query parameter of a topic URL.

    Raises:
        ValidationFailure: If the URL carries no channel id.
    """
    values = parse_qs(urlsplit(topic_url.strip()).query).get("channel_id", [])
    channel_id = values[0].strip() if values else ""
    if not channel_id:
        raise ErrInvalidTopic
    return channel_id


class HubClient:
    """Outbound calls to the hub and to YouTube feeds.

    The ``httpx.AsyncClient`` is shared process-wide and owned by the engine.
    """

    def __init__(self, config: HubConfig, client: httpx.AsyncClient) -> None:
        self._config = config
        self._client = client

    def topic_url(self, channel_id: str) -> str:
        """Build the feed topic URL for a channel."""
        return self._config.topic_url_template.format(channel_id=channel_id)

    async def subscribe(self, callback_url: str, channel_id: str, secret: str) -> None:
        """Ask the hub to (re)subscribe *callback_url* to a channel's uploads.

        The hub answers ``202 Accepted`` and later calls the callback with a
        verification request.

        Raises:
            UpstreamFailure: On transport errors or a non-2xx answer.
        """
        data = {
            "hub.callback": callback_url,
            "hub.mode": "subscribe",
            "hub.topic": self.topic_url(channel_id),
            "hub.secret": secret,
            "hub.verify": "async",
        }
        try:
            response = await self._client.post(
                self._config.hub_url,
                data=data,
                timeout=self._config.request_timeout,
            )
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"hub subscribe request failed: {exc}") from exc

        if not response.is_success:
            raise UpstreamFailure(
                f"hub rejected subscribe for {channel_id} ({response.status_code}): "
                f"{response.text[:200]}",
            )
        logger.info("Subscribe request accepted for channel %s", channel_id)

    async def fetch_channel_name(self, channel_id: str) -> str:
        """Look up a channel's display name from its public feed.

        Falls back to the channel id when the feed has no usable title.

        Raises:
            UpstreamFailure: On transport errors or a non-2xx answer.
        """
        try:
            response = await self._client.get(
                self.topic_url(channel_id),
                timeout=self._config.request_timeout,
            )
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"channel feed request failed: {exc}") from exc

        if not response.is_success:
            raise UpstreamFailure(
                f"channel feed for {channel_id} returned {response.status_code}",
            )
        return parse_channel_name(response.content) or channel_id
