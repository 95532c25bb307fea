"""WebSub (PubSubHubbub) side of the relay."""

from __future__ import annotations

from tube_relay.websub.feed import Entry, Feed, parse_feed, should_relay
from tube_relay.websub.hub import HubClient, extract_channel_id
from tube_relay.websub.protocol import SubscriptionProtocolHandler, VerificationMode
from tube_relay.websub.signature import compute_signature, verify_notification, verify_signature

__all__ = [
    "Entry",
    "Feed",
    "HubClient",
    "SubscriptionProtocolHandler",
    "VerificationMode",
    "compute_signature",
    "extract_channel_id",
    "parse_feed",
    "should_relay",
    "verify_notification",
    "verify_signature",
]
