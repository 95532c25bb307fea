"""Shared test fixtures for the tube-relay test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tube_relay.config.settings import DatabaseEngine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

CHANNEL_ID = "UCBR8-60-B28hp2BmDPdntcQ"
TOPIC_URL = f"https://www.youtube.com/xml/feeds/videos.xml?channel_id={CHANNEL_ID}"

_FEED_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015" xmlns="http://www.w3.org/2005/Atom">
  <link rel="hub" href="https://pubsubhubbub.appspot.com"/>
  <link rel="self" href="https://www.youtube.com/xml/feeds/videos.xml?channel_id={channel_id}"/>
  <title>YouTube video feed</title>
  <updated>2024-03-09T19:05:24.552394234+00:00</updated>
  <entry>
    <id>yt:video:{video_id}</id>
    <yt:videoId>{video_id}</yt:videoId>
    <yt:channelId>{channel_id}</yt:channelId>
    <title>{title}</title>
    <link rel="alternate" href="{href}"/>
    <author>
      <name>Test Channel</name>
      <uri>http://www.youtube.com/channel/{channel_id}</uri>
    </author>
    <published>{published}</published>
    <updated>{updated}</updated>
  </entry>
</feed>
"""


def build_feed(
    *,
    video_id: str = "dQw4w9WgXcQ",
    channel_id: str = CHANNEL_ID,
    title: str = "New upload",
    href: str | None = None,
    published: str = "2024-03-09T19:05:00+00:00",
    updated: str = "2024-03-09T19:05:24+00:00",
) -> bytes:
    """Render a single-entry upload notification."""
    return _FEED_TEMPLATE.format(
        video_id=video_id,
        channel_id=channel_id,
        title=title,
        href=href or f"https://www.youtube.com/watch?v={video_id}",
        published=published,
        updated=updated,
    ).encode("utf-8")


@pytest.fixture
def feed_xml():
    """Factory for upload notification bodies."""
    return build_feed


@pytest.fixture
def app_config():
    """Provide a test AppConfig with safe defaults."""
    from tube_relay.config.settings import (
        AppConfig,
        DatabaseConfig,
        MetricsConfig,
        RedditConfig,
        SchedulerConfig,
        TaskConfig,
    )

    return AppConfig(
        debug=True,
        db=DatabaseConfig(
            engine=DatabaseEngine.SQLITE,
            dsn="sqlite+aiosqlite:///:memory:",
        ),
        scheduler=SchedulerConfig(safety_buffer_seconds=3600, min_delay_seconds=5),
        reddit=RedditConfig(
            client_id="app-id",
            client_secret="app-secret",
            redirect_url="http://relay.test/reddit/callback",
            user_agent="tube-relay-tests/0.1",
            auth_url="https://www.reddit.test",
            api_url="https://oauth.reddit.test",
        ),
        metrics=MetricsConfig(enabled=True),
        task=TaskConfig(enabled=False),
    )


@pytest.fixture
async def datastore(app_config) -> AsyncIterator:
    """Open an in-memory datastore with every table created."""
    from tube_relay.datastore.client import Datastore
    from tube_relay.engine.models import Base

    ds = Datastore(app_config.db)
    await ds.open(base=Base)
    yield ds
    await ds.close()


@pytest.fixture
def subscription_repo(datastore):
    from tube_relay.engine.repository import SubscriptionRepository

    return SubscriptionRepository(datastore)


@pytest.fixture
def account_repo(datastore):
    from tube_relay.engine.repository import AccountRepository

    return AccountRepository(datastore)


@pytest.fixture
def subreddit_repo(datastore):
    from tube_relay.engine.repository import SubredditRepository

    return SubredditRepository(datastore)


@pytest.fixture
def submission_repo(datastore):
    from tube_relay.engine.repository import SubmissionRepository

    return SubmissionRepository(datastore)


@pytest.fixture
def form_repo(datastore):
    from tube_relay.engine.repository import FormRepository

    return FormRepository(datastore)
