"""Atom feed models for hub notifications, plus content gates.

A YouTube upload notification is an Atom document with one ``<entry>``::

    <feed xmlns:yt="http://www.youtube.com/xml/schemas/2015"
          xmlns="http://www.w3.org/2005/Atom">
      <link rel="hub" href="https://pubsubhubbub.appspot.com"/>
      <link rel="self" href="https://www.youtube.com/xml/feeds/videos.xml?channel_id=CHANNEL_ID"/>
      <title>YouTube video feed</title>
      <updated>2015-04-01T19:05:24.552394234+00:00</updated>
      <entry>
        <id>yt:video:VIDEO_ID</id>
        <yt:videoId>VIDEO_ID</yt:videoId>
        <yt:channelId>CHANNEL_ID</yt:channelId>
        <title>Video title</title>
        <link rel="alternate" href="http://www.youtube.com/watch?v=VIDEO_ID"/>
        <author>
          <name>Channel title</name>
          <uri>http://www.youtube.com/channel/CHANNEL_ID</uri>
        </author>
        <published>2015-03-06T21:40:57+00:00</published>
        <updated>2015-03-09T19:05:24.552394234+00:00</updated>
      </entry>
    </feed>

Deleted videos arrive as ``<at:deleted-entry>`` elements with no ``<entry>``;
those parse to a ``Feed`` whose ``entry`` is ``None``.

Signed notifications are parsed strictly: every field of the entry is
required and a malformed body is an ``ErrInvalidFeed``. The public channel
feed read for display names goes through feedparser and never raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from xml.etree import ElementTree as ET

import feedparser

from tube_relay.errors.definitions import ErrInvalidFeed

logger = logging.getLogger(__name__)

NS = {
    "atom": "http://www.w3.org/2005/Atom",
    "yt": "http://www.youtube.com/xml/schemas/2015",
}

# An entry updated more than this long after publishing is an edit, not an upload
EDIT_THRESHOLD = timedelta(seconds=60)

SHORTS_MARKER = "shorts"


@dataclass(frozen=True)
class Link:
    """An Atom ``<link>``."""

    rel: str
    href: str


@dataclass(frozen=True)
class Author:
    """An Atom ``<author>``."""

    name: str
    uri: str


@dataclass(frozen=True)
class Entry:
    """One uploaded video."""

    id: str
    video_id: str
    channel_id: str
    title: str
    link: Link
    author: Author
    published: datetime
    updated: datetime

    @property
    def is_metadata_edit(self) -> bool:
        """Whether this notification reports an edit of an older video."""
        return self.updated - self.published > EDIT_THRESHOLD

    @property
    def is_short(self) -> bool:
        """Whether the video is a YouTube Short."""
        return SHORTS_MARKER in self.link.href


@dataclass(frozen=True)
class Feed:
    """A parsed notification document."""

    title: str
    updated: datetime | None
    links: list[Link] = field(default_factory=list)
    entry: Entry | None = None


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _text(element: ET.Element, path: str) -> str:
    found = element.find(path, NS)
    if found is None or found.text is None:
        raise ErrInvalidFeed
    return found.text.strip()


def _link(element: ET.Element | None) -> Link:
    if element is None:
        raise ErrInvalidFeed
    return Link(rel=element.get("rel", ""), href=element.get("href", ""))


def _parse_entry(element: ET.Element) -> Entry:
    author = element.find("atom:author", NS)
    if author is None:
        raise ErrInvalidFeed
    try:
        published = parse_timestamp(_text(element, "atom:published"))
        updated = parse_timestamp(_text(element, "atom:updated"))
    except ValueError as exc:
        raise ErrInvalidFeed from exc
    return Entry(
        id=_text(element, "atom:id"),
        video_id=_text(element, "yt:videoId"),
        channel_id=_text(element, "yt:channelId"),
        title=_text(element, "atom:title"),
        link=_link(element.find("atom:link", NS)),
        author=Author(name=_text(author, "atom:name"), uri=_text(author, "atom:uri")),
        published=published,
        updated=updated,
    )


def parse_feed(body: bytes | str) -> Feed:
    """Parse a notification body.

    Raises:
        ValidationFailure: If the body is not well-formed or misses required fields.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise ErrInvalidFeed from exc
    if root.tag != f"{{{NS['atom']}}}feed":
        raise ErrInvalidFeed

    title_el = root.find("atom:title", NS)
    updated_el = root.find("atom:updated", NS)
    updated = None
    if updated_el is not None and updated_el.text:
        try:
            updated = parse_timestamp(updated_el.text)
        except ValueError:
            logger.debug("Ignoring unparseable feed <updated>: %r", updated_el.text)

    entry_el = root.find("atom:entry", NS)
    return Feed(
        title=(title_el.text or "").strip() if title_el is not None else "",
        updated=updated,
        links=[_link(el) for el in root.findall("atom:link", NS)],
        entry=_parse_entry(entry_el) if entry_el is not None else None,
    )


def parse_channel_name(body: bytes | str) -> str | None:
    """Read a channel's display name from its public upload feed.

    Uses the feed ``<title>``, falling back to the first entry's author.
    Returns ``None`` when neither is present or the document is not a feed.
    """
    if isinstance(body, str):
        body = body.encode()
    parsed = feedparser.parse(body)
    title = (parsed.feed.get("title") or "").strip()
    if title:
        return title
    if parsed.entries:
        author = (parsed.entries[0].get("author") or "").strip()
        if author:
            return author
    if parsed.bozo:
        logger.debug("Unreadable channel feed: %s", parsed.get("bozo_exception"))
    return None


def should_relay(entry: Entry, *, post_shorts: bool) -> bool:
    """Apply the content gates to a verified entry.

    Metadata edits are always dropped; Shorts are dropped unless the
    subscription opts in.
    """
    if entry.is_metadata_edit:
        logger.warning(
            "Dropping %s: updated %s after publishing",
            entry.video_id,
            entry.updated - entry.published,
        )
        return False
    if entry.is_short and not post_shorts:
        logger.warning("Dropping %s: Shorts are not relayed for this subscription", entry.video_id)
        return False
    return True
