"""
Live-blog feed polling.

The feed is a JSON document of the form:

    {"snippets": [{"title": "...", "published_at": "2021-05-22T21:03:00Z"}, ...]}

Every ``POLL_INTERVAL`` seconds the feed is fetched and its entries are
walked in order:

    - a fresh entry (younger than ``FRESHNESS_WINDOW``) whose title holds the
      marker token and a country name lights that country's scene followed by
      the dim scene, then ends the cycle
    - a fresh entry matching the country already shown ends the cycle silently
    - a stale entry restores the ordinary scene and the walk goes on

Stale entries placed before the first match still reapply the ordinary scene
on every cycle.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional

from aiohttp import ClientError, ClientTimeout

from .const import FRESHNESS_WINDOW, MARKER_TOKEN, POLL_INTERVAL
from .dispatcher import PollContext
from .errors import FeedError
from .scenes import SceneBook

_LOGGER = logging.getLogger(__name__)

FEED_TIMEOUT = ClientTimeout(total=10)


@dataclass
class FeedEntry:
    title: str
    published_at: Optional[datetime]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp, returning None if it cannot be read.

    Naive timestamps are taken as UTC.
    """
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_feed(payload: Any) -> List[FeedEntry]:
    """Extract the entries of a feed payload, in feed order."""
    snippets = payload.get("snippets") if isinstance(payload, dict) else None
    if not isinstance(snippets, list):
        return []

    entries = []
    for snippet in snippets:
        if not isinstance(snippet, dict):
            continue
        title = snippet.get("title") or ""
        entries.append(FeedEntry(str(title), parse_timestamp(snippet.get("published_at"))))
    return entries


async def fetch_feed(session, url: str) -> Any:
    """
    GET ``url`` and decode it as JSON.

    Raises:
        FeedError: On transport, HTTP status or decoding errors.
    """
    try:
        async with session.get(url, timeout=FEED_TIMEOUT) as resp:
            resp.raise_for_status()
            return await resp.json(content_type=None)
    except (ClientError, asyncio.TimeoutError, ValueError) as e:
        raise FeedError(f"Cannot fetch feed {url}: {str(e) or type(e).__name__}") from e


class FeedPoller:
    """Turns feed entries into scene dispatches."""

    def __init__(self, context: PollContext, scenes: SceneBook, url: str,
                 session=None, fetch=None, now=None, sleep=asyncio.sleep):
        self.context = context
        self.scenes = scenes
        self.url = url
        self._fetch = fetch or (lambda: fetch_feed(session, url))
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._sleep = sleep

    def match_country(self, title: str) -> Optional[str]:
        """Return the first country of the table named in a marked title."""
        if MARKER_TOKEN not in title:
            return None
        for country in self.scenes.countries:
            if country in title:
                return country
        return None

    def is_fresh(self, entry: FeedEntry, now: datetime) -> bool:
        if entry.published_at is None:
            return False
        return now - entry.published_at < FRESHNESS_WINDOW

    async def poll(self) -> None:
        """Run one poll cycle."""
        try:
            payload = await self._fetch()
        except FeedError as e:
            _LOGGER.warning("Skipping this cycle: %s", e)
            return

        dispatcher = self.context.dispatcher
        now = self._now()

        for entry in parse_feed(payload):
            if not self.is_fresh(entry, now):
                _LOGGER.debug("Old headline: %s", entry.title)
                await dispatcher.apply(self.scenes.ordinary)
                continue

            country = self.match_country(entry.title)
            if country is None:
                _LOGGER.debug("Headline not related: %s", entry.title)
                continue

            if country == self.context.last_applied_country:
                return

            _LOGGER.info("New country! %s", country)
            self.context.last_applied_country = country
            await dispatcher.apply(self.scenes.countries[country])
            await dispatcher.apply(self.scenes.dim)
            return

    async def run_forever(self) -> None:
        _LOGGER.info("Polling %s every %ss", self.url, POLL_INTERVAL)
        while True:
            try:
                await self.poll()
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Poll cycle failed")
            await self._sleep(POLL_INTERVAL)
