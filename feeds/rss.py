from __future__ import annotations

import asyncio
import logging
import re
from calendar import timegm
from datetime import datetime, timezone
from urllib.parse import urljoin

import aiohttp
import feedparser
from html2text import HTML2Text

from feeds.notification import Notification, sort_limit_end
from games.catalog import Game, RssProvider

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_SECONDS = 30


def html_to_markdown(html_text: str) -> str:
    htmlfixer = HTML2Text()
    htmlfixer.ignore_images = False
    htmlfixer.ignore_emphasis = False
    htmlfixer.body_width = 0
    htmlfixer.unicode_snob = True
    htmlfixer.ul_item_mark = "-"
    markdown = htmlfixer.handle(html_text or "")
    # Strip whatever markup html2text let through.
    return re.sub("<[^<]+?>", "", markdown).strip()


def _entry_time(entry) -> datetime | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime.fromtimestamp(timegm(parsed), tz=timezone.utc)


def _entry_content(entry) -> str:
    content = entry.get("content")
    if content:
        return content[0].get("value", "")
    return entry.get("summary", "")


def parse_feed(data, provider: RssProvider, game: Game, since: datetime) -> list[Notification]:
    feed = feedparser.parse(data)
    if feed.bozo and not feed.entries:
        logger.warning("[RSS] could not parse %s: %s", provider.url, feed.get("bozo_exception"))
        return []

    notifications: list[Notification] = []
    for entry in feed.entries:
        timestamp = _entry_time(entry)
        if timestamp is None or timestamp <= since:
            continue
        notifications.append(
            Notification(
                timestamp=timestamp,
                title=entry.get("title", ""),
                link=urljoin(provider.url, entry.get("link", "")),
                author=provider.label,
                author_link=feed.feed.get("link", ""),
                content=html_to_markdown(_entry_content(entry)),
            ).with_game_defaults(game)
        )
    return notifications


class RssSource:
    def __init__(self, session: aiohttp.ClientSession | None = None) -> None:
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=FETCH_TIMEOUT_SECONDS))
            self._owns_session = True
        return self._session

    async def fetch(self, url: str) -> bytes | None:
        session = await self._get_session()
        async with session.get(url) as resp:
            if resp.status != 200:
                logger.warning("[RSS] %s returned HTTP %s", url, resp.status)
                return None
            return await resp.read()

    async def get_notifications(self, game: Game, since: datetime, limit: int | None = None) -> list[Notification]:
        notifications: list[Notification] = []
        for provider in game.rss:
            try:
                data = await self.fetch(provider.url)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error("[RSS] failed to fetch %s: %s", provider.url, e)
                continue
            if data is None:
                continue
            notifications.extend(parse_feed(data, provider, game, since))
        return sort_limit_end(notifications, limit)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
