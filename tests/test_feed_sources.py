from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import aiohttp

from config.loader import RedditSettings
from feeds.reddit import RedditSource, is_valid_submission, md_from_reddit
from feeds.rss import RssSource, html_to_markdown, parse_feed
from games.catalog import Game, RedditProvider, RedditUser, RssProvider

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

PROVIDER = RedditProvider(
    subreddit="DotA2",
    users=(RedditUser("wykrhm"), RedditUser("Magesunite", title_filter="(Update|Patch)")),
    url_filters=(r"blog\.dota2\.com",),
)
RSS = RssProvider(label="Dota 2 Blog", url="https://blog.dota2.com/feed")
DOTA = Game(name="dota", label="Dota 2", reddit=PROVIDER, rss=(RSS,))

FEED_XML = b"""<?xml version="1.0" encoding="utf-8"?>
<rss version="2.0">
  <channel>
    <title>Dota 2 Blog</title>
    <link>https://blog.dota2.com</link>
    <item>
      <title>New Patch</title>
      <link>https://blog.dota2.com/2024/05/patch</link>
      <pubDate>Wed, 01 May 2024 13:00:00 GMT</pubDate>
      <description>&lt;p&gt;Hello &lt;b&gt;world&lt;/b&gt;&lt;/p&gt;</description>
    </item>
    <item>
      <title>Old news</title>
      <link>https://blog.dota2.com/old</link>
      <pubDate>Tue, 30 Apr 2024 10:00:00 GMT</pubDate>
      <description>old</description>
    </item>
  </channel>
</rss>
"""


def _submission(minutes=5, *, subreddit="dota2", title="Gameplay Update", url="https://reddit.com/r/DotA2/x", selftext=""):
    return SimpleNamespace(
        created_utc=(T0 + timedelta(minutes=minutes)).timestamp(),
        subreddit=SimpleNamespace(display_name=subreddit),
        title=title,
        url=url,
        selftext=selftext,
    )


class _FakeReddit:
    def __init__(self, posts):
        self.posts = posts

    def redditor(self, name):
        posts = self.posts[name]
        if isinstance(posts, Exception):
            raise posts
        return SimpleNamespace(submissions=SimpleNamespace(new=lambda limit: list(posts)))


class RedditTests(unittest.TestCase):
    def test_md_from_reddit_links_users_and_subreddits(self):
        self.assertEqual(
            md_from_reddit("thanks /u/wykrhm, see /r/DotA2"),
            "thanks [/u/wykrhm](https://www.reddit.com/user/wykrhm), "
            "see [/r/DotA2](https://www.reddit.com/r/DotA2)",
        )

    def test_submission_filters(self):
        user = PROVIDER.users[1]
        self.assertTrue(is_valid_submission(_submission(), PROVIDER, user, T0))
        self.assertFalse(is_valid_submission(_submission(minutes=-1), PROVIDER, user, T0))
        self.assertFalse(is_valid_submission(_submission(subreddit="Artifact"), PROVIDER, user, T0))
        self.assertFalse(is_valid_submission(_submission(title="AMA tomorrow"), PROVIDER, user, T0))
        self.assertFalse(is_valid_submission(_submission(url="https://blog.dota2.com/p"), PROVIDER, user, T0))
        self.assertFalse(is_valid_submission(_submission(selftext="[removed]"), PROVIDER, user, T0))

    def test_missing_credentials_disable_source(self):
        with self.assertLogs("feeds.reddit", level="WARNING"):
            source = RedditSource(RedditSettings(enabled=True, client_id="cid"))
        self.assertFalse(source.enabled)

    def test_fetch_isolates_failing_users(self):
        reddit = _FakeReddit(
            {
                "wykrhm": RuntimeError("suspended"),
                "Magesunite": [_submission(2, title="Patch 7.35"), _submission(1, title="Fan art")],
            }
        )
        source = RedditSource(RedditSettings(enabled=True), reddit=reddit)
        with self.assertLogs("feeds.reddit", level="ERROR"):
            items = source.fetch_sync(DOTA, T0)

        self.assertEqual([n.title for n in items], ["Patch 7.35"])
        self.assertEqual(items[0].author, "/u/Magesunite")
        self.assertEqual(items[0].footer, "Dota 2")


class RedditSourceAsyncTests(unittest.IsolatedAsyncioTestCase):
    async def test_disabled_source_returns_nothing(self):
        source = RedditSource(RedditSettings(enabled=False))
        self.assertEqual(await source.get_notifications(DOTA, T0), [])


class RssTests(unittest.IsolatedAsyncioTestCase):
    def test_html_to_markdown(self):
        self.assertEqual(html_to_markdown("<p>Hello <b>world</b></p>"), "Hello **world**")

    def test_parse_feed_keeps_new_entries(self):
        items = parse_feed(FEED_XML, RSS, DOTA, T0)
        self.assertEqual(len(items), 1)
        item = items[0]
        self.assertEqual(item.title, "New Patch")
        self.assertEqual(item.link, "https://blog.dota2.com/2024/05/patch")
        self.assertEqual(item.timestamp, T0 + timedelta(hours=1))
        self.assertEqual(item.author, "Dota 2 Blog")
        self.assertIn("**world**", item.content)
        self.assertIs(item.game, DOTA)

    async def test_fetch_errors_are_logged(self):
        source = RssSource()
        source.fetch = AsyncMock(side_effect=aiohttp.ClientError("boom"))
        with self.assertLogs("feeds.rss", level="ERROR"):
            self.assertEqual(await source.get_notifications(DOTA, T0), [])

    async def test_get_notifications_parses_fetched_feed(self):
        source = RssSource()
        source.fetch = AsyncMock(return_value=FEED_XML)
        items = await source.get_notifications(DOTA, T0, limit=5)
        self.assertEqual([n.title for n in items], ["New Patch"])
        source.fetch.assert_awaited_once_with("https://blog.dota2.com/feed")


if __name__ == "__main__":
    unittest.main()
