from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone

import praw

from config.defaults import PROJECT_NAME
from config.defaults import PROJECT_VERSION
from config.loader import RedditSettings
from feeds.notification import Notification, sort_limit_end
from games.catalog import Game, RedditProvider, RedditUser

logger = logging.getLogger(__name__)

REDDIT_ICON = "https://www.redditstatic.com/new-icon.png"
SUBMISSION_FETCH_LIMIT = 25


def md_from_reddit(text: str) -> str:
    """Link bare /u/ and /r/ references."""
    text = text or ""
    text = re.sub(r"(?<![\w/\[])/u/([A-Za-z0-9_-]+)", r"[/u/\1](https://www.reddit.com/user/\1)", text)
    text = re.sub(r"(?<![\w/\[])/r/([A-Za-z0-9_]+)", r"[/r/\1](https://www.reddit.com/r/\1)", text)
    return text


def _created_at(submission) -> datetime:
    return datetime.fromtimestamp(float(submission.created_utc), tz=timezone.utc)


def _subreddit_name(submission) -> str:
    subreddit = getattr(submission, "subreddit", None)
    name = getattr(subreddit, "display_name", subreddit)
    return str(name or "")


def is_valid_submission(
    submission,
    provider: RedditProvider,
    user: RedditUser,
    since: datetime,
) -> bool:
    if _created_at(submission) <= since:
        return False
    if _subreddit_name(submission).lower() != provider.subreddit.lower():
        return False
    if not user.matches_title(submission.title):
        return False
    # Links already covered by another provider.
    url = str(getattr(submission, "url", "") or "")
    if any(re.search(f, url) for f in provider.url_filters):
        return False
    return (getattr(submission, "selftext", "") or "").strip() != "[removed]"


def notification_from_submission(submission, user: RedditUser, game: Game) -> Notification:
    return Notification(
        timestamp=_created_at(submission),
        title=str(submission.title),
        link=str(submission.url),
        author=f"/u/{user.name}",
        author_link=f"https://www.reddit.com/user/{user.name}",
        author_icon=REDDIT_ICON,
        content=md_from_reddit(getattr(submission, "selftext", "") or ""),
    ).with_game_defaults(game)


class RedditSource:
    """Posts by selected users on a game's subreddit."""

    def __init__(self, settings: RedditSettings, *, reddit=None) -> None:
        self.settings = settings
        self._reddit = reddit
        self.enabled = bool(settings.enabled)

        if not self.enabled:
            logger.debug("[Reddit] disabled in config.")
            return
        missing = settings.missing_params()
        if missing and reddit is None:
            logger.warning("[Reddit] missing parameters in api config: %s; disabling reddit updates.", ", ".join(missing))
            self.enabled = False

    @property
    def user_agent(self) -> str:
        return f"discord/telegram:{PROJECT_NAME.lower()}:v{PROJECT_VERSION} (by /u/{self.settings.user_name})"

    def _client(self):
        if self._reddit is None:
            self._reddit = praw.Reddit(
                client_id=self.settings.client_id,
                client_secret=self.settings.client_secret,
                refresh_token=self.settings.refresh_token,
                user_agent=self.user_agent,
            )
            logger.info("[Reddit] initialized with user agent '%s'", self.user_agent)
        return self._reddit

    def fetch_sync(self, game: Game, since: datetime, limit: int | None = None) -> list[Notification]:
        provider = game.reddit
        if provider is None:
            return []

        reddit = self._client()
        notifications: list[Notification] = []
        for user in provider.users:
            try:
                logger.debug("[Reddit] getting posts from /u/%s on /r/%s", user.name, provider.subreddit)
                for submission in reddit.redditor(user.name).submissions.new(limit=SUBMISSION_FETCH_LIMIT):
                    if is_valid_submission(submission, provider, user, since):
                        notifications.append(notification_from_submission(submission, user, game))
            except Exception as e:
                logger.error("[Reddit] failed to get posts from /u/%s: %s", user.name, e)
        return sort_limit_end(notifications, limit)

    async def get_notifications(self, game: Game, since: datetime, limit: int | None = None) -> list[Notification]:
        if not self.enabled or game.reddit is None:
            return []
        return await asyncio.to_thread(self.fetch_sync, game, since, limit)
