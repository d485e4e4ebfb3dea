from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from config.defaults import MIN_UPDATE_DELAY_SECONDS
from config.loader import UpdaterConfig
from feeds.notification import Notification, sort_limit_end
from games.catalog import GameCatalog
from store.updater_data import UpdaterDataStore

logger = logging.getLogger(__name__)


class Updater:
    """Collects new feed items and relays them to every client's subscribers."""

    def __init__(
        self,
        *,
        catalog: GameCatalog,
        get_bots: Callable[[], list[Any]],
        sources: list[Any],
        data_store: UpdaterDataStore,
        config: UpdaterConfig,
    ) -> None:
        self.catalog = catalog
        self.get_bots = get_bots
        self.sources = list(sources)
        self.data_store = data_store
        self.config = config

    async def collect(self, since: datetime) -> list[Notification]:
        notifications: list[Notification] = []
        for game in self.catalog.games:
            game_items: list[Notification] = []
            for source in self.sources:
                try:
                    game_items.extend(await source.get_notifications(game, since, self.config.limit))
                except Exception as e:
                    logger.error("[Updater] %s failed for %s: %s", type(source).__name__, game.name, e)
            notifications.extend(sort_limit_end(game_items, self.config.limit))
        return sort_limit_end(notifications)

    async def run_tick(self) -> int:
        """One update cycle. Returns the number of deliveries."""
        data = await self.data_store.load()
        since = data.last_update
        started = datetime.now(timezone.utc)

        notifications = await self.collect(since)
        if notifications:
            logger.info("[Updater] %d new notification(s) since %s", len(notifications), since.isoformat())

        delivered = 0
        bots = [b for b in self.get_bots() if b.is_running]
        for notification in notifications:
            if notification.game is None:
                continue
            results = await asyncio.gather(
                *(b.send_to_game_subs(notification.game, notification) for b in bots),
                return_exceptions=True,
            )
            for bot, result in zip(bots, results):
                if isinstance(result, Exception):
                    logger.error("[Updater] %s failed to deliver '%s': %s", bot.label, notification.title, result)
                else:
                    delivered += result

        if notifications:
            data.last_update = max(since, notifications[-1].timestamp)
        data.healthcheck_timestamp = started
        if self.config.autosave:
            await self.data_store.save(data)
        return delivered


async def update_loop(
    *,
    updater: Updater,
    interval_seconds: int = MIN_UPDATE_DELAY_SECONDS,
) -> None:
    while True:
        try:
            await updater.run_tick()
        except Exception as e:
            logger.error("[Updater] loop error: %s", e)
        await asyncio.sleep(max(MIN_UPDATE_DELAY_SECONDS, int(interval_seconds)))
