from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from clients.models import Channel, ChannelInfo, InboundMessage
from config.loader import BotSettings
from games.catalog import Game
from store.subscribers import SubscriberStore

logger = logging.getLogger(__name__)

InboundHandler = Callable[["BotClient", InboundMessage], Awaitable[None]]


class BotClient:
    """Platform-neutral part of a chat client.

    Subclasses implement the platform calls (mention tag, channel info,
    admin lookup, sending, start/stop). Subscription state lives in the
    shared SubscriberStore and is mirrored into `channels`.
    """

    def __init__(self, name: str, label: str, settings: BotSettings, store: SubscriberStore) -> None:
        self.name = name
        self.label = label
        self.prefix = settings.prefix
        self.token = settings.token
        self.enabled = settings.enabled
        self.owner_ids: set[str] = {str(o) for o in settings.owners}
        self.store = store
        self.channels: dict[str, Channel] = {}
        self.is_running = False
        self._mention_tag: str | None = None
        self._inbound_handler: InboundHandler | None = None

    # Platform calls

    async def get_mention_tag(self) -> str:
        raise NotImplementedError

    async def get_user_name(self) -> str:
        raise NotImplementedError

    async def get_channel_info(self, channel: Channel) -> ChannelInfo:
        raise NotImplementedError

    async def is_channel_admin(self, user_id: str, channel: Channel) -> bool:
        raise NotImplementedError

    async def get_channel_user_count(self, channel: Channel) -> int | None:
        raise NotImplementedError

    async def send_message(self, channel: Channel, message: Any) -> bool:
        raise NotImplementedError

    async def start(self) -> bool:
        raise NotImplementedError

    async def stop(self) -> None:
        raise NotImplementedError

    # Inbound events

    def on_inbound(self, handler: InboundHandler) -> None:
        if self._inbound_handler is not None:
            raise RuntimeError(f"{self.label} already has an inbound handler")
        self._inbound_handler = handler

    async def emit_inbound(self, message: InboundMessage) -> None:
        if self._inbound_handler is None:
            logger.debug("[%s] inbound message dropped, no handler bound", self.label)
            return
        await self._inbound_handler(self, message)

    async def mention_tag(self) -> str | None:
        """Cached mention tag, or None if the platform could not tell us."""
        if self._mention_tag:
            return self._mention_tag
        try:
            self._mention_tag = await self.get_mention_tag()
        except Exception as e:
            logger.warning("[%s] failed to get mention tag: %s", self.label, e)
            return None
        return self._mention_tag

    # Channels and subscriptions

    async def load_channels(self) -> None:
        records = await self.store.get_records(self.name)
        self.channels = {}
        for record in records:
            channel = Channel.from_record(self, record)
            self.channels[channel.id] = channel
        logger.info("[%s] loaded %d channel(s)", self.label, len(self.channels))

    def get_channel(self, channel_id: str) -> Channel:
        """Known channel, or a throwaway one for channels without stored settings."""
        channel_id = str(channel_id)
        channel = self.channels.get(channel_id)
        if channel is None:
            channel = Channel(id=channel_id, bot=self)
        return channel

    def subscribed_channels(self, game: Game | None = None) -> list[Channel]:
        if game is None:
            return [c for c in self.channels.values() if c.game_subs]
        return [c for c in self.channels.values() if c.is_subscribed(game.name)]

    def _track(self, channel: Channel) -> Channel:
        return self.channels.setdefault(channel.id, channel)

    def _settle(self, tracked: Channel, channel: Channel) -> None:
        if channel is not tracked:
            channel.game_subs = list(tracked.game_subs)
            channel.custom_prefix = tracked.custom_prefix
        # Mirrors the store, which drops records without subscriptions or prefix.
        if not tracked.game_subs and not tracked.custom_prefix:
            self.channels.pop(tracked.id, None)

    async def add_subscriber(self, channel: Channel, game: Game) -> bool:
        added = await self.store.add_game_sub(self.name, channel.id, game.name)
        tracked = self._track(channel)
        if added and not tracked.is_subscribed(game.name):
            tracked.game_subs.append(game.name)
        self._settle(tracked, channel)
        return added

    async def remove_subscriber(self, channel: Channel, game: Game) -> bool:
        removed = await self.store.remove_game_sub(self.name, channel.id, game.name)
        tracked = self._track(channel)
        if game.name in tracked.game_subs:
            tracked.game_subs.remove(game.name)
        self._settle(tracked, channel)
        return removed

    async def set_prefix(self, channel: Channel, prefix: str) -> None:
        # The bot default is stored as no prefix at all.
        stored = "" if prefix == self.prefix else prefix
        await self.store.set_prefix(self.name, channel.id, stored)
        tracked = self._track(channel)
        tracked.custom_prefix = stored
        self._settle(tracked, channel)

    async def _send_all(self, channels: list[Channel], message: Any) -> int:
        if not channels:
            return 0
        results = await asyncio.gather(*(self.send_message(c, message) for c in channels), return_exceptions=True)
        sent = 0
        for channel, result in zip(channels, results):
            if isinstance(result, Exception):
                logger.error("[%s] failed to send to %s: %s", self.label, channel.id, result)
            elif result is True:
                sent += 1
        return sent

    async def send_to_game_subs(self, game: Game, message: Any) -> int:
        channels = [c for c in self.subscribed_channels(game) if not c.disabled]
        return await self._send_all(channels, message)

    async def send_to_all_subs(self, message: Any) -> int:
        channels = [c for c in self.subscribed_channels() if not c.disabled]
        return await self._send_all(channels, message)

    # Stats

    async def get_channel_count(self) -> int:
        return len(self.subscribed_channels())

    async def get_user_count(self) -> int:
        counts = await asyncio.gather(
            *(self.get_channel_user_count(c) for c in self.subscribed_channels()),
            return_exceptions=True,
        )
        return sum(c for c in counts if isinstance(c, int))
