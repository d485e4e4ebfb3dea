from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import discord

from clients.base import BotClient
from clients.models import Channel, ChannelInfo, InboundMessage, IndividualAuthor
from config.defaults import DISCORD_MAX_EMBED_DESCRIPTION
from config.defaults import DISCORD_MAX_MESSAGE_LEN
from config.loader import BotSettings
from feeds.markdown import to_discord_markdown, truncate
from feeds.notification import Notification
from misc.text_utils import chunk_text
from store.subscribers import SubscriberStore

logger = logging.getLogger(__name__)

EMBED_TITLE_LIMIT = 256


def normalize_mentions(text: str) -> str:
    """Nickname mentions (<@!id>) become plain user mentions (<@id>)."""
    return re.sub(r"<@!(\d+)>", r"<@\1>", text or "")


def parse_color(raw: str) -> discord.Colour | None:
    value = (raw or "").strip().lstrip("#")
    if not re.fullmatch(r"[0-9a-fA-F]{6}", value):
        return None
    return discord.Colour(int(value, 16))


def embed_from_notification(notification: Notification) -> discord.Embed:
    embed = discord.Embed(
        title=truncate(notification.title, EMBED_TITLE_LIMIT) or None,
        url=notification.link or None,
        description=truncate(
            to_discord_markdown(notification.content, is_embed=True),
            DISCORD_MAX_EMBED_DESCRIPTION,
        )
        or None,
        timestamp=notification.timestamp,
    )
    colour = parse_color(notification.color)
    if colour is not None:
        embed.colour = colour
    if notification.author:
        embed.set_author(
            name=notification.author,
            url=notification.author_link or None,
            icon_url=notification.author_icon or None,
        )
    if notification.thumbnail:
        embed.set_thumbnail(url=notification.thumbnail)
    if notification.footer:
        embed.set_footer(text=notification.footer)
    return embed


class DiscordClient(BotClient):
    def __init__(self, settings: BotSettings, store: SubscriberStore, *, client: discord.Client | None = None) -> None:
        super().__init__("discord", "Discord", settings, store)
        if client is None:
            intents = discord.Intents.default()
            intents.message_content = True
            client = discord.Client(intents=intents)
        self.client = client
        self.client.event(self.on_ready)
        self.client.event(self.on_message)
        self._run_task: asyncio.Task | None = None

    async def on_ready(self) -> None:
        logger.info("[Discord] logged in as %s", self.client.user)

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.author == self.client.user:
            return
        inbound = InboundMessage(
            channel_id=str(message.channel.id),
            author=IndividualAuthor(str(message.author.id)),
            text=normalize_mentions(message.content),
            timestamp=message.created_at,
        )
        await self.emit_inbound(inbound)

    async def _resolve(self, channel: Channel):
        channel_id = int(channel.id)
        return self.client.get_channel(channel_id) or await self.client.fetch_channel(channel_id)

    async def get_user_name(self) -> str:
        if self.client.user is None:
            raise RuntimeError("Discord client is not logged in")
        return self.client.user.name

    async def get_mention_tag(self) -> str:
        if self.client.user is None:
            raise RuntimeError("Discord client is not logged in")
        return f"<@{self.client.user.id}>"

    async def get_channel_info(self, channel: Channel) -> ChannelInfo:
        ch = await self._resolve(channel)
        return ChannelInfo(is_private=isinstance(ch, (discord.DMChannel, discord.GroupChannel)))

    async def is_channel_admin(self, user_id: str, channel: Channel) -> bool:
        ch = await self._resolve(channel)
        guild = getattr(ch, "guild", None)
        if guild is None:
            return False
        uid = int(user_id)
        if guild.owner_id == uid:
            return True
        member = guild.get_member(uid) or await guild.fetch_member(uid)
        perms = ch.permissions_for(member)
        return bool(perms.administrator or perms.manage_guild or perms.manage_channels)

    async def get_channel_user_count(self, channel: Channel) -> int | None:
        try:
            ch = await self._resolve(channel)
        except (discord.DiscordException, ValueError) as e:
            logger.error("[Discord] failed to get user count for %s: %s", channel.id, e)
            return None
        guild = getattr(ch, "guild", None)
        if guild is not None and guild.member_count is not None:
            return max(0, guild.member_count - 1)
        recipients = getattr(ch, "recipients", None)
        return len(recipients) if recipients is not None else 1

    async def send_message(self, channel: Channel, message: Any) -> bool:
        parts: list[str] = []
        if not isinstance(message, Notification):
            parts = chunk_text(to_discord_markdown(str(message)), DISCORD_MAX_MESSAGE_LEN)
            if not parts:
                return False
        try:
            ch = await self._resolve(channel)
            if isinstance(message, Notification):
                await ch.send(embed=embed_from_notification(message))
            for part in parts:
                await ch.send(part)
        except (discord.DiscordException, ValueError) as e:
            logger.error("[Discord] failed to send message to %s: %s", channel.id, e)
            return False
        return True

    async def start(self) -> bool:
        if not self.token:
            logger.warning("[Discord] no token configured; not starting.")
            return False
        if self._run_task is not None and not self._run_task.done():
            return True
        self.is_running = True
        self._run_task = asyncio.create_task(self.client.start(self.token))
        self._run_task.add_done_callback(self._on_run_done)
        return True

    def _on_run_done(self, task: asyncio.Task) -> None:
        self.is_running = False
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[Discord] client stopped: %s", exc)

    async def stop(self) -> None:
        await self.client.close()
        self.is_running = False
        logger.info("[Discord] stopped.")
