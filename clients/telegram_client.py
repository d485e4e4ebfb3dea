from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any

import aiohttp

from clients.base import BotClient
from clients.models import Channel, ChannelAuthor, ChannelInfo, InboundMessage, IndividualAuthor
from config.defaults import TELEGRAM_MAX_MESSAGE_LEN
from config.defaults import TELEGRAM_MAX_NOTIFICATION_LEN
from config.loader import BotSettings
from feeds.markdown import to_telegram_html, truncate_html
from feeds.notification import Notification
from store.subscribers import SubscriberStore

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
POLL_TIMEOUT_SECONDS = 30
POLL_RETRY_SECONDS = 5


class TelegramApiError(RuntimeError):
    def __init__(self, method: str, description: str | None, error_code: int | None = None) -> None:
        self.method = method
        self.description = description or "unknown error"
        self.error_code = error_code
        super().__init__(f"{method} failed ({error_code}): {self.description}")


def normalize_command_text(text: str, bot_username: str | None) -> str:
    """`/help@SomeBot` -> `/help` when addressed to this bot."""
    if not bot_username:
        return text
    return re.sub(rf"^(\s*/\w+)@{re.escape(bot_username)}\b", r"\1", text, flags=re.I)


def inbound_from_update(update: dict[str, Any], bot_username: str | None) -> InboundMessage | None:
    msg = update.get("message") or update.get("channel_post")
    if not isinstance(msg, dict):
        return None
    text = msg.get("text") or msg.get("caption")
    if not text:
        return None

    chat_id = str(msg["chat"]["id"])
    sender = msg.get("from")
    sender_chat = msg.get("sender_chat") or {}
    # Channel posts and anonymous admins speak as the chat itself.
    if not sender or str(sender_chat.get("id", "")) == chat_id:
        author = ChannelAuthor()
    else:
        author = IndividualAuthor(str(sender["id"]))

    ts = msg.get("date")
    timestamp = datetime.fromtimestamp(int(ts), tz=timezone.utc) if ts else datetime.now(timezone.utc)
    return InboundMessage(
        channel_id=chat_id,
        author=author,
        text=normalize_command_text(text, bot_username),
        timestamp=timestamp,
    )


def notification_markdown(notification: Notification) -> str:
    """Markdown for a notification, linking through an Instant View template when one matches."""
    game = notification.game
    if game is not None and notification.link:
        for template in game.telegram_iv_templates:
            iv_link = template.test_url(notification.link)
            if iv_link:
                return (
                    f"{notification.headline()}\n\n"
                    f"[{notification.title or notification.link}]({iv_link})\n"
                    f"([external link]({notification.link}))"
                )
    return notification.to_markdown()


class TelegramClient(BotClient):
    def __init__(
        self,
        settings: BotSettings,
        store: SubscriberStore,
        *,
        session: aiohttp.ClientSession | None = None,
        api_base: str = TELEGRAM_API_BASE,
    ) -> None:
        super().__init__("telegram", "Telegram", settings, store)
        self.api_base = api_base.rstrip("/")
        self._session = session
        self._user_name: str | None = None
        self._poll_task: asyncio.Task | None = None
        self._handler_tasks: set[asyncio.Task] = set()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=POLL_TIMEOUT_SECONDS + 15),
            )
        return self._session

    async def call(self, method: str, **params: Any) -> Any:
        session = await self._get_session()
        url = f"{self.api_base}/bot{self.token}/{method}"
        async with session.post(url, json=params) as resp:
            try:
                payload = await resp.json(content_type=None)
            except ValueError as e:
                # Gateway errors come back as HTML pages.
                raise TelegramApiError(method, f"HTTP {resp.status}: non-JSON response", resp.status) from e
        if not isinstance(payload, dict) or not payload.get("ok"):
            payload = payload if isinstance(payload, dict) else {}
            raise TelegramApiError(method, payload.get("description"), payload.get("error_code"))
        return payload.get("result")

    async def get_user_name(self) -> str:
        if self._user_name is None:
            me = await self.call("getMe")
            self._user_name = str(me["username"])
        return self._user_name

    async def get_mention_tag(self) -> str:
        return f"@{await self.get_user_name()}"

    async def get_channel_info(self, channel: Channel) -> ChannelInfo:
        chat = await self.call("getChat", chat_id=channel.id)
        return ChannelInfo(
            is_private=chat.get("type") == "private",
            all_members_admin=bool(chat.get("all_members_are_administrators")),
        )

    async def is_channel_admin(self, user_id: str, channel: Channel) -> bool:
        admins = await self.call("getChatAdministrators", chat_id=channel.id) or []
        return any(str(admin["user"]["id"]) == str(user_id) for admin in admins)

    async def get_channel_user_count(self, channel: Channel) -> int | None:
        try:
            count = await self.call("getChatMemberCount", chat_id=channel.id)
        except (TelegramApiError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("[Telegram] failed to get member count for %s: %s", channel.id, e)
            return None
        # Without the bot itself.
        return max(0, int(count) - 1)

    def render(self, message: Any) -> str:
        if isinstance(message, Notification):
            return truncate_html(to_telegram_html(notification_markdown(message)), TELEGRAM_MAX_NOTIFICATION_LEN)
        return truncate_html(to_telegram_html(str(message)), TELEGRAM_MAX_MESSAGE_LEN)

    async def send_message(self, channel: Channel, message: Any) -> bool:
        text = self.render(message)
        if not text:
            return False
        try:
            await self.call(
                "sendMessage",
                chat_id=channel.id,
                text=text,
                parse_mode="HTML",
                disable_web_page_preview=isinstance(message, Notification),
            )
        except (TelegramApiError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("[Telegram] failed to send message to %s: %s", channel.id, e)
            return False
        return True

    async def start(self) -> bool:
        if not self.token:
            logger.warning("[Telegram] no token configured; not starting.")
            return False
        if self._poll_task is not None and not self._poll_task.done():
            return True
        self.is_running = True
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info("[Telegram] polling started.")
        return True

    async def stop(self) -> None:
        self.is_running = False
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        if self._session is not None and not self._session.closed:
            await self._session.close()
        logger.info("[Telegram] stopped.")

    async def _poll_loop(self) -> None:
        offset: int | None = None
        while self.is_running:
            try:
                params: dict[str, Any] = {
                    "timeout": POLL_TIMEOUT_SECONDS,
                    "allowed_updates": ["message", "channel_post"],
                }
                if offset is not None:
                    params["offset"] = offset
                updates = await self.call("getUpdates", **params) or []
                bot_username = await self.get_user_name()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("[Telegram] polling error: %s", e)
                await asyncio.sleep(POLL_RETRY_SECONDS)
                continue

            for update in updates:
                offset = int(update["update_id"]) + 1
                inbound = inbound_from_update(update, bot_username)
                if inbound is None:
                    continue
                task = asyncio.create_task(self.emit_inbound(inbound))
                self._handler_tasks.add(task)
                task.add_done_callback(self._handler_tasks.discard)
