from __future__ import annotations

import logging

from clients.models import InboundMessage
from commands.command import Command
from commands.context import MessageContext
from commands.group import CommandGroup

logger = logging.getLogger(__name__)


async def handle_inbound(bot, message: InboundMessage, *, registry: CommandGroup) -> Command | None:
    """Dispatch one inbound message. Never raises."""
    try:
        ctx = MessageContext(
            bot=bot,
            channel=bot.get_channel(message.channel_id),
            author=message.author,
            text=message.text,
            timestamp=message.timestamp,
            registry=registry,
        )
        return await registry.dispatch(ctx)
    except Exception as e:
        logger.exception("[%s] failed to handle message in %s: %s", bot.label, message.channel_id, e)
        return None


def register_dispatch(bot, *, registry: CommandGroup) -> None:
    """Bind `registry` to the client's inbound stream; a client accepts one binding."""

    async def on_inbound(client, message: InboundMessage) -> None:
        await handle_inbound(client, message, registry=registry)

    bot.on_inbound(on_inbound)
