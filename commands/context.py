from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from clients.models import Author, Channel
from commands.permissions import resolve_role
from commands.roles import Role


@dataclass(slots=True)
class MessageContext:
    """Everything a command handler needs for one inbound message."""

    bot: Any
    channel: Channel
    author: Author
    text: str
    timestamp: datetime
    registry: Any = None

    async def reply(self, text) -> bool:
        return await self.bot.send_message(self.channel, text)

    async def role(self) -> Role:
        return await resolve_role(self.bot, self.author, self.channel)

    def elapsed_ms(self) -> int:
        ts = self.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return max(0, int((datetime.now(timezone.utc) - ts).total_seconds() * 1000))
