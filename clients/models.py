from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class IndividualAuthor:
    user_id: str


@dataclass(frozen=True, slots=True)
class ChannelAuthor:
    """A post made as the channel itself (e.g. a Telegram channel post)."""


Author = Union[IndividualAuthor, ChannelAuthor]


def author_id(author: Author) -> str | None:
    if isinstance(author, IndividualAuthor):
        return author.user_id
    return None


@dataclass(frozen=True, slots=True)
class ChannelInfo:
    is_private: bool = False
    all_members_admin: bool = False


@dataclass(frozen=True, slots=True)
class InboundMessage:
    channel_id: str
    author: Author
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(eq=False)
class Channel:
    id: str
    # Back-reference to the owning client; the client holds the channel, not the reverse.
    bot: Any = field(repr=False)
    custom_prefix: str = ""
    game_subs: list[str] = field(default_factory=list)
    label: str = ""
    disabled: bool = False

    @property
    def prefix(self) -> str:
        return self.custom_prefix or self.bot.prefix

    def is_subscribed(self, game_name: str) -> bool:
        return game_name in self.game_subs

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {"id": self.id, "game_subs": list(self.game_subs)}
        if self.custom_prefix:
            record["prefix"] = self.custom_prefix
        if self.label:
            record["label"] = self.label
        if self.disabled:
            record["disabled"] = True
        return record

    @classmethod
    def from_record(cls, bot: Any, record: dict[str, Any]) -> "Channel":
        return cls(
            id=str(record.get("id")),
            bot=bot,
            custom_prefix=str(record.get("prefix") or ""),
            game_subs=[str(g) for g in (record.get("game_subs") or [])],
            label=str(record.get("label") or ""),
            disabled=bool(record.get("disabled", False)),
        )
