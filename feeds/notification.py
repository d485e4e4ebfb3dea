from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from games.catalog import Game


@dataclass(slots=True)
class Notification:
    """One feed item on its way to subscribers. `content` is markdown."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    title: str = ""
    link: str = ""
    author: str = ""
    author_link: str = ""
    author_icon: str = ""
    content: str = ""
    color: str = ""
    thumbnail: str = ""
    footer: str = ""
    game: Game | None = None

    def with_game_defaults(self, game: Game) -> "Notification":
        self.game = game
        if not self.color:
            self.color = game.color
        if not self.thumbnail:
            self.thumbnail = game.icon
        if not self.footer:
            self.footer = game.label
        return self

    def headline(self) -> str:
        label = self.game.label if self.game else "game"
        if not self.author:
            return f"New **{label}** update:"
        author = f"[{self.author}]({self.author_link})" if self.author_link else self.author
        return f"New **{label}** update - {author}:"

    def to_markdown(self) -> str:
        parts = [self.headline()]
        if self.title:
            parts.append(f"**[{self.title}]({self.link})**" if self.link else f"**{self.title}**")
        elif self.link:
            parts.append(self.link)
        if self.content:
            parts.append(self.content.strip())
        return "\n\n".join(parts)


def sort_limit_end(notifications: Iterable[Notification], limit: int | None = None) -> list[Notification]:
    """Oldest first, keeping only the newest `limit` items."""
    ordered = sorted(notifications, key=lambda n: n.timestamp)
    if limit is not None and limit >= 0 and len(ordered) > limit:
        ordered = ordered[len(ordered) - limit:]
    return ordered
