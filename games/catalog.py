from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlparse

import yaml


def normalize_alias(alias: str) -> str:
    return re.sub(r"\s+", " ", str(alias or "").strip().lower())


@dataclass(frozen=True, slots=True)
class RedditUser:
    name: str
    # Posts whose title does not match are ignored.
    title_filter: str = ".*"

    def matches_title(self, title: str) -> bool:
        return re.search(self.title_filter, title or "", flags=re.I) is not None


@dataclass(frozen=True, slots=True)
class RedditProvider:
    subreddit: str
    users: tuple[RedditUser, ...] = ()
    url_filters: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RssProvider:
    label: str
    url: str


@dataclass(frozen=True, slots=True)
class TelegramIVTemplate:
    domain: str
    template_hash: str

    def test_url(self, url: str) -> str | None:
        """Instant-View link for `url`, or None if the domain does not match."""
        host = (urlparse(url or "").hostname or "").lower()
        domain = self.domain.lower()
        if not host or not (host == domain or host.endswith("." + domain)):
            return None
        return f"https://t.me/iv?url={quote(url, safe='')}&rhash={self.template_hash}"


@dataclass(frozen=True, slots=True)
class Game:
    name: str
    label: str
    aliases: tuple[str, ...] = ()
    color: str = ""
    icon: str = ""
    reddit: RedditProvider | None = None
    rss: tuple[RssProvider, ...] = ()
    telegram_iv_templates: tuple[TelegramIVTemplate, ...] = field(default_factory=tuple)

    def has_alias(self, alias: str) -> bool:
        key = normalize_alias(alias)
        if not key:
            return False
        return key in {normalize_alias(a) for a in (self.name, self.label, *self.aliases)}


class GameCatalog:
    def __init__(self, games: list[Game] | tuple[Game, ...] = ()) -> None:
        self._games = tuple(games)

    @property
    def games(self) -> tuple[Game, ...]:
        return self._games

    def __len__(self) -> int:
        return len(self._games)

    def get(self, name: str) -> Game | None:
        for game in self._games:
            if game.name == name:
                return game
        return None

    def by_alias(self, alias: str) -> list[Game]:
        return [game for game in self._games if game.has_alias(alias)]


def _as_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    out: list[str] = []
    for item in value:
        text = str(item or "").strip()
        if text:
            out.append(text)
    return out


def game_from_payload(payload: dict[str, Any]) -> Game:
    name = str(payload.get("name") or "").strip()
    if not name:
        raise ValueError("game entry without a name")

    providers = payload.get("providers") or {}
    reddit = None
    raw_reddit = providers.get("reddit") if isinstance(providers, dict) else None
    if isinstance(raw_reddit, dict) and raw_reddit.get("subreddit"):
        users = tuple(
            RedditUser(name=str(u["name"]), title_filter=str(u.get("title_filter") or ".*"))
            for u in (raw_reddit.get("users") or [])
            if isinstance(u, dict) and u.get("name")
        )
        reddit = RedditProvider(
            subreddit=str(raw_reddit["subreddit"]),
            users=users,
            url_filters=tuple(_as_str_list(raw_reddit.get("url_filters"))),
        )

    rss = tuple(
        RssProvider(label=str(p.get("label") or p["url"]), url=str(p["url"]))
        for p in ((providers.get("rss") if isinstance(providers, dict) else None) or [])
        if isinstance(p, dict) and p.get("url")
    )
    templates = tuple(
        TelegramIVTemplate(domain=str(t["domain"]), template_hash=str(t["template_hash"]))
        for t in (payload.get("telegram_iv_templates") or [])
        if isinstance(t, dict) and t.get("domain") and t.get("template_hash")
    )

    return Game(
        name=name,
        label=str(payload.get("label") or name),
        aliases=tuple(_as_str_list(payload.get("aliases"))),
        color=str(payload.get("color") or ""),
        icon=str(payload.get("icon") or ""),
        reddit=reddit,
        rss=rss,
        telegram_iv_templates=templates,
    )


def load_game_catalog(path: str | Path | None) -> tuple[GameCatalog, str | None]:
    """
    Returns (catalog, warning_message). warning_message is None on clean load.
    Invalid files are skipped and reported in the warning.
    """
    if not path:
        return (GameCatalog(), "Games directory missing; no games available.")

    p = Path(path)
    if not p.is_dir():
        return (GameCatalog(), f"Games directory not found at {p}; no games available.")

    games: list[Game] = []
    problems: list[str] = []
    for file in sorted([*p.glob("*.yml"), *p.glob("*.yaml")]):
        try:
            payload = yaml.safe_load(file.read_text(encoding="utf-8"))
            if not isinstance(payload, dict):
                raise ValueError("top-level mapping expected")
            games.append(game_from_payload(payload))
        except Exception as exc:
            problems.append(f"{file.name}: {exc}")

    warning = None
    if problems:
        warning = "Skipped invalid game files: " + "; ".join(problems)
    elif not games:
        warning = f"No game files found in {p}."
    return (GameCatalog(games), warning)
