from __future__ import annotations

import random
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Callable

from config.defaults import PROJECT_NAME
from config.defaults import PROJECT_URL
from config.defaults import PROJECT_VERSION
from games.catalog import GameCatalog


def _no_bots() -> list[Any]:
    return []


@dataclass(frozen=True)
class CommandDeps:
    # Project info
    project_name: str = PROJECT_NAME
    project_version: str = PROJECT_VERSION
    project_url: str = PROJECT_URL

    # Shared state
    catalog: GameCatalog = field(default_factory=GameCatalog)
    get_bots: Callable[[], list[Any]] = _no_bots
    rng: random.Random = field(default_factory=random.Random)


@dataclass(frozen=True, slots=True)
class AliasArgs:
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PrefixArgs:
    new_prefix: str = ""


@dataclass(frozen=True, slots=True)
class NotifyArgs:
    msg: str = ""
    alias: str = ""


@dataclass(frozen=True, slots=True)
class RollArgs:
    count: int = 1
    sides: int = 12
    modifier: int = 0
