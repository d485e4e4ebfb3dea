from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any

from commands.group import CommandGroup
from config.loader import UpdaterConfig


@dataclass(frozen=True)
class RuntimeDeps:
    # clients + commands
    bots: list[Any]
    registry: CommandGroup

    # feeds
    updater: Any = None
    updater_config: UpdaterConfig = field(default_factory=UpdaterConfig)
    # Sources holding network sessions, closed on shutdown.
    closeables: list[Any] = field(default_factory=list)
