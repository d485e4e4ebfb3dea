from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from commands.roles import Role

Handler = Callable[[Any, Any], Awaitable[None]]
ArgsParser = Callable[[dict[str, "str | None"]], Any]


def no_args(captures: dict[str, str | None]) -> None:
    return None


@dataclass(frozen=True, slots=True)
class Command:
    label: str
    description: str
    trigger_label: str
    # Regex fragment without address clause or anchors; bound to a channel by the trigger compiler.
    trigger: str
    handler: Handler
    role: Role = Role.USER
    has_prefix: bool = True
    parse_args: ArgsParser = no_args

    def channel_label(self, channel) -> str:
        """Trigger label as typed in the given channel, e.g. '/subscribe <game name>'."""
        prefix = channel.prefix if self.has_prefix else ""
        return f"{prefix}{self.trigger_label}"

    def build_args(self, captures: dict[str, str | None]) -> Any:
        return self.parse_args(captures)


def simple_command(
    label: str,
    description: str,
    handler: Handler,
    *,
    role: Role = Role.USER,
    has_prefix: bool = True,
) -> Command:
    """A command triggered by its own label and taking no parameters."""
    return Command(
        label=label,
        description=description,
        trigger_label=label,
        trigger=re.escape(label),
        handler=handler,
        role=role,
        has_prefix=has_prefix,
    )


def pattern_command(
    label: str,
    description: str,
    trigger: str,
    handler: Handler,
    *,
    trigger_label: str | None = None,
    role: Role = Role.USER,
    has_prefix: bool = True,
    parse_args: ArgsParser = no_args,
) -> Command:
    return Command(
        label=label,
        description=description,
        trigger_label=trigger_label or label,
        trigger=trigger,
        handler=handler,
        role=role,
        has_prefix=has_prefix,
        parse_args=parse_args,
    )
