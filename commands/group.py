from __future__ import annotations

import logging
import re
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Iterable

from clients.models import Channel
from commands.command import Command
from commands.roles import Role, satisfies
from commands.triggers import compile_address, compile_trigger

logger = logging.getLogger(__name__)

DefaultHandler = Callable[[Any, str], Awaitable[None]]

_ADDRESS_KEY = "\x00address"

# Compiled patterns kept across all channels; least recently used go first.
MAX_CACHED_PATTERNS = 4096


class CommandGroup:
    """Ordered set of commands sharing one address clause.

    Commands are tried in declaration order and the first structural match
    wins. Compiled patterns are cached per (bot, channel, command) and
    recompiled whenever the channel prefix or the bot's mention tag changes.
    """

    def __init__(
        self,
        label: str,
        description: str,
        commands: Iterable[Command],
        *,
        default_handler: DefaultHandler | None = None,
        max_cached_patterns: int = MAX_CACHED_PATTERNS,
    ) -> None:
        self.label = label
        self.description = description
        self.default_handler = default_handler
        self._commands: tuple[Command, ...] = tuple(commands)

        seen: set[str] = set()
        for command in self._commands:
            key = command.label.lower()
            if key in seen:
                raise ValueError(f"Duplicate command label: {command.label}")
            seen.add(key)

        self.max_cached_patterns = max(1, max_cached_patterns)
        self._patterns: OrderedDict[tuple[str, str, str], tuple[str, str | None, re.Pattern[str]]] = OrderedDict()

    @property
    def commands(self) -> tuple[Command, ...]:
        return self._commands

    def get(self, label: str) -> Command | None:
        key = (label or "").strip().lower()
        for command in self._commands:
            if command.label.lower() == key:
                return command
        return None

    def _cached(self, channel: Channel, key: str, tag: str | None, build) -> re.Pattern[str]:
        cache_key = (str(channel.bot.name), str(channel.id), key)
        prefix = channel.prefix
        entry = self._patterns.get(cache_key)
        if entry is not None and entry[0] == prefix and entry[1] == tag:
            self._patterns.move_to_end(cache_key)
            return entry[2]
        pattern = build(prefix)
        self._patterns[cache_key] = (prefix, tag, pattern)
        self._patterns.move_to_end(cache_key)
        while len(self._patterns) > self.max_cached_patterns:
            self._patterns.popitem(last=False)
        return pattern

    def address_pattern(self, channel: Channel, tag: str | None) -> re.Pattern[str]:
        return self._cached(
            channel,
            _ADDRESS_KEY,
            tag,
            lambda prefix: compile_address(prefix, tag, channel.bot.prefix),
        )

    def command_pattern(self, command: Command, channel: Channel, tag: str | None) -> re.Pattern[str]:
        return self._cached(
            channel,
            command.label,
            tag,
            lambda prefix: compile_trigger(
                command.trigger,
                has_prefix=command.has_prefix,
                prefix=prefix,
                tag=tag,
                default_prefix=channel.bot.prefix,
            ),
        )

    def match(
        self,
        channel: Channel,
        text: str,
        tag: str | None,
    ) -> tuple[Command, dict[str, str | None]] | None:
        text = text or ""
        for command in self._commands:
            m = self.command_pattern(command, channel, tag).match(text)
            if m:
                return command, m.groupdict()
        return None

    def render_labels(self, channel: Channel) -> str:
        return "\n".join(f"- {command.channel_label(channel)}" for command in self._commands)

    def render_help(self, channel: Channel, role: Role) -> str:
        lines = [
            f"- `{command.channel_label(channel)}`: {command.description}"
            for command in self._commands
            if satisfies(role, command.role)
        ]
        return "You can use the following commands:\n" + "\n".join(lines)

    async def dispatch(self, ctx) -> Command | None:
        """Run at most one command for the message in `ctx`.

        Returns the executed command, or None if nothing ran.
        """
        tag = await ctx.bot.mention_tag()
        found = self.match(ctx.channel, ctx.text, tag)

        if found is None:
            if self.default_handler is None:
                return None
            addressed = self.address_pattern(ctx.channel, tag).match(ctx.text or "")
            if addressed:
                rest = (addressed.group("rest") or "").strip()
                if rest:
                    await self.default_handler(ctx, rest)
            return None

        command, captures = found
        role = await ctx.role()
        if not satisfies(role, command.role):
            logger.debug("[Commands] '%s': insufficient role %s (needs %s)", command.label, role, command.role)
            await ctx.reply(f"You need the role '{command.role}' in this channel to use this command!")
            return None

        args = command.build_args(captures)
        await command.handler(ctx, args)
        logger.debug("[Commands] '%s' executed in %d ms", command.label, ctx.elapsed_ms())
        return command
