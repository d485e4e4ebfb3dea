from __future__ import annotations

import asyncio
import logging
import re

from commands.command import Command
from commands.command import pattern_command
from commands.command_deps import AliasArgs
from commands.command_deps import CommandDeps
from commands.command_deps import PrefixArgs
from commands.roles import Role
from games.catalog import Game, GameCatalog
from misc.text_utils import natural_join

logger = logging.getLogger(__name__)


def parse_alias_args(captures: dict[str, str | None]) -> AliasArgs:
    raw = (captures.get("alias") or "").strip()
    aliases: list[str] = []
    for alias in re.split(r"\s*,\s*", raw):
        if alias and alias not in aliases:
            aliases.append(alias)
    return AliasArgs(aliases=tuple(aliases))


def parse_prefix_args(captures: dict[str, str | None]) -> PrefixArgs:
    return PrefixArgs(new_prefix=(captures.get("new_prefix") or "").strip())


def resolve_aliases(catalog: GameCatalog, aliases: tuple[str, ...]) -> tuple[list[Game], list[str]]:
    """Games matching any alias (deduplicated, in catalog order of discovery) and the unknown aliases."""
    games: list[Game] = []
    unknown: list[str] = []
    for alias in aliases:
        found = catalog.by_alias(alias)
        if not found:
            unknown.append(alias)
        for game in found:
            if game not in games:
                games.append(game)
    return games, unknown


def _unknown_line(unknown: list[str]) -> str:
    quoted = natural_join([f"'{alias}'" for alias in unknown])
    return f"We don't know any game(s) with the alias(es) {quoted}."


def build_subscription_commands(deps: CommandDeps) -> list[Command]:
    async def cmd_subscribe(ctx, args: AliasArgs) -> None:
        if not args.aliases:
            await ctx.reply(
                "You need to provide the name of the game you want to subscribe to.\n"
                f"Try `{ctx.registry.get('subscribe').channel_label(ctx.channel)}`."
            )
            return

        games, unknown = resolve_aliases(deps.catalog, args.aliases)
        added = await asyncio.gather(*(ctx.bot.add_subscriber(ctx.channel, game) for game in games))

        new_subs = [g.label for g, ok in zip(games, added) if ok]
        old_subs = [g.label for g, ok in zip(games, added) if not ok]
        lines = []
        if new_subs:
            lines.append(f"You are now subscribed to {natural_join(new_subs)}.")
        if old_subs:
            lines.append(f"You have already subscribed to {natural_join(old_subs)}.")
        if unknown:
            lines.append(_unknown_line(unknown))
        if new_subs:
            logger.info("[%s] channel %s subscribed to %s", ctx.bot.label, ctx.channel.id, ", ".join(new_subs))
        await ctx.reply("\n".join(lines))

    async def cmd_unsubscribe(ctx, args: AliasArgs) -> None:
        if not args.aliases:
            await ctx.reply(
                "You need to provide the name of the game you want to unsubscribe from.\n"
                f"Try `{ctx.registry.get('unsubscribe').channel_label(ctx.channel)}`."
            )
            return

        games, unknown = resolve_aliases(deps.catalog, args.aliases)
        removed = await asyncio.gather(*(ctx.bot.remove_subscriber(ctx.channel, game) for game in games))

        gone = [g.label for g, ok in zip(games, removed) if ok]
        never = [g.label for g, ok in zip(games, removed) if not ok]
        lines = []
        if gone:
            lines.append(f"You unsubscribed from {natural_join(gone)}.")
        if never:
            lines.append(f"You have never subscribed to {natural_join(never)} in the first place!")
        if unknown:
            lines.append(_unknown_line(unknown))
        if gone:
            logger.info("[%s] channel %s unsubscribed from %s", ctx.bot.label, ctx.channel.id, ", ".join(gone))
        await ctx.reply("\n".join(lines))

    async def cmd_prefix(ctx, args: PrefixArgs) -> None:
        bot = ctx.bot
        channel = ctx.channel
        new_prefix = args.new_prefix

        if not new_prefix:
            await ctx.reply(
                f"The prefix currently used on this channel is `{channel.prefix}`.\n"
                f"Use `{channel.prefix}prefix <new prefix>` to use another prefix.\n"
                f"Use `{channel.prefix}prefix reset` to reset the prefix to the default (`{bot.prefix}`)."
            )
            return

        if new_prefix.lower() == "reset":
            new_prefix = bot.prefix

        await ctx.reply(f"Changing the bot's prefix on this channel to `{new_prefix}`.")
        await bot.set_prefix(channel, new_prefix)
        logger.info("[%s] channel %s prefix set to '%s'", bot.label, channel.id, channel.prefix)

    return [
        pattern_command(
            "subscribe",
            "Subscribe to the given game's feed.",
            r"sub(?:scribe)?\b(?P<alias>.*)",
            cmd_subscribe,
            trigger_label="subscribe <game name>",
            role=Role.ADMIN,
            parse_args=parse_alias_args,
        ),
        pattern_command(
            "unsubscribe",
            "Unsubscribe from the given game's feed.",
            r"unsub(?:scribe)?\b(?P<alias>.*)",
            cmd_unsubscribe,
            trigger_label="unsubscribe <game name>",
            role=Role.ADMIN,
            parse_args=parse_alias_args,
        ),
        pattern_command(
            "prefix",
            "Change the bot's prefix used in this channel.",
            r"prefix(?P<new_prefix>.*)",
            cmd_prefix,
            trigger_label="prefix <new prefix>",
            role=Role.ADMIN,
            parse_args=parse_prefix_args,
        ),
    ]
