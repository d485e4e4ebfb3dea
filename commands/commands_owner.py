from __future__ import annotations

import asyncio
import logging

from commands.command import Command
from commands.command import pattern_command
from commands.command import simple_command
from commands.command_deps import CommandDeps
from commands.command_deps import NotifyArgs
from commands.roles import Role

logger = logging.getLogger(__name__)


def parse_notify_args(captures: dict[str, str | None]) -> NotifyArgs:
    return NotifyArgs(
        msg=(captures.get("msg") or "").strip(),
        alias=(captures.get("alias") or "").strip(),
    )


def build_owner_commands(deps: CommandDeps) -> list[Command]:
    async def cmd_notify_all(ctx, args: NotifyArgs) -> None:
        if not args.msg:
            await ctx.reply(
                "You need to provide a message to send to everyone.\n"
                f"Try `{ctx.registry.get('notifyAll').channel_label(ctx.channel)}`."
            )
            return

        await ctx.reply(f'Notifying all subs with:\n"{args.msg}"')
        sent = await asyncio.gather(*(b.send_to_all_subs(args.msg) for b in deps.get_bots()))
        logger.info("[Commands] notifyAll delivered to %d channel(s)", sum(sent))

    async def cmd_notify_game_subs(ctx, args: NotifyArgs) -> None:
        label = ctx.registry.get("notifyGameSubs").channel_label(ctx.channel)
        if not args.msg:
            await ctx.reply(f"You need to provide a message to send to everyone.\nTry `{label}`.")
            return
        if not args.alias:
            await ctx.reply(f"You need to provide a game to notify the subs of.\nTry `{label}`.")
            return

        games = deps.catalog.by_alias(args.alias)
        if not games:
            games_label = ctx.registry.get("games").channel_label(ctx.channel)
            await ctx.reply(
                f"I didn't find a game with the alias '{args.alias}'.\n"
                f"Use `{games_label}` to view a list of all available games."
            )
            return

        game = games[0]
        await ctx.reply(f'Notifying the subs of **{game.label}** with:\n"{args.msg}"')
        sent = await asyncio.gather(*(b.send_to_game_subs(game, args.msg) for b in deps.get_bots()))
        logger.info("[Commands] notifyGameSubs(%s) delivered to %d channel(s)", game.name, sum(sent))

    async def cmd_telegram_cmds(ctx, args) -> None:
        entries = [
            f"{command.label.lower()} - {command.description}"
            for command in ctx.registry.commands
            if command.role != Role.OWNER
        ]
        await ctx.reply("```\n" + "\n".join(entries) + "\n```")

    return [
        pattern_command(
            "notifyAll",
            "Notify all subscribed users.",
            r"notifyAll(?:Subs)?(?P<msg>.*)",
            cmd_notify_all,
            trigger_label="notifyAll <message>",
            role=Role.OWNER,
            parse_args=parse_notify_args,
        ),
        pattern_command(
            "notifyGameSubs",
            "Notify all subs of a game.",
            r"notify(?:Game)?Subs\s*(?:\((?P<alias>[^)]*)\))?(?P<msg>.*)",
            cmd_notify_game_subs,
            trigger_label="notifyGameSubs (<game name>) <message>",
            role=Role.OWNER,
            parse_args=parse_notify_args,
        ),
        simple_command(
            "telegramCmds",
            "Get the string to properly register the commands on Telegram.",
            cmd_telegram_cmds,
            role=Role.OWNER,
        ),
    ]
