from __future__ import annotations

import asyncio

from clients.models import author_id
from commands.command import Command
from commands.command import pattern_command
from commands.command import simple_command
from commands.command_deps import CommandDeps
from commands.command_deps import RollArgs
from misc.text_utils import natural_join

MAX_DICE = 100
DEFAULT_DICE_SIDES = 12


def _trigger_label(ctx, label: str) -> str:
    command = ctx.registry.get(label) if ctx.registry is not None else None
    if command is None:
        return f"{ctx.channel.prefix}{label}"
    return command.channel_label(ctx.channel)


def parse_roll_args(captures: dict[str, str | None]) -> RollArgs:
    count = int(captures.get("count") or 1)
    sides = int(captures.get("sides") or DEFAULT_DICE_SIDES)
    modifier = int((captures.get("modifier") or "0").replace(" ", ""))
    if count <= 0:
        count = 1
    if sides <= 1:
        sides = DEFAULT_DICE_SIDES
    return RollArgs(count=min(count, MAX_DICE), sides=sides, modifier=modifier)


def roll_dice(args: RollArgs, rng) -> str:
    dice = [rng.randint(1, args.sides) for _ in range(args.count)]
    total = sum(dice)

    if args.count == 1:
        result = f"{total}"
    else:
        # Natural ones and maximums are marked.
        marked = [f"_{d}_" if d in (1, args.sides) else f"{d}" for d in dice]
        result = f"{' + '.join(marked)} = **{total}**"

    text = f"Rolling {args.count} d{args.sides}"
    if args.modifier:
        text += f" with a modifier of {args.modifier:+d}"
        sign = "+" if args.modifier > 0 else "-"
        result += f" {sign} {abs(args.modifier)} = **{total + args.modifier}**"

    if args.count == 1 and dice[0] == 1:
        result += " _(critical failure)_"
    elif args.count == 1 and dice[0] == args.sides:
        result += " _(critical success)_"

    return f"{text}:\n{result}"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def build_general_commands(deps: CommandDeps) -> list[Command]:
    async def cmd_start(ctx, args) -> None:
        await ctx.reply(
            f"Welcome to the **{deps.project_name}** (v{deps.project_version})!\n"
            f"Use `{_trigger_label(ctx, 'help')}` to display all available commands.\n"
            f"View the project on [GitHub]({deps.project_url}) to learn more or to report an issue!"
        )

    async def cmd_help(ctx, args) -> None:
        role = await ctx.role()
        await ctx.reply(ctx.registry.render_help(ctx.channel, role))

    async def cmd_settings(ctx, args) -> None:
        channel = ctx.channel
        games = [deps.catalog.get(name) for name in channel.game_subs]
        labels = [game.label if game else name for game, name in zip(games, channel.game_subs)]
        if labels:
            game_str = "> You are currently subscribed to the following games:\n" + "\n".join(
                f"- **{label}**" for label in labels
            )
        else:
            game_str = "> You are currently not subscribed to any games."

        await ctx.reply(
            f"You can use `{_trigger_label(ctx, 'prefix')}` to change the prefix the bot uses on this channel.\n"
            f"> The prefix currently used on this channel is `{channel.prefix}`.\n"
            f"You can use `{_trigger_label(ctx, 'subscribe')}` and `{_trigger_label(ctx, 'unsubscribe')}` "
            "to change the games you are subscribed to.\n" + game_str
        )

    async def cmd_about(ctx, args) -> None:
        await ctx.reply(
            f"**{deps.project_name}** (v{deps.project_version})\n"
            f"A notification bot for several games. Learn more on [GitHub]({deps.project_url})."
        )

    async def cmd_games(ctx, args) -> None:
        if not len(deps.catalog):
            await ctx.reply("There are no games available right now.")
            return
        lines = [f"- {game.label}" for game in deps.catalog.games]
        await ctx.reply("Available games:\n" + "\n".join(lines))

    async def cmd_flip(ctx, args) -> None:
        result = "HEADS" if deps.rng.random() < 0.5 else "TAILS"
        await ctx.reply(f"Flipping a coin: **{result}**")

    async def cmd_roll(ctx, args: RollArgs) -> None:
        await ctx.reply(roll_dice(args, deps.rng))

    async def cmd_stats(ctx, args) -> None:
        bots = deps.get_bots()
        channel_counts = await asyncio.gather(*(b.get_channel_count() for b in bots))
        user_counts = await asyncio.gather(*(b.get_user_count() for b in bots))

        bot_lines = [
            f"    {b.label}: {_plural(users, 'user')} in {_plural(channels, 'channel')}."
            for b, users, channels in zip(bots, user_counts, channel_counts)
        ]
        total_users = sum(user_counts)
        total_channels = sum(channel_counts)
        clients = natural_join([b.label for b in bots])

        await ctx.reply(
            f"**{deps.project_name}** (v{deps.project_version}) statistics:\n"
            f"- **Games**: {len(deps.catalog)}\n"
            f"- **Clients**: {len(bots)} ({clients})\n"
            f"- **Users**: {_plural(total_users, 'user')} in {_plural(total_channels, 'channel')}:\n"
            + "\n".join(bot_lines)
        )

    async def cmd_ping(ctx, args) -> None:
        await ctx.reply(f"Pong! ({ctx.elapsed_ms()} ms)")

    async def cmd_debug(ctx, args) -> None:
        bot = ctx.bot
        role = await ctx.role()
        members = await bot.get_channel_user_count(ctx.channel)
        tag = await bot.mention_tag()
        user_id = author_id(ctx.author) or "channel"
        await ctx.reply(
            f"**User info:**\n- ID: {user_id}\n- Role: {role}\n"
            f"**Channel info:**\n- ID: {ctx.channel.id}\n- Prefix: `{ctx.channel.prefix}`\n"
            f"- Server members: {members if members is not None else 'unknown'}\n"
            f"**Bot info:**\n- Client: {bot.label}\n- Tag: {tag or 'unknown'}\n- Delay: {ctx.elapsed_ms()} ms"
        )

    return [
        simple_command("start", "Get started with the GameFeeder.", cmd_start),
        simple_command("help", "Display a list of all available commands.", cmd_help),
        pattern_command(
            "settings",
            "Display an overview of the settings you can configure for the bot.",
            r"settings|options|config",
            cmd_settings,
        ),
        pattern_command(
            "about",
            "Display info about the bot.",
            r"about|info",
            cmd_about,
            has_prefix=False,
        ),
        simple_command("games", "Display all available games.", cmd_games),
        simple_command("flip", "Flip a coin.", cmd_flip),
        pattern_command(
            "roll",
            "Roll some dice.",
            r"r(?:oll)?(?:\s*(?:(?P<count>\d+)\s*)?d(?P<sides>\d+)(?:\s*(?P<modifier>[+-]\s*\d+))?)?",
            cmd_roll,
            trigger_label="roll <dice count>d<dice type> <modifier>",
            parse_args=parse_roll_args,
        ),
        pattern_command(
            "stats",
            "Display statistics about the bot.",
            r"stat(?:istic)?s?",
            cmd_stats,
            has_prefix=False,
        ),
        simple_command("ping", "Test the delay of the bot.", cmd_ping),
        simple_command("debug", "Display some useful debug information.", cmd_debug),
    ]
