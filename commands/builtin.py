from __future__ import annotations

from commands.command_deps import CommandDeps
from commands.commands_general import build_general_commands
from commands.commands_owner import build_owner_commands
from commands.commands_subscriptions import build_subscription_commands
from commands.group import CommandGroup


async def unknown_command(ctx, rest: str) -> None:
    help_cmd = ctx.registry.get("help") if ctx.registry is not None else None
    help_label = help_cmd.channel_label(ctx.channel) if help_cmd else "help"
    await ctx.reply(
        f"I don't know a command named '{rest}'.\n"
        f"Try the `{help_label}` command to see a list of all commands available."
    )


def build_registry(deps: CommandDeps) -> CommandGroup:
    """The standard commands available on every client, in matching order."""
    commands = [
        # User commands
        *build_general_commands(deps),
        # Admin commands
        *build_subscription_commands(deps),
        # Owner commands
        *build_owner_commands(deps),
    ]
    return CommandGroup(
        "prefixCmds",
        "All commands that need a prefix to be executed.",
        commands,
        default_handler=unknown_command,
    )
