from __future__ import annotations

import logging

from clients.models import Author, Channel, ChannelAuthor
from commands.roles import Role

logger = logging.getLogger(__name__)


async def resolve_role(bot, author: Author, channel: Channel) -> Role:
    """Effective role of `author` in `channel`, re-derived on every call.

    Never raises: platform failures are logged and the check falls through,
    so the worst case is USER.
    """
    # Posts made as the channel itself can only come from someone allowed to post there.
    if isinstance(author, ChannelAuthor):
        return Role.ADMIN

    user_id = str(author.user_id)
    if user_id in bot.owner_ids:
        return Role.OWNER

    try:
        info = await bot.get_channel_info(channel)
        if info.is_private or info.all_members_admin:
            return Role.ADMIN
    except Exception as e:
        logger.warning("[%s] failed to get channel info for %s: %s", bot.label, channel.id, e)

    try:
        if await bot.is_channel_admin(user_id, channel):
            return Role.ADMIN
    except Exception as e:
        logger.warning("[%s] failed to get channel admins for %s: %s", bot.label, channel.id, e)

    return Role.USER
