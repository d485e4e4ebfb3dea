from __future__ import annotations

import unittest

from clients.models import Channel, ChannelAuthor, ChannelInfo, IndividualAuthor
from commands.permissions import resolve_role
from commands.roles import Role


class _PlatformBot:
    name = "fake"
    label = "Fake"
    prefix = "/"

    def __init__(self, *, owners=(), admins=(), info=None, info_error=None, admin_error=None):
        self.owner_ids = {str(o) for o in owners}
        self.admins = {str(a) for a in admins}
        self.info = info or ChannelInfo()
        self.info_error = info_error
        self.admin_error = admin_error
        self.calls: list[str] = []

    async def get_channel_info(self, channel):
        self.calls.append("info")
        if self.info_error is not None:
            raise self.info_error
        return self.info

    async def is_channel_admin(self, user_id, channel):
        self.calls.append("admins")
        if self.admin_error is not None:
            raise self.admin_error
        return user_id in self.admins


class ResolveRoleTests(unittest.IsolatedAsyncioTestCase):
    def _channel(self, bot):
        return Channel(id="-100", bot=bot)

    async def test_channel_author_is_admin_without_platform_calls(self):
        bot = _PlatformBot()
        role = await resolve_role(bot, ChannelAuthor(), self._channel(bot))
        self.assertEqual(role, Role.ADMIN)
        self.assertEqual(bot.calls, [])

    async def test_configured_owner_is_owner(self):
        bot = _PlatformBot(owners={"42"})
        role = await resolve_role(bot, IndividualAuthor("42"), self._channel(bot))
        self.assertEqual(role, Role.OWNER)
        self.assertEqual(bot.calls, [])

    async def test_private_chat_is_admin(self):
        bot = _PlatformBot(info=ChannelInfo(is_private=True))
        role = await resolve_role(bot, IndividualAuthor("7"), self._channel(bot))
        self.assertEqual(role, Role.ADMIN)
        self.assertEqual(bot.calls, ["info"])

    async def test_all_members_admin_chat_is_admin(self):
        bot = _PlatformBot(info=ChannelInfo(all_members_admin=True))
        self.assertEqual(await resolve_role(bot, IndividualAuthor("7"), self._channel(bot)), Role.ADMIN)

    async def test_channel_admin_is_admin(self):
        bot = _PlatformBot(admins={"7"})
        self.assertEqual(await resolve_role(bot, IndividualAuthor("7"), self._channel(bot)), Role.ADMIN)
        self.assertEqual(await resolve_role(bot, IndividualAuthor("8"), self._channel(bot)), Role.USER)

    async def test_channel_info_failure_falls_through_to_admin_check(self):
        bot = _PlatformBot(admins={"7"}, info_error=RuntimeError("chat not found"))
        with self.assertLogs("commands.permissions", level="WARNING"):
            role = await resolve_role(bot, IndividualAuthor("7"), self._channel(bot))
        self.assertEqual(role, Role.ADMIN)
        self.assertEqual(bot.calls, ["info", "admins"])

    async def test_all_platform_failures_yield_user(self):
        bot = _PlatformBot(info_error=RuntimeError("down"), admin_error=RuntimeError("down"))
        with self.assertLogs("commands.permissions", level="WARNING"):
            role = await resolve_role(bot, IndividualAuthor("7"), self._channel(bot))
        self.assertEqual(role, Role.USER)


if __name__ == "__main__":
    unittest.main()
