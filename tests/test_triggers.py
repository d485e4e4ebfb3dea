from __future__ import annotations

import unittest

from commands.roles import Role, satisfies
from commands.triggers import compile_address, compile_trigger


def _cmd(trigger: str, *, prefix: str = "/", tag: str | None = "@Bot", default_prefix: str = "/", has_prefix=True):
    return compile_trigger(
        trigger,
        has_prefix=has_prefix,
        prefix=prefix,
        tag=tag,
        default_prefix=default_prefix,
    )


class RoleTests(unittest.TestCase):
    def test_satisfies_is_ordered(self):
        self.assertTrue(satisfies(Role.OWNER, Role.ADMIN))
        self.assertTrue(satisfies(Role.ADMIN, Role.ADMIN))
        self.assertTrue(satisfies(Role.USER, Role.USER))
        self.assertFalse(satisfies(Role.USER, Role.ADMIN))
        self.assertFalse(satisfies(Role.ADMIN, Role.OWNER))

    def test_role_renders_lowercase(self):
        self.assertEqual(str(Role.ADMIN), "admin")


class TriggerCompilerTests(unittest.TestCase):
    def test_address_forms_match(self):
        pattern = _cmd("help")
        for text in ("/help", "@Bot help", "/ @Bot help", "  /help  ", "/HELP"):
            self.assertIsNotNone(pattern.match(text), text)

    def test_word_containment_does_not_match(self):
        pattern = _cmd("help")
        for text in ("helper", "xhelp", "/helper", "help", "please /help"):
            self.assertIsNone(pattern.match(text), text)

    def test_unprefixed_trigger_is_word_anchored(self):
        pattern = _cmd("about|info", has_prefix=False)
        for text in ("about", "info", "/about", "@Bot about"):
            self.assertIsNotNone(pattern.match(text), text)
        for text in ("abouts", "xabout", "what about"):
            self.assertIsNone(pattern.match(text), text)

    def test_prefix_with_metacharacters_matches_literally(self):
        pattern = _cmd("help", prefix="$.?", tag=None)
        self.assertIsNotNone(pattern.match("$.?help"))
        self.assertIsNone(pattern.match("a.help"))
        self.assertIsNone(pattern.match("help"))

    def test_missing_tag_degrades_to_prefix_only(self):
        pattern = _cmd("help", tag=None)
        self.assertIsNotNone(pattern.match("/help"))
        self.assertIsNone(pattern.match("@Bot help"))

    def test_default_prefix_requires_tag_when_channel_prefix_differs(self):
        pattern = _cmd("help", prefix="!", default_prefix="/")
        self.assertIsNotNone(pattern.match("!help"))
        self.assertIsNotNone(pattern.match("/ @Bot help"))
        self.assertIsNone(pattern.match("/help"))

    def test_named_captures_survive(self):
        pattern = _cmd(r"sub(?:scribe)?\b(?P<alias>.*)")
        m = pattern.match("/subscribe dota 2, artifact")
        self.assertIsNotNone(m)
        self.assertEqual(m.group("alias").strip(), "dota 2, artifact")

    def test_address_pattern_captures_rest(self):
        pattern = compile_address("/", "@Bot", "/")
        m = pattern.match("@Bot  what is this ")
        self.assertEqual(m.group("rest"), "what is this")
        self.assertIsNone(pattern.match("hello there"))

    def test_no_prefix_and_no_tag_never_matches(self):
        pattern = _cmd("help", prefix="", tag=None, default_prefix="")
        self.assertIsNone(pattern.match("help"))


if __name__ == "__main__":
    unittest.main()
