from __future__ import annotations

import re

PATTERN_FLAGS = re.IGNORECASE | re.DOTALL

# Matches nothing; used when a channel has neither a prefix nor a known tag.
_NEVER = r"(?!)"


def address_clause(prefix: str, tag: str | None, default_prefix: str) -> str:
    """Regex fragment matching "the bot is being addressed" in a channel.

    Alternatives, in order: the bare mention tag, the channel prefix
    optionally followed by the tag, the bot default prefix followed by the
    tag. Without a tag only the channel prefix remains.
    """
    options: list[str] = []
    escaped_prefix = re.escape(prefix or "")
    if tag:
        escaped_tag = re.escape(tag)
        options.append(f"(?:{escaped_tag})")
        if prefix:
            options.append(f"(?:{escaped_prefix})(?:\\s*{escaped_tag})?")
        if default_prefix:
            options.append(f"(?:{re.escape(default_prefix)})\\s*(?:{escaped_tag})")
    elif prefix:
        options.append(f"(?:{escaped_prefix})")

    if not options:
        return _NEVER
    return "(?:" + "|".join(options) + ")"


def compile_address(prefix: str, tag: str | None, default_prefix: str) -> re.Pattern[str]:
    clause = address_clause(prefix, tag, default_prefix)
    return re.compile(rf"^\s*{clause}\s*(?P<rest>.*?)\s*$", PATTERN_FLAGS)


def compile_trigger(
    trigger: str,
    *,
    has_prefix: bool,
    prefix: str,
    tag: str | None,
    default_prefix: str,
) -> re.Pattern[str]:
    clause = address_clause(prefix, tag, default_prefix)
    if has_prefix:
        source = rf"^\s*{clause}\s*(?:{trigger})\s*$"
    else:
        source = rf"^\s*(?:{clause}\s*)?\b(?:{trigger})\s*$"
    return re.compile(source, PATTERN_FLAGS)
