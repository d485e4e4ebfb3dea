from __future__ import annotations

import html
import re

_TOKEN = "\x00{}\x00"
_TOKEN_RE = re.compile(r"\x00(\d+)\x00")

# Markup the Telegram HTML dialect accepts; anything else in the input is escaped.
_HTML_TAG_RE = re.compile(r'</?(?:b|i|u|s|code|pre)>|<a href="[^"<>]*">|</a>', re.I)
_HTML_ENTITY_RE = re.compile(r"&(?:amp|lt|gt|quot|#\d+|#x[0-9a-f]+);", re.I)

_IMAGE_LINK_RE = re.compile(r"\[!\[([^\]]*)\]\(([^)\s]+)\)\]\(([^)\s]+)\)")
_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)\s]+)\)")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
_CODE_RE = re.compile(r"`([^`\n]+)`")
_BOLD_RE = re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*|__(?=\S)(.+?)(?<=\S)__")
_ITALIC_RE = re.compile(r"(?<![\w*])\*(?=\S)([^*\n]+?)(?<=\S)\*(?![\w*])|(?<!\w)_(?=\S)([^_\n]+?)(?<=\S)_(?!\w)")
_HEADING_RE = re.compile(r"^\s*#{1,6}\s+(.+?)\s*#*\s*$")
_LIST_RE = re.compile(r"^(\s*)[*+]\s+")
_BLANK_LINES_RE = re.compile(r"\s*\n\s*\n\s*")


class _Tokens:
    """Stashes finished markup so later passes cannot touch it."""

    def __init__(self) -> None:
        self.values: list[str] = []

    def add(self, value: str) -> str:
        self.values.append(value)
        return _TOKEN.format(len(self.values) - 1)

    def restore(self, text: str) -> str:
        # Tokens may nest (a bold run holding a link), so expand until stable.
        while _TOKEN_RE.search(text):
            text = _TOKEN_RE.sub(lambda m: self.values[int(m.group(1))], text)
        return text


def _strip_emphasis(text: str) -> str:
    return re.sub(r"(\*\*|__|\*|_)(.+?)\1", r"\2", text)


def _link_html(label: str, url: str) -> str:
    return f'<a href="{url}">{label}</a>'


def to_telegram_html(markdown: str) -> str:
    """Convert markdown to Telegram's HTML parse mode.

    Already converted text passes through unchanged.
    """
    if not markdown:
        return ""
    tokens = _Tokens()

    text = _HTML_TAG_RE.sub(lambda m: tokens.add(m.group(0)), markdown)
    text = _HTML_ENTITY_RE.sub(lambda m: tokens.add(m.group(0)), text)
    text = html.escape(text, quote=False)

    text = _CODE_RE.sub(lambda m: tokens.add(f"<code>{m.group(1)}</code>"), text)
    text = _IMAGE_LINK_RE.sub(
        lambda m: tokens.add(
            _link_html(_strip_emphasis(m.group(1)) or "Image", m.group(2))
            + " ("
            + _link_html("Link", m.group(3))
            + ")"
        ),
        text,
    )
    text = _IMAGE_RE.sub(lambda m: tokens.add(_link_html(_strip_emphasis(m.group(1)) or "Image", m.group(2))), text)
    text = _LINK_RE.sub(lambda m: tokens.add(_link_html(_strip_emphasis(m.group(1)), m.group(2))), text)

    lines = []
    for line in text.split("\n"):
        heading = _HEADING_RE.match(line)
        if heading:
            line = tokens.add("<b>") + heading.group(1) + tokens.add("</b>")
        else:
            line = _LIST_RE.sub(r"\1- ", line)
        lines.append(line)
    text = "\n".join(lines)

    text = _BOLD_RE.sub(lambda m: tokens.add("<b>") + (m.group(1) or m.group(2)) + tokens.add("</b>"), text)
    text = _ITALIC_RE.sub(lambda m: tokens.add("<i>") + (m.group(1) or m.group(2)) + tokens.add("</i>"), text)

    text = _BLANK_LINES_RE.sub("\n\n", text)
    return tokens.restore(text).strip()


def to_discord_markdown(markdown: str, *, is_embed: bool = False) -> str:
    """Adapt generic markdown to what Discord renders."""
    if not markdown:
        return ""
    text = markdown
    if is_embed:
        text = _IMAGE_RE.sub(lambda m: f"[{m.group(1) or 'Image'}]({m.group(2)})", text)
    else:
        # Masked links only render inside embeds.
        text = _IMAGE_RE.sub(lambda m: m.group(2), text)
        text = _LINK_RE.sub(lambda m: f"{m.group(1)} ({m.group(2)})", text)

    lines = []
    for line in text.split("\n"):
        heading = _HEADING_RE.match(line)
        if heading:
            line = f"**{heading.group(1)}**"
        else:
            line = _LIST_RE.sub(r"\1- ", line)
        lines.append(line)
    text = "\n".join(lines)

    # __x__ underlines on Discord.
    text = re.sub(r"__(?=\S)(.+?)(?<=\S)__", r"**\1**", text)
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()


def truncate(text: str, limit: int, ellipsis: str = "...") -> str:
    text = text or ""
    if len(text) <= limit:
        return text
    if limit <= len(ellipsis):
        return text[:limit]
    return text[: limit - len(ellipsis)].rstrip() + ellipsis


_OPEN_OR_CLOSE_RE = re.compile(r"<(/?)(b|i|u|s|code|pre|a)(?:\s[^>]*)?>", re.I)


def _closing_tags(text: str) -> str:
    stack: list[str] = []
    for m in _OPEN_OR_CLOSE_RE.finditer(text):
        name = m.group(2).lower()
        if m.group(1):
            if name in stack:
                # Drop everything opened after the matching tag.
                del stack[len(stack) - 1 - stack[::-1].index(name):]
        else:
            stack.append(name)
    return "".join(f"</{name}>" for name in reversed(stack))


def truncate_html(text: str, limit: int, ellipsis: str = "...") -> str:
    """Cut Telegram HTML to `limit` characters without leaving broken markup."""
    text = text or ""
    if len(text) <= limit:
        return text

    budget = max(0, limit - len(ellipsis))
    while True:
        cut = text[:budget]
        cut = re.sub(r"<[^>]*$", "", cut)
        cut = re.sub(r"&[#a-zA-Z0-9]*$", "", cut)
        closing = _closing_tags(cut)
        result = cut.rstrip() + ellipsis + closing
        if len(result) <= limit or budget == 0:
            return result[:limit] if budget == 0 else result
        budget = max(0, budget - (len(result) - limit))
