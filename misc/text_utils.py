from __future__ import annotations

from config.defaults import DISCORD_MAX_MESSAGE_LEN


def _split_line(line: str, limit: int) -> list[str]:
    """Break one over-long line between words; words longer than `limit` are cut."""
    if len(line) <= limit:
        return [line]
    pieces: list[str] = []
    current = ""
    for word in line.split(" "):
        while len(word) > limit:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(word[:limit])
            word = word[limit:]
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= limit:
            current = candidate
        else:
            pieces.append(current)
            current = word
    if current:
        pieces.append(current)
    return pieces


def chunk_text(text: str, limit: int = DISCORD_MAX_MESSAGE_LEN) -> list[str]:
    """Pack whole lines into messages of at most `limit` characters.

    Markdown stays intact as long as a line fits; blank text yields no parts.
    """
    parts: list[str] = []
    current = ""
    for line in (text or "").split("\n"):
        for piece in _split_line(line, limit):
            candidate = f"{current}\n{piece}" if current else piece
            if len(candidate) <= limit:
                current = candidate
                continue
            if current.strip():
                parts.append(current.rstrip())
            current = piece
    if current.strip():
        parts.append(current.rstrip())
    return parts


def natural_join(items: list[str], last_sep: str = "and") -> str:
    """'a', 'a and b', 'a, b and c'."""
    items = [str(i) for i in items]
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    return f"{', '.join(items[:-1])} {last_sep} {items[-1]}"
