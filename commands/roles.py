from __future__ import annotations

from enum import IntEnum


class Role(IntEnum):
    USER = 0
    ADMIN = 1
    OWNER = 2

    def __str__(self) -> str:
        return self.name.lower()


def satisfies(actual: Role, required: Role) -> bool:
    """True if `actual` is the same or a stricter role than `required`."""
    return int(actual) >= int(required)
