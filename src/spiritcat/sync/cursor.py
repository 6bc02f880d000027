"""Opaque changefeed position tokens.

Providers disagree on whether an empty cursor means "start of feed" or "a valid
position with nothing observed yet", so the start position is its own value
rather than ``""`` or ``None``.
"""

from __future__ import annotations

from typing import Final, TypeAlias


class StartCursor:
    """Marker type for "no prior position". Use the ``START_CURSOR`` instance."""

    _instance: "StartCursor | None" = None

    def __new__(cls) -> "StartCursor":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "START_CURSOR"

    def __bool__(self) -> bool:
        return False


START_CURSOR: Final = StartCursor()

SyncCursor: TypeAlias = str | StartCursor


def is_start(cursor: SyncCursor) -> bool:
    """Return True if ``cursor`` is the start sentinel."""
    return cursor is START_CURSOR
