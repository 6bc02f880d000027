"""Local persistence for sync state."""

from .cursor_store import CursorStore, item_key_for

__all__ = ["CursorStore", "item_key_for"]
