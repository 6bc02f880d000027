"""Drain a cursor-paginated changefeed into a single result.

The runner asks an abstract page fetcher for one page at a time, always passing
the cursor returned by the previous page, and accumulates the added, modified
and removed records in fetch order until a page reports ``has_more=False``.

Usage:
    ```python
    runner = PaginatedSyncRunner()
    result = runner.sync(lambda cursor: client.fetch_page(cursor))
    ```
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .cursor import START_CURSOR, SyncCursor
from .errors import Cancelled, FetchFailure, SyncAborted

TxnT = TypeVar("TxnT")
RefT = TypeVar("RefT")
ItemT = TypeVar("ItemT")


@dataclass(frozen=True)
class Page(Generic[TxnT, RefT]):
    """One fetched slice of the changefeed."""

    added: Sequence[TxnT]
    modified: Sequence[TxnT]
    removed: Sequence[RefT]
    has_more: bool
    next_cursor: str


@dataclass(frozen=True)
class SyncResult(Generic[TxnT, RefT]):
    """Accumulated changefeed output once the feed reports exhaustion.

    Sequences are concatenated across pages in fetch order and are not
    deduplicated.
    """

    added: tuple[TxnT, ...]
    modified: tuple[TxnT, ...]
    removed: tuple[RefT, ...]
    next_cursor: SyncCursor
    pages: int


PageFetcher = Callable[[SyncCursor], Page[TxnT, RefT]]


class PaginatedSyncRunner:
    """Sequentially fetches and merges changefeed pages until exhaustion.

    The runner holds no state between calls; each ``sync`` owns its own
    cursor and accumulators, so one runner can serve concurrent syncs.
    """

    def sync(
        self,
        fetch_page: PageFetcher[TxnT, RefT],
        cursor: SyncCursor = START_CURSOR,
        cancel: threading.Event | None = None,
    ) -> SyncResult[TxnT, RefT]:
        """Fetch pages from ``cursor`` until one reports ``has_more=False``.

        Args:
            fetch_page: Returns exactly one page for the given cursor, or raises
            cursor: Position to start from. Defaults to the start of the feed.
            cancel: Optional event; once set, the sync stops with ``Cancelled``

        Returns:
            SyncResult: Every page's records, plus the final cursor

        Raises:
            SyncAborted: A page fetch failed. No partial result is returned.
            Cancelled: ``cancel`` was set before or during a fetch
        """
        added: list[TxnT] = []
        modified: list[TxnT] = []
        removed: list[RefT] = []
        pages = 0
        has_more = True

        while has_more:
            _raise_if_cancelled(cancel, "before fetching the next page")
            try:
                page = fetch_page(cursor)
            except Cancelled:
                raise
            except Exception as exc:
                failure = (
                    exc
                    if isinstance(exc, FetchFailure)
                    else FetchFailure(f"{type(exc).__name__}: {exc}", cursor=cursor)
                )
                raise SyncAborted(failure, pages_fetched=pages) from exc
            # A page that arrives after cancellation is dropped unmerged
            _raise_if_cancelled(cancel, "while awaiting a page")

            added.extend(page.added)
            modified.extend(page.modified)
            removed.extend(page.removed)
            cursor = page.next_cursor
            has_more = page.has_more
            pages += 1

        return SyncResult(
            added=tuple(added),
            modified=tuple(modified),
            removed=tuple(removed),
            next_cursor=cursor,
            pages=pages,
        )


def sync_all(
    fetch_page: PageFetcher[TxnT, RefT],
    cursor: SyncCursor = START_CURSOR,
    cancel: threading.Event | None = None,
) -> SyncResult[TxnT, RefT]:
    """Convenience wrapper around ``PaginatedSyncRunner().sync``."""
    return PaginatedSyncRunner().sync(fetch_page, cursor=cursor, cancel=cancel)


def latest_by(
    items: Iterable[ItemT], key: Callable[[ItemT], Any], limit: int
) -> list[ItemT]:
    """Return the ``limit`` items with the largest keys, ascending by key.

    The sort is stable, so items with equal keys keep their fetch order.
    """
    if limit < 0:
        raise ValueError("limit must be non-negative")
    if limit == 0:
        return []
    return sorted(items, key=key)[-limit:]


def dedupe_by(items: Iterable[ItemT], key: Callable[[ItemT], Hashable]) -> list[ItemT]:
    """Collapse items sharing a key, keeping the last reported version.

    Each surviving item sits at the position where its key was first seen.
    """
    latest: dict[Hashable, ItemT] = {}
    for item in items:
        latest[key(item)] = item
    return list(latest.values())


def _raise_if_cancelled(cancel: threading.Event | None, where: str) -> None:
    if cancel is not None and cancel.is_set():
        raise Cancelled(f"Sync cancelled {where}")
