# ruff: noqa: S101
"""Tests for the cursor-paginated changefeed runner."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

import pytest

from spiritcat.sync import (
    START_CURSOR,
    Cancelled,
    FetchFailure,
    Page,
    PaginatedSyncRunner,
    SyncAborted,
    SyncCursor,
    dedupe_by,
    latest_by,
    sync_all,
)


@dataclass
class ScriptedFeed:
    """Serves pre-built pages in order and records every cursor it was given."""

    pages: list[Page[Any, Any] | Exception]
    cursors: list[SyncCursor] = field(default_factory=list)

    def __call__(self, cursor: SyncCursor) -> Page[Any, Any]:
        self.cursors.append(cursor)
        item = self.pages[len(self.cursors) - 1]
        if isinstance(item, Exception):
            raise item
        return item


def _page(
    added: list[str] | None = None,
    modified: list[str] | None = None,
    removed: list[str] | None = None,
    has_more: bool = False,
    next_cursor: str = "",
) -> Page[str, str]:
    return Page(
        added=tuple(added or []),
        modified=tuple(modified or []),
        removed=tuple(removed or []),
        has_more=has_more,
        next_cursor=next_cursor,
    )


@pytest.mark.unit
class TestPaginatedSyncRunner:
    """Behaviour of PaginatedSyncRunner.sync."""

    def test_three_page_scenario(self) -> None:
        """Pages are merged in order and each cursor feeds the next fetch."""
        feed = ScriptedFeed([
            _page(added=["A", "B"], has_more=True, next_cursor="c1"),
            _page(modified=["A"], has_more=True, next_cursor="c2"),
            _page(removed=["B"], has_more=False, next_cursor="c3"),
        ])

        result = PaginatedSyncRunner().sync(feed)

        assert result.added == ("A", "B")
        assert result.modified == ("A",)
        assert result.removed == ("B",)
        assert result.next_cursor == "c3"
        assert result.pages == 3
        assert feed.cursors == [START_CURSOR, "c1", "c2"]

    @pytest.mark.parametrize("n_pages", [1, 2, 5])
    def test_issues_exactly_one_fetch_per_page(self, n_pages: int) -> None:
        """N pages with the last reporting has_more=False means N fetches."""
        pages: list[Page[Any, Any] | Exception] = [
            _page(
                added=[f"a{i}"],
                modified=[f"m{i}"],
                removed=[f"r{i}"],
                has_more=i < n_pages - 1,
                next_cursor=f"c{i}",
            )
            for i in range(n_pages)
        ]
        feed = ScriptedFeed(pages)

        result = sync_all(feed)

        assert len(feed.cursors) == n_pages
        assert result.added == tuple(f"a{i}" for i in range(n_pages))
        assert result.modified == tuple(f"m{i}" for i in range(n_pages))
        assert result.removed == tuple(f"r{i}" for i in range(n_pages))
        assert feed.cursors[1:] == [f"c{i}" for i in range(n_pages - 1)]

    def test_first_fetch_uses_start_cursor_not_empty_string(self) -> None:
        """The start sentinel is distinct from an empty provider cursor."""
        feed = ScriptedFeed([
            _page(has_more=True, next_cursor=""),
            _page(has_more=False, next_cursor="c2"),
        ])

        PaginatedSyncRunner().sync(feed)

        assert feed.cursors[0] is START_CURSOR
        assert feed.cursors[1] == ""
        assert feed.cursors[1] is not START_CURSOR

    def test_resumes_from_supplied_cursor(self) -> None:
        """A persisted cursor can be used as the starting position."""
        feed = ScriptedFeed([_page(added=["Z"], next_cursor="c10")])

        result = PaginatedSyncRunner().sync(feed, cursor="c9")

        assert feed.cursors == ["c9"]
        assert result.added == ("Z",)
        assert result.next_cursor == "c10"

    def test_does_not_deduplicate_across_pages(self) -> None:
        """A transaction reported twice is returned twice."""
        feed = ScriptedFeed([
            _page(added=["A"], has_more=True, next_cursor="c1"),
            _page(added=["A"], modified=["A"], next_cursor="c2"),
        ])

        result = PaginatedSyncRunner().sync(feed)

        assert result.added == ("A", "A")
        assert result.modified == ("A",)

    def test_fetch_failure_aborts_without_further_fetches(self) -> None:
        """A failing page stops the sync and no partial result escapes."""
        boom = ConnectionError("connection reset")
        feed = ScriptedFeed([
            _page(added=["A"], has_more=True, next_cursor="c1"),
            boom,
            _page(added=["never"], next_cursor="c3"),
        ])

        with pytest.raises(SyncAborted) as excinfo:
            PaginatedSyncRunner().sync(feed)

        assert len(feed.cursors) == 2
        assert excinfo.value.pages_fetched == 1
        assert isinstance(excinfo.value.failure, FetchFailure)
        assert excinfo.value.failure.cursor == "c1"
        assert excinfo.value.__cause__ is boom

    def test_fetch_failure_raised_by_fetcher_is_wrapped_as_is(self) -> None:
        """A FetchFailure from the fetcher becomes SyncAborted.failure."""
        failure = FetchFailure("ITEM_LOGIN_REQUIRED", cursor=START_CURSOR)
        feed = ScriptedFeed([failure])

        with pytest.raises(SyncAborted) as excinfo:
            PaginatedSyncRunner().sync(feed)

        assert excinfo.value.failure is failure
        assert excinfo.value.pages_fetched == 0

    def test_cancel_before_start_fetches_nothing(self) -> None:
        """An already-set cancel event stops the sync before any fetch."""
        cancel = threading.Event()
        cancel.set()
        feed = ScriptedFeed([_page(added=["A"])])

        with pytest.raises(Cancelled):
            PaginatedSyncRunner().sync(feed, cancel=cancel)

        assert feed.cursors == []

    def test_cancel_during_fetch_discards_the_page(self) -> None:
        """Cancellation observed while awaiting a page stops the loop."""
        cancel = threading.Event()
        calls: list[SyncCursor] = []

        def fetch(cursor: SyncCursor) -> Page[str, str]:
            calls.append(cursor)
            cancel.set()
            return _page(added=["A"], has_more=True, next_cursor="c1")

        with pytest.raises(Cancelled):
            PaginatedSyncRunner().sync(fetch, cancel=cancel)

        assert calls == [START_CURSOR]

    def test_cancelled_from_fetcher_is_not_wrapped(self) -> None:
        """Cancelled raised inside the fetcher propagates unchanged."""
        feed = ScriptedFeed([Cancelled("caller gave up")])

        with pytest.raises(Cancelled):
            PaginatedSyncRunner().sync(feed)

    def test_runner_is_reusable(self) -> None:
        """Each sync owns its own accumulators."""
        runner = PaginatedSyncRunner()
        first = runner.sync(ScriptedFeed([_page(added=["A"])]))
        second = runner.sync(ScriptedFeed([_page(added=["B"])]))

        assert first.added == ("A",)
        assert second.added == ("B",)


@pytest.mark.unit
class TestPostProcessing:
    """Recency cut and optional dedup over sync output."""

    def test_latest_by_keeps_most_recent_in_ascending_order(self) -> None:
        items = [("t1", 5), ("t2", 1), ("t3", 9), ("t4", 3)]

        assert latest_by(items, key=lambda i: i[1], limit=2) == [("t1", 5), ("t3", 9)]

    def test_latest_by_with_fewer_items_than_limit(self) -> None:
        items = [("t1", 2), ("t2", 1)]

        assert latest_by(items, key=lambda i: i[1], limit=8) == [("t2", 1), ("t1", 2)]

    def test_latest_by_zero_limit(self) -> None:
        assert latest_by([1, 2, 3], key=lambda i: i, limit=0) == []

    def test_latest_by_rejects_negative_limit(self) -> None:
        with pytest.raises(ValueError):
            latest_by([1], key=lambda i: i, limit=-1)

    def test_dedupe_by_keeps_last_version_at_first_position(self) -> None:
        items = [("A", "v1"), ("B", "v1"), ("A", "v2")]

        assert dedupe_by(items, key=lambda i: i[0]) == [("A", "v2"), ("B", "v1")]
