"""Error taxonomy for the sync and polling loops."""

from __future__ import annotations

from typing import Any


class SyncError(Exception):
    """Base class for every error raised by ``spiritcat.sync``."""


class FetchFailure(SyncError):
    """A single changefeed page request failed.

    Never retried by the sync loop; always fatal to the enclosing sync.
    """

    def __init__(self, message: str, cursor: Any = None):
        super().__init__(message)
        self.cursor = cursor


class SyncAborted(SyncError):
    """A sync was abandoned because a page fetch failed.

    Whatever had been accumulated before the failure is discarded.
    """

    def __init__(self, failure: FetchFailure, pages_fetched: int):
        super().__init__(
            f"Sync aborted after {pages_fetched} page(s): {failure}"
        )
        self.failure = failure
        self.pages_fetched = pages_fetched


class AttemptFailure(SyncError):
    """A single readiness probe failed; the poller may try again."""


class RetriesExhausted(SyncError):
    """The retry budget ran out before any attempt succeeded."""

    def __init__(self, attempts: int):
        super().__init__(f"Ran out of retries after {attempts} attempt(s)")
        self.attempts = attempts


class Cancelled(SyncError):
    """An external cancellation signal preempted a fetch, attempt or delay."""
