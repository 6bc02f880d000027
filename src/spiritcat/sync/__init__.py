"""Cursor-paginated changefeed sync and bounded readiness polling.

Both loops are plain, strictly sequential iterations over abstract
capabilities: a page fetcher for the changefeed and a single-attempt probe for
the poller. They perform no I/O or logging of their own.
"""

from .cursor import START_CURSOR, StartCursor, SyncCursor, is_start
from .errors import (
    AttemptFailure,
    Cancelled,
    FetchFailure,
    RetriesExhausted,
    SyncAborted,
    SyncError,
)
from .paginated import (
    Page,
    PaginatedSyncRunner,
    SyncResult,
    dedupe_by,
    latest_by,
    sync_all,
)
from .polling import PollingRetrier, interruptible_sleep, poll_until_ready

__all__ = [
    "START_CURSOR",
    "StartCursor",
    "SyncCursor",
    "is_start",
    "SyncError",
    "FetchFailure",
    "SyncAborted",
    "AttemptFailure",
    "RetriesExhausted",
    "Cancelled",
    "Page",
    "SyncResult",
    "PaginatedSyncRunner",
    "sync_all",
    "latest_by",
    "dedupe_by",
    "PollingRetrier",
    "poll_until_ready",
    "interruptible_sleep",
]
