"""DuckDB persistence for transaction sync cursors.

One row per Plaid item, keyed by a truncated hash of its access token so raw
tokens never reach disk. Callers save a cursor only after a sync has drained
the feed completely.
"""

import hashlib
import logging
from datetime import datetime
from pathlib import Path

import duckdb

from ..sync import START_CURSOR, SyncCursor, is_start

logger = logging.getLogger(__name__)

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS transaction_cursors (
        item_key VARCHAR PRIMARY KEY,
        cursor VARCHAR NOT NULL,
        last_sync_timestamp TIMESTAMP,
        transactions_synced INTEGER
    )
"""


def item_key_for(access_token: str) -> str:
    """Stable, non-reversible key for an access token."""
    return hashlib.sha256(access_token.encode()).hexdigest()[:16]


class CursorStore:
    """Reads and writes the last fully-synced cursor per item."""

    def __init__(self, database_path: Path):
        self.database_path = database_path

    def _connect(self) -> duckdb.DuckDBPyConnection:
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        conn = duckdb.connect(str(self.database_path))
        conn.execute(_SCHEMA)
        return conn

    def get(self, item_key: str) -> SyncCursor:
        """Return the stored cursor, or ``START_CURSOR`` if none was saved."""
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT cursor FROM transaction_cursors WHERE item_key = ?",
                [item_key],
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            return START_CURSOR
        return str(row[0])

    def save(self, item_key: str, cursor: SyncCursor, transactions_synced: int) -> None:
        """Record ``cursor`` as the position to resume from next time.

        Saving the start cursor clears the stored position instead.
        """
        if is_start(cursor):
            self.reset(item_key)
            return

        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO transaction_cursors
                (item_key, cursor, last_sync_timestamp, transactions_synced)
                VALUES (?, ?, ?, ?)
                """,
                [item_key, cursor, datetime.now(), transactions_synced],
            )
        finally:
            conn.close()
        logger.info(f"Saved sync cursor for item {item_key} ({transactions_synced} changes)")

    def reset(self, item_key: str) -> None:
        """Forget the stored cursor so the next sync starts from the beginning."""
        conn = self._connect()
        try:
            conn.execute("DELETE FROM transaction_cursors WHERE item_key = ?", [item_key])
        finally:
            conn.close()
        logger.info(f"Reset sync cursor for item {item_key}")
