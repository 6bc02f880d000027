"""Transaction sync commands for Spirit Cat CLI.

Drains Plaid's ``/transactions/sync`` changefeed for one item and prints the
most recent transactions. With ``--incremental`` the sync resumes from the
cursor saved by the previous complete run.
"""

import logging
from pathlib import Path

import polars as pl
import typer
from plaid.exceptions import ApiException

from spiritcat.config import get_settings
from spiritcat.connectors.plaid_proxy import format_plaid_error, proxy_from_settings
from spiritcat.storage import CursorStore, item_key_for
from spiritcat.sync import START_CURSOR, Cancelled, SyncAborted, dedupe_by, latest_by
from spiritcat.utils.secrets_manager import AccessTokenStore

from ..cancellation import CANCELLED_EXIT_CODE, cancel_on_signal
from ..output import emit_json

app = typer.Typer(help="Sync transactions from Plaid")
logger = logging.getLogger(__name__)


@app.command("sync")
def sync_transactions(
    institution: str | None = typer.Option(
        None, "--institution", "-i", help="Institution whose token to use"
    ),
    incremental: bool = typer.Option(
        False,
        "--incremental",
        help="Resume from the saved cursor and save the new one afterwards",
    ),
    reset: bool = typer.Option(
        False, "--reset", help="Forget the saved cursor before syncing"
    ),
    limit: int | None = typer.Option(
        None, "--limit", "-n", min=1, help="Number of recent transactions to print"
    ),
    dedupe: bool = typer.Option(
        False, "--dedupe", help="Collapse transactions reported more than once"
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write all added transactions to a Parquet file"
    ),
) -> None:
    """Sync transactions and print the most recent ones.

    Without --incremental the whole history is pulled from the start of the
    feed. The saved cursor is only updated after a complete sync.
    """
    try:
        settings = get_settings()
        name, access_token = AccessTokenStore().resolve(institution)
        proxy = proxy_from_settings(settings)
    except (LookupError, ValueError) as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    logger.info(f"Syncing transactions for {name}")

    store = CursorStore(settings.database.path)
    item_key = item_key_for(access_token)
    if reset:
        store.reset(item_key)
    cursor = store.get(item_key) if incremental else START_CURSOR

    try:
        with cancel_on_signal() as cancel:
            result = proxy.sync_transactions(access_token, cursor=cursor, cancel=cancel)
    except SyncAborted as e:
        logger.error(f"❌ Sync failed: {e}")
        cause = e.failure.__cause__
        if isinstance(cause, ApiException):
            emit_json(format_plaid_error(cause))
        raise typer.Exit(1) from e
    except Cancelled as e:
        logger.warning("Sync cancelled; no cursor was saved")
        raise typer.Exit(CANCELLED_EXIT_CODE) from e

    if incremental:
        changes = len(result.added) + len(result.modified) + len(result.removed)
        store.save(item_key, result.next_cursor, changes)

    added = list(result.added)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        pl.DataFrame([t.to_row() for t in added]).write_parquet(output)
        logger.info(f"Saved {len(added)} transactions to {output}")

    if dedupe:
        added = dedupe_by(added, key=lambda t: t.transaction_id)

    recent = latest_by(
        added,
        key=lambda t: t.transaction_date,
        limit=limit or settings.sync.recent_limit,
    )
    emit_json({
        "latest_transactions": [t.to_row() for t in recent],
        "added": len(result.added),
        "modified": len(result.modified),
        "removed": [r.transaction_id for r in result.removed],
    })
