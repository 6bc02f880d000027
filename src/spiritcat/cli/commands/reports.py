"""Asset report commands for Spirit Cat CLI.

Asset reports are generated asynchronously by Plaid. The ``assets`` command
requests one, polls until it is ready (bounded by the configured retry
budget) and then saves both the JSON report and its PDF rendering.
"""

import base64
import json
import logging
from datetime import datetime
from pathlib import Path

import typer
from plaid.exceptions import ApiException

from spiritcat.config import get_settings
from spiritcat.connectors.plaid_proxy import format_plaid_error, proxy_from_settings
from spiritcat.sync import Cancelled, RetriesExhausted
from spiritcat.utils.secrets_manager import AccessTokenStore

from ..cancellation import CANCELLED_EXIT_CODE, cancel_on_signal
from ..output import emit_json

app = typer.Typer(help="Generate Plaid asset reports")
logger = logging.getLogger(__name__)


@app.command("assets")
def asset_report(
    institution: str | None = typer.Option(
        None, "--institution", "-i", help="Institution whose token to use"
    ),
    days: int | None = typer.Option(
        None, "--days", "-d", min=1, max=731, help="Days of history to include"
    ),
    output_dir: Path = typer.Option(
        Path("data/reports"), "--output-dir", "-o", help="Where to save the report"
    ),
) -> None:
    """Create an asset report, wait for it, and save the JSON and PDF."""
    try:
        settings = get_settings()
        name, access_token = AccessTokenStore().resolve(institution)
        proxy = proxy_from_settings(settings)
    except (LookupError, ValueError) as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    logger.info(
        f"Requesting asset report for {name} "
        f"(polling every {settings.reports.poll_delay}s, "
        f"up to {settings.reports.poll_max_attempts} attempts)"
    )

    try:
        with cancel_on_signal() as cancel:
            report = proxy.asset_report(access_token, days_requested=days, cancel=cancel)
    except RetriesExhausted as e:
        logger.error(f"❌ Asset report was not ready in time: {e}")
        raise typer.Exit(1) from e
    except Cancelled as e:
        logger.warning("Asset report polling cancelled")
        raise typer.Exit(CANCELLED_EXIT_CODE) from e
    except ApiException as e:
        logger.error("❌ Plaid rejected the asset report request")
        emit_json(format_plaid_error(e))
        raise typer.Exit(1) from e

    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    json_path = output_dir / f"asset_report_{stamp}.json"
    pdf_path = output_dir / f"asset_report_{stamp}.pdf"
    json_path.write_text(json.dumps(report["json"], indent=2, default=str))
    pdf_path.write_bytes(base64.b64decode(report["pdf"]))

    logger.info(f"✅ Asset report saved to {output_dir}")
    emit_json({"json": str(json_path), "pdf": str(pdf_path), "error": None})
