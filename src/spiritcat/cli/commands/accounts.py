"""Account lookup commands for Spirit Cat CLI.

Each command is a single Plaid request for the selected institution's item,
printed as JSON.
"""

import logging
from collections.abc import Callable
from typing import Annotated, Any

import typer
from plaid.exceptions import ApiException

from spiritcat.config import get_settings
from spiritcat.connectors.plaid_proxy import (
    PlaidProxy,
    format_plaid_error,
    proxy_from_settings,
)
from spiritcat.utils.secrets_manager import AccessTokenStore

from ..output import emit_json

app = typer.Typer(help="Look up accounts, balances and related item data")
logger = logging.getLogger(__name__)

Institution = Annotated[
    str | None,
    typer.Option("--institution", "-i", help="Institution whose token to use"),
]


def _run(institution: str | None, call: Callable[[PlaidProxy, str], Any]) -> None:
    try:
        _, access_token = AccessTokenStore().resolve(institution)
        proxy = proxy_from_settings(get_settings())
        payload = call(proxy, access_token)
    except ApiException as e:
        emit_json(format_plaid_error(e))
        raise typer.Exit(1) from e
    except (LookupError, ValueError) as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    emit_json(payload)


@app.command("list")
def list_accounts(institution: Institution = None) -> None:
    """List the item's accounts."""
    _run(
        institution,
        lambda proxy, token: {
            "accounts": [a.model_dump(mode="json") for a in proxy.accounts(token)]
        },
    )


@app.command("balance")
def balance(institution: Institution = None) -> None:
    """Fetch real-time balances."""
    _run(institution, lambda proxy, token: proxy.balance(token))


@app.command("auth")
def auth(institution: Institution = None) -> None:
    """Fetch account and routing numbers."""
    _run(institution, lambda proxy, token: proxy.auth(token))


@app.command("identity")
def identity(institution: Institution = None) -> None:
    """Fetch account owner identity."""
    _run(institution, lambda proxy, token: proxy.identity(token))


@app.command("holdings")
def holdings(institution: Institution = None) -> None:
    """Fetch investment holdings."""
    _run(institution, lambda proxy, token: proxy.holdings(token))


@app.command("liabilities")
def liabilities(institution: Institution = None) -> None:
    """Fetch liabilities."""
    _run(institution, lambda proxy, token: proxy.liabilities(token))


@app.command("item")
def item(institution: Institution = None) -> None:
    """Fetch item metadata and its institution."""
    _run(institution, lambda proxy, token: proxy.item(token))


@app.command("investments")
def investments(
    institution: Institution = None,
    days: int = typer.Option(30, "--days", "-d", min=1, help="Days to look back"),
) -> None:
    """Fetch investment transactions for the last N days."""
    _run(
        institution,
        lambda proxy, token: proxy.investments_transactions(token, days=days),
    )
