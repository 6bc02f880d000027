"""Plaid Link commands for Spirit Cat CLI.

Create Link tokens for a client application and exchange the public token it
returns for a long-lived access token.
"""

import logging

import typer
from plaid.exceptions import ApiException

from spiritcat.config import get_settings
from spiritcat.connectors.plaid_proxy import format_plaid_error, proxy_from_settings
from spiritcat.utils.secrets_manager import AccessTokenStore

from ..output import emit_json

app = typer.Typer(help="Plaid Link setup commands")
logger = logging.getLogger(__name__)


@app.command("info")
def info() -> None:
    """Show the Plaid products Link is initialized with."""
    try:
        proxy = proxy_from_settings(get_settings())
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    emit_json(proxy.info())


@app.command("link-token")
def link_token(
    user_id: str = typer.Option(
        "spiritcat-user", "--user-id", "-u", help="Stable identifier for the end user"
    ),
) -> None:
    """Create a Link token for initializing Plaid Link client-side."""
    try:
        proxy = proxy_from_settings(get_settings())
        payload = proxy.create_link_token(user_id)
    except ApiException as e:
        logger.error("❌ Plaid rejected the Link token request")
        emit_json(format_plaid_error(e))
        raise typer.Exit(1) from e
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    emit_json(payload)


@app.command("exchange")
def exchange(
    public_token: str = typer.Argument(..., help="public_token returned by Link"),
    institution: str | None = typer.Option(
        None,
        "--institution",
        "-i",
        help="Institution name used to suggest a PLAID_TOKEN_<NAME> variable",
    ),
) -> None:
    """Exchange a Link public token for an access token."""
    try:
        proxy = proxy_from_settings(get_settings())
        result = proxy.exchange_public_token(public_token)
    except ApiException as e:
        logger.error("❌ Plaid rejected the public token exchange")
        emit_json(format_plaid_error(e))
        raise typer.Exit(1) from e
    except (ValueError, RuntimeError) as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    if institution:
        env_var = AccessTokenStore().store_token(institution, result["access_token"])
        result = {**result, "env_var": env_var}

    emit_json({**result, "error": None})
