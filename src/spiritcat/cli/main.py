"""Main CLI application for Spirit Cat.

This module provides the unified entry point for all Spirit Cat CLI operations,
organizing commands into groups for Plaid Link, transactions, reports, account
lookups and credential management.
"""

import logging
from typing import Annotated

import typer

from ..config import get_logging_config, load_profile_env, set_current_profile
from ..logging import LoggingConfig, setup_logging
from .commands import accounts, credentials, plaid, reports, transactions

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="spiritcat",
    help="Spirit Cat: a proxy for Plaid account, transaction and report data",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    profile: Annotated[
        str,
        typer.Option(
            "--profile",
            "-p",
            help="Configuration profile to use (loads .env.{profile})",
            envvar="SPIRITCAT_PROFILE",
        ),
    ] = "default",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for Spirit Cat CLI.

    Each profile loads from its own .env.{profile} file, so separate Plaid
    environments (sandbox vs production) can be kept side by side.

    Examples:
      spiritcat --profile=sandbox transactions sync
      spiritcat reports assets --institution "first platypus"
    """
    try:
        set_current_profile(profile)
    except ValueError as e:
        raise typer.BadParameter(
            f"Invalid profile name: {profile}. "
            "Use only alphanumeric characters, dashes, and underscores"
        ) from e

    env_file = load_profile_env(profile)

    try:
        logging_settings = get_logging_config(profile)
    except ValueError as e:
        typer.echo(f"❌ Invalid logging configuration: {e}", err=True)
        raise typer.Exit(1) from e

    setup_logging(
        LoggingConfig.from_settings(logging_settings), cli_mode=True, verbose=verbose
    )
    logger.debug(f"Using profile: {profile} (env file: {env_file})")


app.add_typer(plaid.app, name="plaid", help="Plaid Link setup")
app.add_typer(transactions.app, name="transactions", help="Transaction sync")
app.add_typer(reports.app, name="reports", help="Asset report generation")
app.add_typer(accounts.app, name="accounts", help="Account and item lookups")
app.add_typer(
    credentials.app, name="credentials", help="Credential management commands"
)


def main() -> None:
    """Entry point for the Spirit Cat CLI application."""
    app()


if __name__ == "__main__":
    main()
