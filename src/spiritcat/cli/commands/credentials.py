"""Credential management commands for Spirit Cat CLI."""

import logging
from pathlib import Path

import typer

from spiritcat.config import get_current_profile
from spiritcat.utils.secrets_manager import SecretsManager, setup_secure_environment

app = typer.Typer(help="Manage API credentials and environment configuration")
logger = logging.getLogger(__name__)


@app.command("setup")
def setup(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite existing .env file"
    ),
) -> None:
    """Create a sample .env file and data directories."""
    env_file = Path(".env")
    if env_file.exists():
        if not force:
            logger.info("✅ .env file already exists (use --force to overwrite)")
            return
        env_file.unlink()

    setup_secure_environment()
    logger.info("✅ Secure environment setup completed")


@app.command("validate")
def validate() -> None:
    """Validate Plaid credentials and configured access tokens."""
    profile = get_current_profile()
    logger.info(f"Validating credentials (Profile: {profile})")

    manager = SecretsManager()
    validation_results = manager.validate_all_credentials()

    logger.info("🔐 Credential Validation Results:")
    for service, is_valid in validation_results.items():
        status = "✅ Valid" if is_valid else "❌ Invalid/Missing"
        logger.info(f"  {service.capitalize()}: {status}")

    if not all(validation_results.values()):
        logger.info(
            "Check your .env file or run 'spiritcat credentials setup' to create a template"
        )
        raise typer.Exit(1)

    for name in manager.token_store.get_plaid_tokens():
        logger.info(f"  - {name.title()}")
