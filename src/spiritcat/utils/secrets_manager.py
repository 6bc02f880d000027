"""Secure secrets management utilities for Spirit Cat.

Plaid API credentials and per-institution access tokens are read from the
environment (optionally seeded from a ``.env`` file). Access tokens are looked
up per call and handed to the operation that needs them; nothing keeps a
"current" token in module state.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from ..schemas import PlaidCredentials

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "PLAID_TOKEN_"


def plaid_credentials_from_environment() -> PlaidCredentials:
    """Load Plaid credentials from environment variables.

    Raises:
        ValueError: If required environment variables are missing
    """
    client_id = os.getenv("PLAID_CLIENT_ID")
    secret = os.getenv("PLAID_SECRET")
    environment = os.getenv("PLAID_ENV", "sandbox")

    if not client_id:
        raise ValueError("PLAID_CLIENT_ID environment variable is required")
    if not secret:
        raise ValueError("PLAID_SECRET environment variable is required")

    return PlaidCredentials(client_id=client_id, secret=secret, environment=environment)


def token_env_var(institution: str) -> str:
    """Environment variable name holding the access token for ``institution``."""
    return f"{TOKEN_PREFIX}{institution.upper().replace(' ', '_').replace('-', '_')}"


@dataclass
class AccessTokenStore:
    """Lookup of Plaid access tokens kept in ``PLAID_TOKEN_<INSTITUTION>`` variables.

    Multi-tenant credential storage is out of scope; this store only reads
    what the operator has configured.
    """

    def get_plaid_tokens(self) -> dict[str, str]:
        """Retrieve all Plaid access tokens from environment.

        Returns:
            dict[str, str]: Mapping of institution names to access tokens
        """
        tokens: dict[str, str] = {}
        for key, value in os.environ.items():
            if key.startswith(TOKEN_PREFIX) and value:
                institution_name = key[len(TOKEN_PREFIX) :].lower().replace("_", " ")
                tokens[institution_name] = value

        logger.debug(f"Found {len(tokens)} Plaid institution tokens")
        return tokens

    def resolve(self, institution: str | None = None) -> tuple[str, str]:
        """Pick the access token for ``institution``.

        When no institution is given, exactly one token must be configured.

        Returns:
            tuple[str, str]: (institution name, access token)

        Raises:
            LookupError: If no matching token is configured or the choice is ambiguous
        """
        tokens = self.get_plaid_tokens()
        if institution is not None:
            name = institution.lower().replace("_", " ").replace("-", " ")
            if name not in tokens:
                raise LookupError(
                    f"No access token configured for '{institution}'. "
                    f"Set {token_env_var(institution)}=access-..."
                )
            return name, tokens[name]

        if not tokens:
            raise LookupError(
                "No access tokens configured. "
                "Exchange a public token and set PLAID_TOKEN_<INSTITUTION>=access-..."
            )
        if len(tokens) > 1:
            raise LookupError(
                "Several institutions are configured; choose one with --institution: "
                + ", ".join(sorted(tokens))
            )
        return next(iter(tokens.items()))

    def store_token(self, institution: str, token: str) -> str:
        """Report where an access token should be kept.

        Returns:
            str: The environment variable name to set
        """
        env_var_name = token_env_var(institution)
        logger.info(f"Store the access token as environment variable: {env_var_name}")
        logger.warning("Manual token storage required - add it to your .env file")
        return env_var_name


class SecretsManager:
    """Central access to Plaid credentials and institution tokens."""

    def __init__(self, env_file: Path | None = None):
        """Initialize secrets manager.

        Args:
            env_file: Optional path to .env file
        """
        if env_file and env_file.exists():
            load_dotenv(env_file)
        else:
            load_dotenv()

        self.token_store = AccessTokenStore()
        self._validate_environment_setup()

    def _validate_environment_setup(self) -> None:
        """Warn about common misconfigurations."""
        if (
            os.getenv("DEBUG", "").lower() in ("true", "1")
            and os.getenv("PLAID_ENV") == "production"
        ):
            logger.error("DEBUG mode should not be enabled in production environment")

    def get_plaid_credentials(self) -> PlaidCredentials:
        """Get validated Plaid API credentials."""
        return plaid_credentials_from_environment()

    def validate_all_credentials(self) -> dict[str, bool]:
        """Validate all configured credentials.

        Returns:
            dict[str, bool]: Service -> validation status mapping
        """
        validation_results: dict[str, bool] = {}

        try:
            creds = self.get_plaid_credentials()
            validation_results["plaid"] = bool(creds.client_id and creds.secret)
        except ValueError as e:
            logger.error(f"Plaid credentials validation failed: {e}")
            validation_results["plaid"] = False

        validation_results["access tokens"] = bool(self.token_store.get_plaid_tokens())
        return validation_results


def setup_secure_environment() -> None:
    """Create a sample .env file and the data directories Spirit Cat uses."""
    for directory in (Path("data/duckdb"), Path("logs")):
        directory.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created directory: {directory}")

    env_file = Path(".env")
    if env_file.exists():
        return

    sample_content = """# Spirit Cat configuration

# Plaid API Configuration
# Get these from https://dashboard.plaid.com/team/keys
PLAID_CLIENT_ID=your_plaid_client_id_here
PLAID_SECRET=your_plaid_secret_here
PLAID_ENV=sandbox  # sandbox, development, or production

# Products and countries offered in Link. Must include 'assets' for asset reports.
PLAID_PRODUCTS=transactions
PLAID_COUNTRY_CODES=US
# PLAID_REDIRECT_URI=http://localhost:3000
# PLAID_ANDROID_PACKAGE_NAME=com.plaid.linksample

# Institution access tokens (printed by `spiritcat plaid exchange`)
# PLAID_TOKEN_FIRST_PLATYPUS=access-sandbox-xxx

# Report polling
# SPIRITCAT_REPORTS__POLL_DELAY=1.0
# SPIRITCAT_REPORTS__POLL_MAX_ATTEMPTS=20

SPIRITCAT_LOGGING__LEVEL=INFO
SPIRITCAT_LOGGING__LOG_TO_FILE=false
"""
    env_file.write_text(sample_content)
    logger.info(f"Created sample configuration: {env_file}")
