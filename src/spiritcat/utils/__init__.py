"""Utility modules for Spirit Cat.

This package provides credential and access token lookup shared by the CLI
commands.
"""

from .secrets_manager import (
    AccessTokenStore,
    SecretsManager,
    plaid_credentials_from_environment,
    setup_secure_environment,
    token_env_var,
)

__all__ = [
    "AccessTokenStore",
    "SecretsManager",
    "plaid_credentials_from_environment",
    "setup_secure_environment",
    "token_env_var",
]
