"""Shared pytest fixtures for spiritcat tests.

This module keeps tests isolated from each other and from the developer's
machine: every test runs in a temporary working directory, with a clean
settings cache and no inherited Plaid access tokens.
"""

import json
import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from plaid.exceptions import ApiException

from spiritcat.config import clear_settings_cache, set_current_profile


@pytest.fixture(autouse=True)
def clean_profile_state(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """Reset configuration state around each test.

    - Runs in a temporary working directory so data/ and .env files never
      touch the repository
    - Clears the settings cache and resets the profile to 'test'
    - Removes PLAID_* variables inherited from the environment
    """
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("PLAID_") or key.startswith("SPIRITCAT_"):
            monkeypatch.delenv(key, raising=False)

    clear_settings_cache()
    set_current_profile("test")

    yield

    clear_settings_cache()
    set_current_profile("test")


@pytest.fixture
def plaid_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Dummy Plaid credentials plus one institution access token."""
    env = {
        "PLAID_CLIENT_ID": "client-dummy",
        "PLAID_SECRET": "secret-dummy",
        "PLAID_ENV": "sandbox",
        "PLAID_TOKEN_FIRST_PLATYPUS": "access-sandbox-platypus",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


def make_api_exception(
    status: int = 400, error_code: str = "PRODUCT_NOT_READY", **extra: Any
) -> ApiException:
    """Build a Plaid ApiException carrying a JSON error body."""
    exc = ApiException(status=status, reason="Bad Request")
    exc.body = json.dumps({
        "error_code": error_code,
        "error_message": extra.pop("error_message", "the requested product is not yet ready"),
        "error_type": extra.pop("error_type", "ASSET_REPORT_ERROR"),
        **extra,
    })
    return exc


def make_transaction(
    transaction_id: str, day: str = "2024-01-15", amount: float = 12.34
) -> dict[str, Any]:
    """A minimal transaction payload as Plaid returns it."""
    return {
        "transaction_id": transaction_id,
        "account_id": "acc_123",
        "amount": amount,
        "iso_currency_code": "USD",
        "date": day,
        "name": f"Purchase {transaction_id}",
        "category": ["Shops"],
        "pending": False,
    }
