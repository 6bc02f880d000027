"""Tests for the top-level CLI, Link commands and account lookups."""

from __future__ import annotations

from typing import Any

import pytest
from conftest import make_api_exception
from pytest_mock import MockerFixture
from typer.testing import CliRunner

from spiritcat.cli.main import app
from spiritcat.config import get_current_profile

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_logging(mocker: MockerFixture) -> None:
    mocker.patch("spiritcat.cli.main.setup_logging")


class TestProfileOption:
    """Global --profile handling."""

    def test_explicit_profile(self, plaid_env: dict[str, str], mocker: MockerFixture) -> None:
        mocker.patch("spiritcat.cli.commands.plaid.proxy_from_settings")

        result = runner.invoke(app, ["--profile=household", "plaid", "info"])

        assert result.exit_code == 0, result.output
        assert get_current_profile() == "household"

    def test_invalid_profile(self) -> None:
        result = runner.invoke(app, ["--profile=bad/profile", "plaid", "info"])

        assert result.exit_code != 0
        assert get_current_profile() == "test"

    def test_profile_env_file_supplies_tokens(
        self, mocker: MockerFixture, tmp_path: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Registered with monkeypatch so values loaded by the CLI are removed afterwards
        for key in ("PLAID_CLIENT_ID", "PLAID_SECRET", "PLAID_TOKEN_TARTAN_BANK"):
            monkeypatch.setenv(key, "")
            monkeypatch.delenv(key)
        (tmp_path / ".env.sandbox").write_text(
            "PLAID_CLIENT_ID=client-file\n"
            "PLAID_SECRET=secret-file\n"
            "PLAID_TOKEN_TARTAN_BANK=access-sandbox-tartan\n"
        )
        proxy = mocker.MagicMock()
        proxy.balance.return_value = {"accounts": []}
        mocker.patch(
            "spiritcat.cli.commands.accounts.proxy_from_settings", return_value=proxy
        )

        result = runner.invoke(app, ["-p", "sandbox", "accounts", "balance"])

        assert result.exit_code == 0, result.output
        proxy.balance.assert_called_once_with("access-sandbox-tartan")


class TestPlaidCommands:
    """Link token and public token exchange."""

    def test_info(self, plaid_env: dict[str, str], mocker: MockerFixture) -> None:
        proxy = mocker.MagicMock()
        proxy.info.return_value = {"products": ["transactions"]}
        mocker.patch(
            "spiritcat.cli.commands.plaid.proxy_from_settings", return_value=proxy
        )

        result = runner.invoke(app, ["plaid", "info"])

        assert result.exit_code == 0, result.output
        assert '"transactions"' in result.stdout

    def test_info_without_credentials(self) -> None:
        result = runner.invoke(app, ["plaid", "info"])

        assert result.exit_code == 1

    def test_link_token(self, plaid_env: dict[str, str], mocker: MockerFixture) -> None:
        proxy = mocker.MagicMock()
        proxy.create_link_token.return_value = {"link_token": "link-sandbox-1"}
        mocker.patch(
            "spiritcat.cli.commands.plaid.proxy_from_settings", return_value=proxy
        )

        result = runner.invoke(app, ["plaid", "link-token", "--user-id", "u-42"])

        assert result.exit_code == 0, result.output
        assert "link-sandbox-1" in result.stdout
        proxy.create_link_token.assert_called_once_with("u-42")

    def test_exchange_suggests_env_var(
        self, plaid_env: dict[str, str], mocker: MockerFixture
    ) -> None:
        proxy = mocker.MagicMock()
        proxy.exchange_public_token.return_value = {
            "access_token": "access-sandbox-new",
            "item_id": "item-1",
        }
        mocker.patch(
            "spiritcat.cli.commands.plaid.proxy_from_settings", return_value=proxy
        )

        result = runner.invoke(
            app, ["plaid", "exchange", "public-sandbox-1", "-i", "Tartan Bank"]
        )

        assert result.exit_code == 0, result.output
        assert "access-sandbox-new" in result.stdout
        assert "PLAID_TOKEN_TARTAN_BANK" in result.stdout

    def test_exchange_plaid_error(
        self, plaid_env: dict[str, str], mocker: MockerFixture
    ) -> None:
        proxy = mocker.MagicMock()
        proxy.exchange_public_token.side_effect = make_api_exception(
            error_code="INVALID_PUBLIC_TOKEN"
        )
        mocker.patch(
            "spiritcat.cli.commands.plaid.proxy_from_settings", return_value=proxy
        )

        result = runner.invoke(app, ["plaid", "exchange", "public-bad"])

        assert result.exit_code == 1
        assert "INVALID_PUBLIC_TOKEN" in result.stdout


class TestAccountCommands:
    """Single request/response lookups."""

    @pytest.mark.parametrize(
        ("command", "method"),
        [
            ("balance", "balance"),
            ("auth", "auth"),
            ("identity", "identity"),
            ("holdings", "holdings"),
            ("liabilities", "liabilities"),
            ("item", "item"),
        ],
    )
    def test_lookup_passes_token(
        self,
        plaid_env: dict[str, str],
        mocker: MockerFixture,
        command: str,
        method: str,
    ) -> None:
        proxy = mocker.MagicMock()
        getattr(proxy, method).return_value = {"error": None, "marker": method}
        mocker.patch(
            "spiritcat.cli.commands.accounts.proxy_from_settings", return_value=proxy
        )

        result = runner.invoke(app, ["accounts", command])

        assert result.exit_code == 0, result.output
        assert f'"marker": "{method}"' in result.stdout
        getattr(proxy, method).assert_called_once_with("access-sandbox-platypus")

    def test_lookup_plaid_error(
        self, plaid_env: dict[str, str], mocker: MockerFixture
    ) -> None:
        proxy = mocker.MagicMock()
        proxy.liabilities.side_effect = make_api_exception(
            error_code="PRODUCTS_NOT_SUPPORTED"
        )
        mocker.patch(
            "spiritcat.cli.commands.accounts.proxy_from_settings", return_value=proxy
        )

        result = runner.invoke(app, ["accounts", "liabilities"])

        assert result.exit_code == 1
        assert "PRODUCTS_NOT_SUPPORTED" in result.stdout

    def test_investments_days(
        self, plaid_env: dict[str, str], mocker: MockerFixture
    ) -> None:
        proxy = mocker.MagicMock()
        proxy.investments_transactions.return_value = {"error": None}
        mocker.patch(
            "spiritcat.cli.commands.accounts.proxy_from_settings", return_value=proxy
        )

        result = runner.invoke(app, ["accounts", "investments", "--days", "90"])

        assert result.exit_code == 0, result.output
        proxy.investments_transactions.assert_called_once_with(
            "access-sandbox-platypus", days=90
        )


class TestCredentialCommands:
    """Credential setup and validation."""

    def test_setup_creates_env(self, tmp_path: Any) -> None:
        result = runner.invoke(app, ["credentials", "setup"])

        assert result.exit_code == 0, result.output
        assert (tmp_path / ".env").exists()

    def test_validate_success(self, plaid_env: dict[str, str]) -> None:
        result = runner.invoke(app, ["credentials", "validate"])

        assert result.exit_code == 0, result.output

    def test_validate_missing(self) -> None:
        result = runner.invoke(app, ["credentials", "validate"])

        assert result.exit_code == 1
