"""Tests for logging set up by the top-level CLI callback."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from spiritcat.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Generator[None, Any, None]:
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)


class TestLoggingSettings:
    """The profile's logging section drives the root logger."""

    def test_level_from_prefixed_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPIRITCAT_LOGGING__LEVEL", "warning")

        result = runner.invoke(app, ["credentials", "setup"])

        assert result.exit_code == 0, result.output
        assert logging.getLogger().level == logging.WARNING

    def test_verbose_overrides_configured_level(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SPIRITCAT_LOGGING__LEVEL", "ERROR")

        result = runner.invoke(app, ["--verbose", "credentials", "setup"])

        assert result.exit_code == 0, result.output
        assert logging.getLogger().level == logging.DEBUG

    def test_level_from_profile_env_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Registered with monkeypatch so the value loaded by the CLI is removed afterwards
        monkeypatch.setenv("SPIRITCAT_LOGGING__LEVEL", "")
        monkeypatch.delenv("SPIRITCAT_LOGGING__LEVEL")
        (tmp_path / ".env.quiet").write_text("SPIRITCAT_LOGGING__LEVEL=ERROR\n")

        result = runner.invoke(app, ["-p", "quiet", "credentials", "setup"])

        assert result.exit_code == 0, result.output
        assert logging.getLogger().level == logging.ERROR

    def test_file_logging_from_settings(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        log_file = tmp_path / "logs" / "cli.log"
        monkeypatch.setenv("SPIRITCAT_LOGGING__LOG_TO_FILE", "true")
        monkeypatch.setenv("SPIRITCAT_LOGGING__LOG_FILE_PATH", str(log_file))

        result = runner.invoke(app, ["credentials", "setup"])

        assert result.exit_code == 0, result.output
        assert log_file.parent.is_dir()

    def test_invalid_level_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPIRITCAT_LOGGING__LEVEL", "LOUD")

        result = runner.invoke(app, ["credentials", "setup"])

        assert result.exit_code == 1
