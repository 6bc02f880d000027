"""Centralized configuration management for Spirit Cat.

This module provides a Pydantic Settings-based configuration system with
environment variable integration, per-profile ``.env`` files, type validation,
and clear error handling.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROFILE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class PlaidConfig(BaseModel):
    """Plaid API configuration settings."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., description="Plaid client ID")
    secret: str = Field(..., description="Plaid secret key")
    environment: Literal["sandbox", "development", "production"] = Field(
        default="sandbox", description="Plaid environment"
    )
    products: list[str] = Field(
        default_factory=lambda: ["transactions"],
        description="Products requested when initializing Link",
    )
    country_codes: list[str] = Field(
        default_factory=lambda: ["US"],
        description="Countries users may pick institutions from",
    )
    redirect_uri: str | None = Field(
        default=None, description="OAuth redirect URI registered with Plaid"
    )
    android_package_name: str | None = Field(
        default=None, description="Android package name for OAuth on Android"
    )
    client_name: str = Field(
        default="Spirit Cat", description="Application name shown in Link"
    )

    @field_validator("products", "country_codes", mode="before")
    @classmethod
    def split_comma_separated(cls, v: Any) -> Any:
        """Accept comma-separated strings as well as lists."""
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @field_validator("country_codes")
    @classmethod
    def upper_country_codes(cls, v: list[str]) -> list[str]:
        """Country codes are ISO-3166 alpha-2, upper case."""
        return [code.upper() for code in v]


class SyncConfig(BaseModel):
    """Transaction sync settings."""

    model_config = ConfigDict(frozen=True)

    recent_limit: int = Field(
        default=8,
        ge=1,
        le=500,
        description="Number of most recent transactions returned by default",
    )


class ReportsConfig(BaseModel):
    """Asset report generation and polling settings."""

    model_config = ConfigDict(frozen=True)

    days_requested: int = Field(
        default=10,
        ge=1,
        le=731,
        description="Days of transaction history included in asset reports",
    )
    poll_delay: float = Field(
        default=1.0, ge=0.0, le=60.0, description="Seconds between readiness polls"
    )
    poll_max_attempts: int = Field(
        default=20, ge=1, le=500, description="Maximum readiness polls per report"
    )
    client_report_id: str = Field(
        default="spiritcat-report", description="Identifier attached to reports"
    )


class DatabaseConfig(BaseModel):
    """Database configuration settings."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(
        default=Path("data/duckdb/spiritcat.duckdb"),
        description="Path to the DuckDB file holding sync cursors",
    )
    create_dirs: bool = Field(
        default=True, description="Automatically create database directories"
    )

    @field_validator("path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Ensure database path has correct extension."""
        if not str(v).endswith((".db", ".duckdb")):
            raise ValueError("Database path must end with .db or .duckdb")
        return v


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_to_file: bool = Field(default=False, description="Enable file logging")
    log_file_path: Path = Field(
        default=Path("logs/spiritcat.log"), description="Path to log file"
    )
    max_file_size_mb: int = Field(
        default=50, ge=1, description="Rotate the log file at this size"
    )
    backup_count: int = Field(default=5, ge=0, description="Rotated files to keep")

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: Any) -> Any:
        """Accept level names in any case."""
        return v.upper() if isinstance(v, str) else v


class SpiritCatSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the SPIRITCAT_ prefix.
    For nested configs, use double underscores: SPIRITCAT_REPORTS__POLL_DELAY

    Profile Support:
    - Loads from .env.{profile} files (e.g., .env.dev, .env.prod)
    - Falls back to .env when no profile file exists
    """

    plaid: PlaidConfig = Field(
        default_factory=lambda: PlaidConfig(
            client_id="", secret="", environment="sandbox"
        )
    )
    sync: SyncConfig = Field(default_factory=SyncConfig)
    reports: ReportsConfig = Field(default_factory=ReportsConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    profile: str = Field(
        default="default",
        description="Profile name (e.g., dev, prod, household)",
    )

    @field_validator("profile")
    @classmethod
    def validate_profile_name(cls, v: str) -> str:
        """Ensure profile name is safe for use as a filename."""
        _check_profile_name(v)
        return v

    def __init__(self, **kwargs: Any):
        """Initialize settings with environment variable overrides.

        The unprefixed PLAID_* variables used by Plaid's quickstarts are honoured
        when no explicit ``plaid`` section is passed.

        Args:
            **kwargs: Additional configuration overrides
        """
        if "plaid" not in kwargs:
            client_id = os.getenv("PLAID_CLIENT_ID")
            secret = os.getenv("PLAID_SECRET")
            if client_id and secret:
                plaid_config: dict[str, Any] = {
                    "client_id": client_id,
                    "secret": secret,
                }
                env = os.getenv("PLAID_ENV", "sandbox")
                if env in ("sandbox", "development", "production"):
                    plaid_config["environment"] = env
                if os.getenv("PLAID_PRODUCTS"):
                    plaid_config["products"] = os.environ["PLAID_PRODUCTS"]
                if os.getenv("PLAID_COUNTRY_CODES"):
                    plaid_config["country_codes"] = os.environ["PLAID_COUNTRY_CODES"]
                if os.getenv("PLAID_REDIRECT_URI"):
                    plaid_config["redirect_uri"] = os.environ["PLAID_REDIRECT_URI"]
                if os.getenv("PLAID_ANDROID_PACKAGE_NAME"):
                    plaid_config["android_package_name"] = os.environ[
                        "PLAID_ANDROID_PACKAGE_NAME"
                    ]
                kwargs["plaid"] = PlaidConfig(**plaid_config)

        super().__init__(**kwargs)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Load the profile-specific env file in place of the default .env."""
        init_dict = init_settings.init_kwargs if init_settings else {}
        profile = init_dict.get("profile", "dev")  # type: ignore[reportUnknownMemberType]

        profile_env_file = Path(f".env.{profile}")
        env_file = str(profile_env_file) if profile_env_file.exists() else ".env"

        from pydantic_settings import DotEnvSettingsSource

        custom_dotenv = DotEnvSettingsSource(
            settings_cls,
            env_file=env_file,
            env_file_encoding="utf-8",
        )

        return (
            init_settings,
            env_settings,
            custom_dotenv,
            file_secret_settings,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SPIRITCAT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    def create_directories(self) -> None:
        """Create necessary directories for the application."""
        directories = [self.database.path.parent]
        if self.logging.log_to_file:
            directories.append(self.logging.log_file_path.parent)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def validate_required_credentials(self) -> None:
        """Validate that required credentials are present."""
        errors: list[str] = []

        if not self.plaid.client_id:
            errors.append("PLAID_CLIENT_ID is required")
        if not self.plaid.secret:
            errors.append("PLAID_SECRET is required")

        if errors:
            raise ValueError(f"Missing required configuration: {', '.join(errors)}")


def _check_profile_name(profile: str) -> None:
    if not profile:
        raise ValueError("Profile name cannot be empty")
    if not _PROFILE_PATTERN.match(profile):
        raise ValueError(
            f"Invalid profile: {profile}. "
            "Profile name must contain only alphanumeric characters, dashes, and underscores"
        )


# Settings instances - lazy loaded per profile
_settings_cache: dict[str, SpiritCatSettings] = {}
_current_profile: str = "default"


def get_settings(profile: str | None = None) -> SpiritCatSettings:
    """Get the settings instance for the specified profile.

    Settings are loaded once per profile and cached.

    Args:
        profile: Profile name. Defaults to the current profile.

    Returns:
        SpiritCatSettings: The configuration instance for the profile

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    if profile is None:
        profile = _current_profile

    if profile in _settings_cache:
        return _settings_cache[profile]

    try:
        settings = SpiritCatSettings(profile=profile)
        settings.validate_required_credentials()

        if settings.database.create_dirs:
            settings.create_directories()

        _settings_cache[profile] = settings
        return settings

    except Exception as e:
        raise ValueError(f"Configuration error for profile '{profile}': {e}") from e


def set_current_profile(profile: str) -> None:
    """Set the current active profile.

    Raises:
        ValueError: If profile name contains invalid characters
    """
    global _current_profile

    _check_profile_name(profile)
    _current_profile = profile


def get_current_profile() -> str:
    """Get the current active profile name."""
    return _current_profile


def reload_settings(profile: str | None = None) -> SpiritCatSettings:
    """Reload settings from environment variables.

    Args:
        profile: Profile to reload. If None, reloads current profile.

    Returns:
        SpiritCatSettings: The reloaded configuration instance
    """
    if profile is None:
        profile = _current_profile

    _settings_cache.pop(profile, None)
    return get_settings(profile)


def clear_settings_cache() -> None:
    """Forget every cached settings instance (used by tests)."""
    _settings_cache.clear()


def get_plaid_config() -> PlaidConfig:
    """Get the Plaid configuration for the current profile."""
    return get_settings().plaid


def get_logging_config(profile: str | None = None) -> LoggingSettings:
    """Get the logging section for a profile.

    Unlike ``get_settings`` this does not require Plaid credentials, so logging
    can be set up before commands that create them.
    """
    return SpiritCatSettings(profile=profile or _current_profile).logging


def load_profile_env(profile: str) -> Path | None:
    """Export a profile's env file into ``os.environ`` without overriding it.

    Access tokens and the unprefixed PLAID_* variables are read from the
    process environment, so the CLI loads ``.env.{profile}`` (or ``.env``)
    before anything else runs.

    Returns:
        Path | None: The file that was loaded, if any
    """
    for candidate in (Path(f".env.{profile}"), Path(".env")):
        if candidate.exists():
            load_dotenv(candidate)
            return candidate
    return None
