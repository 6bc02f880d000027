"""Pydantic schemas for the Plaid payloads Spirit Cat relays.

Plaid SDK model objects, plain dicts and attribute-style objects are all
accepted; SDK objects are converted with their ``to_dict()`` first so that
optional fields the SDK leaves unset validate as ``None``.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PlaidEnvironment(Enum):
    """Plaid API environment options."""

    SANDBOX = "sandbox"
    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @property
    def host(self) -> str:
        """Base URL of the Plaid API for this environment."""
        return f"https://{self.value}.plaid.com"


class PlaidCredentials(BaseModel):
    """Secure credential management for Plaid API access."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., description="Plaid client ID")
    secret: str = Field(..., description="Plaid secret key")
    environment: str = Field(default="sandbox", description="Plaid environment")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate Plaid environment setting."""
        valid_envs = [e.value for e in PlaidEnvironment]
        if v not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}")
        return v


def _enum_to_str(v: Any) -> Any:
    if v is None:
        return None
    if isinstance(v, Enum):
        return v.value
    # Plaid SDK string enums wrap their value
    value = getattr(v, "value", None)
    if isinstance(value, str):
        return value
    return str(v)


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",
        use_enum_values=True,
        str_strip_whitespace=True,
        from_attributes=True,
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def unwrap_sdk_model(cls, data: Any) -> Any:
        """Convert Plaid SDK model objects to dicts before validation."""
        to_dict = getattr(data, "to_dict", None)
        if not isinstance(data, dict) and callable(to_dict):
            return to_dict()
        return data


class LocationSchema(BaseSchema):
    """Schema for transaction location data."""

    address: str | None = None
    city: str | None = None
    region: str | None = None
    postal_code: str | None = None
    country: str | None = None
    lat: float | None = Field(None, ge=-90, le=90)
    lon: float | None = Field(None, ge=-180, le=180)
    store_number: str | None = None


class BalanceSchema(BaseSchema):
    """Schema for account balance information."""

    available: float | None = Field(None, description="Available balance")
    current: float | None = Field(None, description="Current balance")
    limit: float | None = Field(None, description="Credit limit or overdraft limit")
    iso_currency_code: str | None = Field(None, max_length=3)
    unofficial_currency_code: str | None = None
    last_updated_datetime: datetime | None = None


class AccountSchema(BaseSchema):
    """Schema for Plaid account data."""

    account_id: str = Field(..., description="Plaid account ID")
    balances: BalanceSchema
    mask: str | None = Field(None, max_length=4)
    name: str = Field(..., description="Account name")
    official_name: str | None = None
    persistent_account_id: str | None = None
    subtype: str | None = None
    type: str
    verification_status: str | None = None

    @field_validator("type", "subtype", "verification_status", mode="before")
    @classmethod
    def coerce_account_enums(cls, v: Any) -> Any:
        """Accept Plaid SDK enums or strings and convert to string."""
        return _enum_to_str(v)


class TransactionSchema(BaseSchema):
    """Schema for a transaction reported as added or modified."""

    transaction_id: str = Field(..., description="Plaid transaction ID")
    account_id: str = Field(..., description="Associated account ID")
    amount: Decimal = Field(..., description="Transaction amount")
    iso_currency_code: str | None = Field(None, max_length=3)
    unofficial_currency_code: str | None = None

    transaction_date: date = Field(..., description="Transaction date", alias="date")
    authorized_date: date | None = None
    authorized_datetime: datetime | None = None
    transaction_datetime: datetime | None = Field(None, alias="datetime")

    name: str | None = None
    merchant_name: str | None = None
    original_description: str | None = None
    account_owner: str | None = None

    category: list[str] = Field(default_factory=list)
    category_id: str | None = None
    personal_finance_category: dict[str, Any] | None = None

    payment_channel: str | None = None
    transaction_type: str | None = None
    transaction_code: str | None = None

    location: LocationSchema | None = None

    pending: bool = False
    pending_transaction_id: str | None = None

    website: str | None = None
    logo_url: str | None = None

    @field_validator(
        "payment_channel", "transaction_type", "transaction_code", mode="before"
    )
    @classmethod
    def coerce_transaction_enums(cls, v: Any) -> Any:
        """Coerce Plaid SDK enums for transaction fields into strings."""
        return _enum_to_str(v)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> Any:
        """Ensure category is a list of strings; Plaid may return None."""
        if v is None:
            return []
        if isinstance(v, list):
            items = cast(list[object], v)
            return [str(x) for x in items]
        return [str(v)]

    @field_validator("personal_finance_category", mode="before")
    @classmethod
    def coerce_personal_finance_category(cls, v: Any) -> Any:
        """Convert Plaid SDK PersonalFinanceCategory objects into dicts."""
        if v is None or isinstance(v, dict):
            return v
        to_dict = getattr(v, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        return None

    def to_row(self) -> dict[str, Any]:
        """Flatten into a JSON-friendly dict keyed by Plaid field names."""
        return self.model_dump(mode="json", by_alias=True)


class RemovedTransactionSchema(BaseSchema):
    """Reference to a transaction the provider has deleted."""

    transaction_id: str = Field(..., description="Plaid transaction ID")
    account_id: str | None = Field(None, description="Associated account ID")
