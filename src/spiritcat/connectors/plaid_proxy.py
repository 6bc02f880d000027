"""Plaid API proxy built on the Plaid Python SDK.

Each operation takes the access token it acts on as an argument; the proxy
keeps no per-user state. Transaction sync drains ``/transactions/sync`` with
``PaginatedSyncRunner`` and asset reports are awaited with ``PollingRetrier``.
Everything else is a single request/response pass-through.
"""

import base64
import json
import logging
import threading
from datetime import date, timedelta
from typing import Any

from plaid.api import plaid_api
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.exceptions import ApiException
from plaid.model.accounts_balance_get_request import AccountsBalanceGetRequest
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.asset_report_create_request import AssetReportCreateRequest
from plaid.model.asset_report_create_request_options import (
    AssetReportCreateRequestOptions,
)
from plaid.model.asset_report_get_request import AssetReportGetRequest
from plaid.model.asset_report_pdf_get_request import AssetReportPDFGetRequest
from plaid.model.auth_get_request import AuthGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.identity_get_request import IdentityGetRequest
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.investments_holdings_get_request import InvestmentsHoldingsGetRequest
from plaid.model.investments_transactions_get_request import (
    InvestmentsTransactionsGetRequest,
)
from plaid.model.item_get_request import ItemGetRequest
from plaid.model.item_public_token_exchange_request import (
    ItemPublicTokenExchangeRequest,
)
from plaid.model.liabilities_get_request import LiabilitiesGetRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from plaid.model.transactions_sync_request import TransactionsSyncRequest

from ..config import PlaidConfig, ReportsConfig
from ..schemas import (
    AccountSchema,
    PlaidEnvironment,
    RemovedTransactionSchema,
    TransactionSchema,
)
from ..sync import (
    START_CURSOR,
    AttemptFailure,
    FetchFailure,
    Page,
    PaginatedSyncRunner,
    PollingRetrier,
    SyncCursor,
    SyncResult,
    dedupe_by,
    is_start,
    latest_by,
)

logger = logging.getLogger(__name__)

PLAID_API_VERSION = "2020-09-14"

TransactionSyncResult = SyncResult[TransactionSchema, RemovedTransactionSchema]
TransactionPage = Page[TransactionSchema, RemovedTransactionSchema]


def build_plaid_client(config: PlaidConfig) -> Any:
    """Create a ``PlaidApi`` client for the configured environment.

    Raises:
        ValueError: If credentials are missing
    """
    if not config.client_id or not config.secret:
        raise ValueError("PLAID_CLIENT_ID and PLAID_SECRET are required")

    configuration = Configuration(
        host=PlaidEnvironment(config.environment).host,
        api_key={
            "clientId": config.client_id,
            "secret": config.secret,
            "plaidVersion": PLAID_API_VERSION,
        },
    )
    api_client = ApiClient(configuration)
    # Type as Any to avoid pyright partial-unknowns from the SDK stubs
    client: Any = plaid_api.PlaidApi(api_client)
    logger.debug(f"Initialized Plaid client for {config.environment} environment")
    return client


def parse_plaid_error(exc: ApiException) -> dict[str, Any]:
    """Decode the JSON error body Plaid attaches to failed requests."""
    body = getattr(exc, "body", None)
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str) and body:
        try:
            details = json.loads(body)
        except ValueError:
            return {"error_message": body}
        if isinstance(details, dict):
            return details
    return {"error_message": str(getattr(exc, "reason", None) or exc)}


def format_plaid_error(exc: ApiException) -> dict[str, Any]:
    """Shape a Plaid failure as the ``{"error": {...}}`` payload clients expect."""
    details = parse_plaid_error(exc)
    return {"error": {**details, "status_code": getattr(exc, "status", None)}}


def _describe(exc: ApiException) -> str:
    details = parse_plaid_error(exc)
    code = details.get("error_code")
    message = details.get("error_message") or str(exc)
    return f"{code}: {message}" if code else str(message)


def _to_dict(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return obj


class PlaidProxy:
    """Relays Plaid operations for explicitly supplied access tokens."""

    def __init__(
        self,
        client: Any,
        config: PlaidConfig,
        reports: ReportsConfig | None = None,
        runner: PaginatedSyncRunner | None = None,
        retrier: PollingRetrier | None = None,
    ):
        """Initialize the proxy.

        Args:
            client: A ``PlaidApi`` instance (see ``build_plaid_client``)
            config: Plaid products, countries and Link options
            reports: Asset report settings; defaults apply when omitted
            runner: Changefeed runner for transaction sync
            retrier: Readiness poller for asset reports. Built from ``reports``
                when omitted, retrying only on failed ``/asset_report/get`` calls.
        """
        self.client = client
        self.config = config
        self.reports = reports or ReportsConfig()
        self.runner = runner or PaginatedSyncRunner()
        self.retrier = retrier or PollingRetrier(
            delay=self.reports.poll_delay,
            max_attempts=self.reports.poll_max_attempts,
            retry_on=(AttemptFailure,),
        )

    # ------------------------------------------------------------------
    # Link
    # ------------------------------------------------------------------

    def info(self) -> dict[str, Any]:
        """Products this deployment initializes Link with."""
        return {"products": list(self.config.products)}

    def create_link_token(self, client_user_id: str) -> dict[str, Any]:
        """Create a Link token for initializing Plaid Link client-side.

        Args:
            client_user_id: Stable identifier for the end user
        """
        request = LinkTokenCreateRequest(
            user=LinkTokenCreateRequestUser(client_user_id=str(client_user_id)),
            client_name=self.config.client_name,
            products=[Products(p) for p in self.config.products],
            country_codes=[CountryCode(c) for c in self.config.country_codes],
            language="en",
        )
        if self.config.redirect_uri:
            request["redirect_uri"] = self.config.redirect_uri
        if self.config.android_package_name:
            request["android_package_name"] = self.config.android_package_name

        response = self.client.link_token_create(request)
        logger.info("Created Link token")
        return _to_dict(response)

    def exchange_public_token(self, public_token: str) -> dict[str, str]:
        """Exchange a Link ``public_token`` for a long-lived access token."""
        response = self.client.item_public_token_exchange(
            ItemPublicTokenExchangeRequest(public_token=public_token)
        )
        access_token = getattr(response, "access_token", None)
        item_id = getattr(response, "item_id", None)
        if not isinstance(access_token, str) or not access_token:
            raise RuntimeError("Failed to exchange public token for access token")
        logger.info(f"Exchanged public token for item {item_id}")
        return {"access_token": access_token, "item_id": str(item_id)}

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def fetch_transactions_page(
        self, access_token: str, cursor: SyncCursor
    ) -> TransactionPage:
        """Fetch one ``/transactions/sync`` page starting at ``cursor``.

        Raises:
            FetchFailure: If Plaid rejects the request
        """
        if is_start(cursor):
            request = TransactionsSyncRequest(access_token=access_token)
        else:
            request = TransactionsSyncRequest(access_token=access_token, cursor=cursor)

        try:
            response: Any = self.client.transactions_sync(request)
        except ApiException as exc:
            raise FetchFailure(_describe(exc), cursor=cursor) from exc

        page: TransactionPage = Page(
            added=tuple(
                TransactionSchema.model_validate(t)
                for t in getattr(response, "added", None) or []
            ),
            modified=tuple(
                TransactionSchema.model_validate(t)
                for t in getattr(response, "modified", None) or []
            ),
            removed=tuple(
                RemovedTransactionSchema.model_validate(r)
                for r in getattr(response, "removed", None) or []
            ),
            has_more=bool(getattr(response, "has_more", False)),
            next_cursor=str(getattr(response, "next_cursor", None) or ""),
        )
        logger.debug(
            f"Fetched page: +{len(page.added)} ~{len(page.modified)} "
            f"-{len(page.removed)} has_more={page.has_more}"
        )
        return page

    def sync_transactions(
        self,
        access_token: str,
        cursor: SyncCursor = START_CURSOR,
        cancel: threading.Event | None = None,
    ) -> TransactionSyncResult:
        """Drain the transaction changefeed from ``cursor`` to the present.

        Raises:
            SyncAborted: If any page fails; nothing partial is returned
            Cancelled: If ``cancel`` is set mid-sync
        """
        mode = "full" if is_start(cursor) else "incremental"
        logger.info(f"Starting {mode} transaction sync")

        result = self.runner.sync(
            lambda c: self.fetch_transactions_page(access_token, c),
            cursor=cursor,
            cancel=cancel,
        )

        logger.info(
            f"Transaction sync complete: {result.pages} page(s), "
            f"{len(result.added)} added, {len(result.modified)} modified, "
            f"{len(result.removed)} removed"
        )
        return result

    def latest_transactions(
        self,
        access_token: str,
        limit: int = 8,
        dedupe: bool = False,
        cancel: threading.Event | None = None,
    ) -> list[TransactionSchema]:
        """Return the ``limit`` most recent added transactions, oldest first.

        Args:
            access_token: Item to read
            limit: How many transactions to keep
            dedupe: Collapse transactions Plaid reported more than once
            cancel: Optional cancellation event
        """
        result = self.sync_transactions(access_token, cancel=cancel)
        added: list[TransactionSchema] = list(result.added)
        if dedupe:
            added = dedupe_by(added, key=lambda t: t.transaction_id)
        return latest_by(added, key=lambda t: t.transaction_date, limit=limit)

    def investments_transactions(
        self, access_token: str, days: int = 30, today: date | None = None
    ) -> dict[str, Any]:
        """Investment transactions over the last ``days`` days."""
        end_date = today or date.today()
        start_date = end_date - timedelta(days=days)
        response = self.client.investments_transactions_get(
            InvestmentsTransactionsGetRequest(
                access_token=access_token,
                start_date=start_date,
                end_date=end_date,
            )
        )
        return {"error": None, "investments_transactions": _to_dict(response)}

    # ------------------------------------------------------------------
    # Asset reports
    # ------------------------------------------------------------------

    def create_asset_report(
        self, access_token: str, days_requested: int | None = None
    ) -> str:
        """Request an asset report and return its token.

        The report is generated asynchronously; use ``get_asset_report`` to wait
        for it.
        """
        days = days_requested or self.reports.days_requested
        request = AssetReportCreateRequest(
            access_tokens=[access_token],
            days_requested=days,
            options=AssetReportCreateRequestOptions(
                client_report_id=self.reports.client_report_id,
            ),
        )
        response: Any = self.client.asset_report_create(request)
        token = getattr(response, "asset_report_token", None)
        if not isinstance(token, str) or not token:
            raise RuntimeError("Plaid did not return an asset report token")
        logger.info(f"Requested asset report covering {days} day(s)")
        return token

    def get_asset_report(
        self, asset_report_token: str, cancel: threading.Event | None = None
    ) -> dict[str, Any]:
        """Poll ``/asset_report/get`` until the report is ready.

        Raises:
            RetriesExhausted: If the report is still unavailable after the
                configured number of attempts
            Cancelled: If ``cancel`` is set while waiting
        """
        request = AssetReportGetRequest(asset_report_token=asset_report_token)

        def attempt() -> Any:
            try:
                return self.client.asset_report_get(request)
            except ApiException as exc:
                logger.debug(f"Asset report not ready: {_describe(exc)}")
                raise AttemptFailure(_describe(exc)) from exc

        response = self.retrier.poll_until_ready(attempt, cancel=cancel)
        return _to_dict(getattr(response, "report", response))

    def get_asset_report_pdf(self, asset_report_token: str) -> bytes:
        """Download the PDF rendering of a finished asset report."""
        response: Any = self.client.asset_report_pdf_get(
            AssetReportPDFGetRequest(asset_report_token=asset_report_token)
        )
        if isinstance(response, (bytes, bytearray)):
            return bytes(response)
        return response.read()

    def asset_report(
        self,
        access_token: str,
        days_requested: int | None = None,
        cancel: threading.Event | None = None,
    ) -> dict[str, Any]:
        """Create an asset report, wait for it, and fetch its PDF.

        Returns:
            dict: ``{"json": <report>, "pdf": <base64 PDF>}``
        """
        token = self.create_asset_report(access_token, days_requested)
        report = self.get_asset_report(token, cancel=cancel)
        pdf = self.get_asset_report_pdf(token)
        logger.info(f"Asset report ready ({len(pdf)} byte PDF)")
        return {"json": report, "pdf": base64.b64encode(pdf).decode("ascii")}

    # ------------------------------------------------------------------
    # Single request/response lookups
    # ------------------------------------------------------------------

    def accounts(self, access_token: str) -> list[AccountSchema]:
        """Accounts of an item, validated."""
        response: Any = self.client.accounts_get(
            AccountsGetRequest(access_token=access_token)
        )
        return [
            AccountSchema.model_validate(a) for a in getattr(response, "accounts", [])
        ]

    def balance(self, access_token: str) -> dict[str, Any]:
        """Real-time balances for each of an item's accounts."""
        response = self.client.accounts_balance_get(
            AccountsBalanceGetRequest(access_token=access_token)
        )
        return _to_dict(response)

    def auth(self, access_token: str) -> dict[str, Any]:
        """Account and routing numbers for an item's depository accounts."""
        response = self.client.auth_get(AuthGetRequest(access_token=access_token))
        return _to_dict(response)

    def identity(self, access_token: str) -> dict[str, Any]:
        """Account owner identity information."""
        response: Any = self.client.identity_get(
            IdentityGetRequest(access_token=access_token)
        )
        return {"identity": _to_dict(response).get("accounts", [])}

    def holdings(self, access_token: str) -> dict[str, Any]:
        """Investment holdings of an item."""
        response = self.client.investments_holdings_get(
            InvestmentsHoldingsGetRequest(access_token=access_token)
        )
        return {"error": None, "holdings": _to_dict(response)}

    def liabilities(self, access_token: str) -> dict[str, Any]:
        """Liabilities (credit, student loan, mortgage) of an item."""
        response = self.client.liabilities_get(
            LiabilitiesGetRequest(access_token=access_token)
        )
        return {"error": None, "liabilities": _to_dict(response)}

    def item(self, access_token: str) -> dict[str, Any]:
        """Item metadata together with its institution."""
        item_response: Any = self.client.item_get(
            ItemGetRequest(access_token=access_token)
        )
        item = _to_dict(item_response).get("item", {})
        institution_response = self.client.institutions_get_by_id(
            InstitutionsGetByIdRequest(
                institution_id=item.get("institution_id"),
                country_codes=[CountryCode(c) for c in self.config.country_codes],
            )
        )
        return {
            "item": item,
            "institution": _to_dict(institution_response).get("institution"),
        }


def proxy_from_settings(settings: Any) -> PlaidProxy:
    """Build a ``PlaidProxy`` from loaded ``SpiritCatSettings``."""
    client = build_plaid_client(settings.plaid)
    return PlaidProxy(client, settings.plaid, reports=settings.reports)
