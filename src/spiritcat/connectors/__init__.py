"""Connectors to external financial data providers.

``plaid_proxy`` relays Plaid operations and composes the generic sync and
polling loops with the concrete Plaid endpoints.
"""

from .plaid_proxy import (
    PlaidProxy,
    build_plaid_client,
    format_plaid_error,
    proxy_from_settings,
)

__all__ = ["PlaidProxy", "build_plaid_client", "format_plaid_error", "proxy_from_settings"]
