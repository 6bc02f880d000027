"""Spirit Cat: a thin proxy over the Plaid API.

This package exposes a linked Plaid item to a client application:
- Link token creation and public token exchange
- Cursor-paginated transaction synchronization (``spiritcat.sync``)
- Asset report generation with bounded readiness polling
- Simple account, balance, identity, holdings and liabilities lookups

Access tokens are passed explicitly to every operation; nothing is kept in
process-wide state.
"""

__version__ = "0.1.0"
