"""Spirit Cat CLI package.

This package provides the command-line interface for Plaid Link setup,
transaction sync, asset reports and account lookups.
"""

from .main import app, main

__all__ = ["app", "main"]
