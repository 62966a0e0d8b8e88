"""
Client context.

Signer-side state shared by the steps of one transaction preparation.
"""

from txprep.client.context import ACCOUNT_STORE_PATH, AccountNotFoundError, ChainContext

__all__ = [
    "ChainContext",
    "AccountNotFoundError",
    "ACCOUNT_STORE_PATH",
]
