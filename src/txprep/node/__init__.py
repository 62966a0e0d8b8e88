"""
Node Integration Layer.

Provides abstracted access to node queries and transaction submission.
"""

from txprep.node.interface import (
    NodeConnectionError,
    NodeInterface,
    QueryError,
    TransactionSubmitError,
)
from txprep.node.rpc import TendermintRPCAdapter

__all__ = [
    "NodeInterface",
    "TendermintRPCAdapter",
    "NodeConnectionError",
    "QueryError",
    "TransactionSubmitError",
]
