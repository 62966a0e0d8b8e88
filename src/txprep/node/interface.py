"""
Abstract interface for node integration.

Defines the two capabilities the preparation pipeline needs from a node:
raw queries and transaction submission.
"""

from abc import ABC, abstractmethod
from typing import Optional

from txprep.config import BroadcastMode
from txprep.types import BroadcastResult


class NodeInterface(ABC):
    """
    Abstract interface for node access.

    This interface defines all node operations needed by the client:
    - Store and application queries (accounts, simulation)
    - Transaction submission

    Implementations must be safe to share between concurrent preparations
    if callers run more than one at a time.
    """

    async def connect(self) -> None:
        """
        Establish connection to the node.

        Raises:
            NodeConnectionError: If connection cannot be established
        """
        pass

    async def disconnect(self) -> None:
        """Close connection to the node."""
        pass

    @abstractmethod
    async def query(self, path: str, data: bytes) -> bytes:
        """
        Run a query against the node's application.

        Args:
            path: Query path, e.g. ``/app/simulate``
            data: Query payload

        Returns:
            Raw response value; empty bytes when the key does not exist

        Raises:
            QueryError: If the query fails
        """
        pass

    @abstractmethod
    async def broadcast(
        self,
        tx_bytes: bytes,
        mode: BroadcastMode = BroadcastMode.SYNC,
    ) -> BroadcastResult:
        """
        Submit a signed transaction to the node.

        Args:
            tx_bytes: Encoded signed transaction
            mode: Broadcast mode

        Returns:
            Acknowledgment from the node. Acceptance does not imply inclusion.

        Raises:
            TransactionSubmitError: If submission fails or the node rejects it
        """
        pass


class QueryError(Exception):
    """Raised when a node query fails."""

    def __init__(self, message: str, path: Optional[str] = None, code: Optional[int] = None):
        super().__init__(message)
        self.path = path
        self.code = code


class NodeConnectionError(QueryError):
    """Raised when connection to node fails."""
    pass


class TransactionSubmitError(Exception):
    """Raised when transaction submission fails."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code
