"""
Tendermint RPC adapter for node integration.

Provides node access via Tendermint's JSON-RPC over HTTP.
"""

import base64
import uuid
from typing import Any, Optional

import httpx
import structlog

from txprep.config import BroadcastMode, ClientConfig, get_config
from txprep.node.interface import (
    NodeConnectionError,
    NodeInterface,
    QueryError,
    TransactionSubmitError,
)
from txprep.types import BroadcastResult

logger = structlog.get_logger(__name__)

_BROADCAST_METHODS = {
    BroadcastMode.SYNC: "broadcast_tx_sync",
    BroadcastMode.ASYNC: "broadcast_tx_async",
    BroadcastMode.COMMIT: "broadcast_tx_commit",
}


class TendermintRPCAdapter(NodeInterface):
    """
    Tendermint RPC adapter.

    Implements the NodeInterface using ``abci_query`` and the
    ``broadcast_tx_*`` JSON-RPC methods. Each call is a single attempt; the
    HTTP client's timeout is the only time limit.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the RPC adapter.

        Args:
            config: Client configuration. Uses global config if not provided.
            transport: Custom httpx transport (used by tests)
        """
        self.config = config or get_config()
        self.base_url = self.config.node_url
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        """Establish connection (create HTTP client)."""
        if self._client is not None:
            return

        client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.config.request_timeout_seconds,
            transport=self._transport,
        )

        # Test connection
        try:
            response = await client.get("/health")
        except httpx.RequestError as e:
            await client.aclose()
            raise NodeConnectionError(f"Failed to connect to node: {e}") from e

        if response.status_code != 200:
            await client.aclose()
            raise NodeConnectionError(f"Node health check failed: {response.text}")

        self._client = client
        logger.info("node_connected", base_url=self.base_url)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("node_disconnected")

    async def _rpc(self, method: str, params: dict) -> Any:
        """Send a JSON-RPC request and return its result."""
        if not self._client:
            await self.connect()

        request = {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params,
        }

        try:
            response = await self._client.post("/", json=request)
        except httpx.RequestError as e:
            logger.error("rpc_request_error", method=method, error=str(e))
            raise QueryError(f"RPC request {method} failed: {e}", path=method) from e

        if response.status_code != 200:
            logger.error(
                "rpc_request_failed",
                method=method,
                status=response.status_code,
                error=response.text,
            )
            raise QueryError(f"RPC error: {response.text}", path=method)

        try:
            data = response.json()
        except ValueError as e:
            logger.error("rpc_response_invalid", method=method, error=str(e))
            raise QueryError(f"RPC {method} returned invalid JSON: {e}", path=method) from e

        if not isinstance(data, dict):
            raise QueryError(f"RPC {method} returned an unexpected body: {data!r}", path=method)

        if data.get("error"):
            error = data["error"]
            message = error.get("data") or error.get("message", "Unknown error")
            raise QueryError(f"RPC {method} returned error: {message}", path=method)

        return data.get("result") or {}

    async def query(self, path: str, data: bytes) -> bytes:
        """Run an ABCI query."""
        result = await self._rpc(
            "abci_query",
            {"path": path, "data": data.hex(), "prove": False},
        )

        response = result.get("response") or {}
        code = int(response.get("code") or 0)
        if code != 0:
            log = response.get("log") or f"query failed with code {code}"
            logger.debug("abci_query_failed", path=path, code=code, log=log)
            raise QueryError(log, path=path, code=code)

        value = response.get("value")
        if not value:
            return b""

        try:
            return base64.b64decode(value, validate=True)
        except ValueError as e:
            raise QueryError(f"Query {path} returned an undecodable value: {e}", path=path) from e

    async def broadcast(
        self,
        tx_bytes: bytes,
        mode: BroadcastMode = BroadcastMode.SYNC,
    ) -> BroadcastResult:
        """Submit a signed transaction."""
        method = _BROADCAST_METHODS[mode]

        try:
            result = await self._rpc(
                method,
                {"tx": base64.b64encode(tx_bytes).decode("ascii")},
            )
        except QueryError as e:
            raise TransactionSubmitError(f"Transaction submission failed: {e}") from e

        if mode == BroadcastMode.COMMIT:
            check_tx = result.get("check_tx") or {}
            deliver_tx = result.get("deliver_tx") or result.get("tx_result") or {}
            failed = check_tx if int(check_tx.get("code") or 0) != 0 else deliver_tx
        else:
            failed = result

        code = int(failed.get("code") or 0)
        log = failed.get("log") or ""
        if code != 0:
            logger.error("tx_rejected", method=method, code=code, log=log)
            raise TransactionSubmitError(
                f"Transaction rejected by node: {log}",
                error_code=str(code),
            )

        ack = BroadcastResult(
            tx_hash=result.get("hash", ""),
            code=code,
            log=log,
            height=int(result.get("height") or 0),
        )
        logger.info("tx_submitted", tx_hash=ack.tx_hash, mode=mode.value)
        return ack
