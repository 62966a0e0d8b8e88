"""
Chain context - everything a preparation cycle needs besides the builder.

Holds the node capability, the codec, the keybase and the caller's flags,
and exposes the account reads the pipeline performs.
"""

import sys
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, TextIO

import structlog

from txprep.codec import TxCodec
from txprep.config import BroadcastMode, ClientConfig, get_config
from txprep.keys.keybase import Keybase
from txprep.node.interface import NodeInterface
from txprep.types import BaseAccount

logger = structlog.get_logger(__name__)

ACCOUNT_STORE_PATH = "/store/acc/key"


class AccountNotFoundError(Exception):
    """Raised when an address has no account on chain."""

    def __init__(self, address: str):
        super().__init__(
            f"No account with address {address} was found in the state. "
            "Are you sure there has been a transaction involving it?"
        )
        self.address = address


def _stderr() -> TextIO:
    return sys.stderr


@dataclass(frozen=True)
class ChainContext:
    """
    Signer-side context for preparing one transaction.

    A context is owned by one preparation at a time. Like the builder it is
    immutable; ``with_*`` methods return a copy.

    Attributes:
        node: Query and broadcast capability
        codec: Codec shared with the node
        keybase: Keybase resolving ``from_name``
        from_name: Name of the signing key
        dry_run: Estimate gas only; never sign or broadcast
        generate_only: Print the unsigned transaction instead of broadcasting
        gas: Gas requested by the caller; 0 estimates it
        gas_adjustment: Multiplier applied to simulated gas; None defers to the builder
        broadcast_mode: Mode used when submitting
        passphrase_provider: Returns the passphrase for a key name
        output: Operator channel for diagnostics such as the gas estimate
    """

    node: NodeInterface
    codec: TxCodec
    keybase: Keybase
    from_name: str = ""
    dry_run: bool = False
    generate_only: bool = False
    gas: int = 0
    gas_adjustment: Optional[float] = None
    broadcast_mode: BroadcastMode = BroadcastMode.SYNC
    passphrase_provider: Optional[Callable[[str], str]] = None
    output: TextIO = field(default_factory=_stderr)

    @classmethod
    def from_config(
        cls,
        node: NodeInterface,
        codec: TxCodec,
        keybase: Keybase,
        config: Optional[ClientConfig] = None,
        passphrase_provider: Optional[Callable[[str], str]] = None,
        output: Optional[TextIO] = None,
    ) -> "ChainContext":
        """Create a context from client configuration."""
        config = config or get_config()
        return cls(
            node=node,
            codec=codec,
            keybase=keybase,
            from_name=config.from_name or "",
            dry_run=config.dry_run,
            generate_only=config.generate_only,
            gas=config.gas,
            gas_adjustment=config.gas_adjustment,
            broadcast_mode=config.broadcast_mode,
            passphrase_provider=passphrase_provider,
            output=output or sys.stderr,
        )

    def with_from_name(self, from_name: str) -> "ChainContext":
        return replace(self, from_name=from_name)

    def with_dry_run(self, dry_run: bool) -> "ChainContext":
        return replace(self, dry_run=dry_run)

    def with_generate_only(self, generate_only: bool) -> "ChainContext":
        return replace(self, generate_only=generate_only)

    def with_gas(self, gas: int) -> "ChainContext":
        return replace(self, gas=gas)

    def with_gas_adjustment(self, gas_adjustment: Optional[float]) -> "ChainContext":
        return replace(self, gas_adjustment=gas_adjustment)

    def with_output(self, output: TextIO) -> "ChainContext":
        return replace(self, output=output)

    @property
    def gas_set(self) -> bool:
        """Whether the caller supplied an explicit gas limit."""
        return self.gas != 0

    def from_address(self) -> str:
        """
        Resolve the signer name to its address.

        Raises:
            KeyNotFoundError: If the keybase has no such key
            ValueError: If no signer name is set
        """
        if not self.from_name:
            raise ValueError("No signer name set on the context")
        return self.keybase.get(self.from_name).address

    def get_passphrase(self) -> str:
        """Passphrase for the signer; empty when no provider is set."""
        if self.passphrase_provider is None:
            return ""
        return self.passphrase_provider(self.from_name)

    async def query(self, path: str, data: bytes) -> bytes:
        return await self.node.query(path, data)

    async def get_account(self, address: str) -> BaseAccount:
        """
        Fetch an account record.

        Raises:
            AccountNotFoundError: If the account does not exist
            QueryError: If the query fails
            DecodeError: If the record cannot be decoded
        """
        raw = await self.query(ACCOUNT_STORE_PATH, address.encode("utf-8"))
        if not raw:
            raise AccountNotFoundError(address)
        return self.codec.decode_account(raw)

    async def get_account_number(self, address: str) -> int:
        account = await self.get_account(address)
        return account.account_number

    async def get_account_sequence(self, address: str) -> int:
        account = await self.get_account(address)
        return account.sequence

    async def ensure_account_exists(self, address: str) -> None:
        """
        Check that an account exists on chain.

        Raises:
            AccountNotFoundError: If it does not
        """
        raw = await self.query(ACCOUNT_STORE_PATH, address.encode("utf-8"))
        if not raw:
            logger.warning("account_not_found", address=address)
            raise AccountNotFoundError(address)
