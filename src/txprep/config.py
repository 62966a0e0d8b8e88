"""
Configuration management for the transaction preparation client.

Supports configuration via environment variables and .env files.
"""

from enum import Enum
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_GAS_ADJUSTMENT = 1.0


class NetworkType(str, Enum):
    """Networks used for signer address derivation."""
    MAINNET = "mainnet"
    TESTNET = "testnet"


class BroadcastMode(str, Enum):
    """How long the node holds the broadcast call open."""
    SYNC = "sync"       # Return after CheckTx
    ASYNC = "async"     # Return immediately
    COMMIT = "commit"   # Return after the transaction is committed in a block


class ClientConfig(BaseSettings):
    """
    Configuration settings for transaction preparation.

    All settings can be configured via environment variables with the TXPREP_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="TXPREP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Network settings
    network: NetworkType = Field(
        default=NetworkType.TESTNET,
        description="Network used to derive signer addresses"
    )
    chain_id: str = Field(
        default="",
        description="Chain ID the transactions are signed for"
    )

    # Node settings
    node_url: str = Field(
        default="http://localhost:26657",
        description="Tendermint RPC endpoint of the node"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single RPC request"
    )

    # Keybase settings
    keyring_dir: Optional[str] = Field(
        default=None,
        description="Directory holding <name>.skey signing key files"
    )
    from_name: Optional[str] = Field(
        default=None,
        description="Name of the key that signs transactions"
    )

    # Transaction parameters
    gas: int = Field(
        default=0,
        ge=0,
        description="Gas limit; 0 estimates it through simulation"
    )
    gas_adjustment: float = Field(
        default=DEFAULT_GAS_ADJUSTMENT,
        gt=0,
        description="Multiplier applied to the simulated gas estimate"
    )
    fees: str = Field(
        default="",
        description="Fees to pay, e.g. 10stake,1photon"
    )
    memo: str = Field(
        default="",
        description="Memo attached to the transaction"
    )
    account_number: int = Field(
        default=0,
        ge=0,
        description="Signer account number; 0 looks it up on chain"
    )
    sequence: int = Field(
        default=0,
        ge=0,
        description="Signer sequence; 0 looks it up on chain"
    )

    # Flow control
    dry_run: bool = Field(
        default=False,
        description="Estimate gas only; never sign or broadcast"
    )
    generate_only: bool = Field(
        default=False,
        description="Print the unsigned transaction instead of broadcasting"
    )
    broadcast_mode: BroadcastMode = Field(
        default=BroadcastMode.SYNC,
        description="Broadcast mode used when submitting transactions"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )


# Global config instance
_config: Optional[ClientConfig] = None


def get_config() -> ClientConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = ClientConfig()
    return _config


def set_config(config: ClientConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
