"""
Transaction data model.

Value types shared by the builder, the codec and the preparation pipeline.
All of them are frozen; a prepared transaction is never mutated after it is
created.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional, Tuple


# Messages are caller-supplied dataclasses registered with the codec.
# The pipeline never looks inside them.
Msg = Any

_COIN_PATTERN = re.compile(r"^([0-9]+)([a-z][a-z0-9/]{2,31})$")


@dataclass(frozen=True)
class Coin:
    """An amount of a single denomination."""
    denom: str
    amount: int

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


def parse_coins(coins: str) -> Tuple[Coin, ...]:
    """
    Parse a comma separated coin list such as ``10stake,1photon``.

    Args:
        coins: Coin list; an empty string yields no coins

    Returns:
        Coins sorted by denomination

    Raises:
        ValueError: If an entry is malformed or a denomination repeats
    """
    coins = coins.strip()
    if not coins:
        return ()

    parsed = []
    for entry in coins.split(","):
        match = _COIN_PATTERN.match(entry.strip())
        if not match:
            raise ValueError(f"Invalid coin expression: {entry!r}")
        parsed.append(Coin(denom=match.group(2), amount=int(match.group(1))))

    parsed.sort(key=lambda c: c.denom)
    denoms = [c.denom for c in parsed]
    if len(set(denoms)) != len(denoms):
        raise ValueError(f"Duplicate denomination in {coins!r}")

    return tuple(parsed)


@dataclass(frozen=True)
class StdFee:
    """Fee paid for a transaction and the gas limit it buys."""
    amount: Tuple[Coin, ...] = ()
    gas: int = 0


@dataclass(frozen=True)
class StdSignature:
    """
    Signature over the sign bytes of a transaction.

    A signature with an empty ``signature`` only carries the public key. Such
    entries are used for simulation, where the node needs the key to charge
    verification gas but nothing is actually signed.
    """
    pub_key: bytes
    signature: bytes = b""


@dataclass(frozen=True)
class StdSignMsg:
    """Everything a signer commits to."""
    chain_id: str
    account_number: int
    sequence: int
    fee: StdFee
    msgs: Tuple[Msg, ...]
    memo: str = ""


@dataclass(frozen=True)
class StdTx:
    """
    The canonical transaction envelope submitted to a node.

    Attributes:
        msgs: State-change messages, in order
        fee: Fee and gas limit
        signatures: Signatures, or an empty tuple for an unsigned transaction
        memo: Free-form memo
    """
    msgs: Tuple[Msg, ...]
    fee: StdFee
    signatures: Tuple[StdSignature, ...] = ()
    memo: str = ""

    @property
    def is_signed(self) -> bool:
        return any(sig.signature for sig in self.signatures)


@dataclass(frozen=True)
class SimulationResult:
    """Decoded response of a simulation query."""
    gas_used: int


@dataclass(frozen=True)
class BaseAccount:
    """On-chain account record as returned by the account store."""
    address: str
    account_number: int = 0
    sequence: int = 0
    coins: Tuple[Coin, ...] = ()
    pub_key: Optional[bytes] = None


@dataclass(frozen=True)
class BroadcastResult:
    """Acknowledgment returned by the node for a submitted transaction."""
    tx_hash: str
    code: int = 0
    log: str = ""
    height: int = 0

    @property
    def is_ok(self) -> bool:
        return self.code == 0

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "tx_hash": self.tx_hash,
            "code": self.code,
            "log": self.log,
            "height": self.height,
        }
