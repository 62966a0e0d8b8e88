"""
txprep

Client-side transaction preparation: resolves the signer's account, estimates
gas through node-side simulation, builds and signs the transaction envelope,
and submits it to a node.
"""

__version__ = "0.1.0"

from txprep.client.context import AccountNotFoundError, ChainContext
from txprep.codec import DecodeError, TxCodec
from txprep.tx.assembler import (
    build_unsigned_std_tx,
    complete_and_broadcast_tx,
    print_unsigned_std_tx,
    send_tx,
)
from txprep.tx.builder import TransactionBuildError, TxBuilder
from txprep.types import StdFee, StdTx

__all__ = [
    "ChainContext",
    "AccountNotFoundError",
    "TxCodec",
    "DecodeError",
    "TxBuilder",
    "TransactionBuildError",
    "StdTx",
    "StdFee",
    "build_unsigned_std_tx",
    "print_unsigned_std_tx",
    "complete_and_broadcast_tx",
    "send_tx",
]
