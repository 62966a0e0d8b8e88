"""
Transaction module.

Handles transaction construction, gas estimation, signing, and submission.
"""

from txprep.tx.account import prepare_tx_builder
from txprep.tx.assembler import (
    build_unsigned_std_tx,
    complete_and_broadcast_tx,
    print_unsigned_std_tx,
    send_tx,
)
from txprep.tx.broadcast import broadcast_tx
from txprep.tx.builder import TransactionBuildError, TxBuilder
from txprep.tx.gas import (
    SIMULATE_PATH,
    SimulationError,
    adjust_gas_estimate,
    calculate_gas,
    enrich_with_gas,
    simulate_msgs,
)

__all__ = [
    "TxBuilder",
    "TransactionBuildError",
    "prepare_tx_builder",
    "SIMULATE_PATH",
    "SimulationError",
    "adjust_gas_estimate",
    "calculate_gas",
    "simulate_msgs",
    "enrich_with_gas",
    "build_unsigned_std_tx",
    "print_unsigned_std_tx",
    "complete_and_broadcast_tx",
    "send_tx",
    "broadcast_tx",
]
