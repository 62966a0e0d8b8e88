"""
Gas estimation through node-side simulation.

The node executes a candidate transaction on the ``/app/simulate`` query path
without committing it and reports the gas consumed. The estimate is then
scaled by the gas adjustment to leave headroom.
"""

import math
from typing import Awaitable, Callable, Sequence, Tuple

import structlog

from txprep.client.context import ChainContext
from txprep.codec import TxCodec
from txprep.node.interface import QueryError
from txprep.tx.builder import TxBuilder
from txprep.types import Msg

logger = structlog.get_logger(__name__)

SIMULATE_PATH = "/app/simulate"

QueryFunc = Callable[[str, bytes], Awaitable[bytes]]


class SimulationError(QueryError):
    """Raised when the simulation query fails."""
    pass


def adjust_gas_estimate(estimate: int, adjustment: float) -> int:
    """Scale a raw gas estimate, rounding down."""
    return int(math.floor(adjustment * float(estimate)))


def parse_query_response(codec: TxCodec, raw: bytes) -> int:
    """
    Extract the gas used from a raw simulation response.

    Raises:
        DecodeError: If the response cannot be decoded
    """
    return codec.decode_result(raw).gas_used


async def calculate_gas(
    query_func: QueryFunc,
    codec: TxCodec,
    tx_bytes: bytes,
    adjustment: float,
) -> Tuple[int, int]:
    """
    Simulate a transaction and return its gas estimate.

    Args:
        query_func: Query capability of the node
        codec: Codec for the simulation response
        tx_bytes: Encoded candidate transaction
        adjustment: Multiplier applied to the estimate

    Returns:
        (estimated gas, adjusted gas)

    Raises:
        SimulationError: If the simulation query fails
        DecodeError: If the response cannot be decoded
    """
    try:
        raw = await query_func(SIMULATE_PATH, tx_bytes)
    except QueryError as e:
        logger.error("simulation_failed", error=str(e))
        raise SimulationError(f"Gas simulation failed: {e}", path=SIMULATE_PATH) from e

    estimate = parse_query_response(codec, raw)
    adjusted = adjust_gas_estimate(estimate, adjustment)

    logger.debug("gas_simulated", estimate=estimate, adjusted=adjusted, adjustment=adjustment)
    return estimate, adjusted


async def simulate_msgs(
    tx_builder: TxBuilder,
    ctx: ChainContext,
    name: str,
    msgs: Sequence[Msg],
    gas: int = 0,
) -> Tuple[int, int]:
    """
    Simulate a set of messages signed by ``name``.

    The candidate carries the signer's public key but no signature. The
    context's gas adjustment applies; the builder's is used when the context
    has none.

    Returns:
        (estimated gas, adjusted gas)
    """
    adjustment = ctx.gas_adjustment
    if adjustment is None:
        adjustment = tx_builder.gas_adjustment

    tx_bytes = tx_builder.with_gas(gas).build_with_pubkey(name, msgs)
    return await calculate_gas(ctx.query, ctx.codec, tx_bytes, adjustment)


async def enrich_with_gas(
    tx_builder: TxBuilder,
    ctx: ChainContext,
    name: str,
    msgs: Sequence[Msg],
) -> TxBuilder:
    """Return a builder whose gas is the adjusted simulation estimate."""
    _, adjusted = await simulate_msgs(tx_builder, ctx, name, msgs, gas=0)
    return tx_builder.with_gas(adjusted)
