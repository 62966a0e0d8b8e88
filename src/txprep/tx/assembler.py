"""
Transaction assembly - the full preparation flow.

Resolves the signer's account, estimates gas when needed, then either
returns an unsigned transaction or signs and broadcasts it. Every step runs
only after the previous one succeeded; the first error ends the flow.
"""

import sys
from typing import Optional, Sequence, TextIO, Union

import structlog

from txprep.client.context import ChainContext
from txprep.tx.account import prepare_tx_builder
from txprep.tx.broadcast import broadcast_tx
from txprep.tx.builder import TxBuilder
from txprep.tx.gas import enrich_with_gas
from txprep.types import BroadcastResult, Msg, StdTx

logger = structlog.get_logger(__name__)


def report_gas_estimate(ctx: ChainContext, gas: int) -> None:
    """Tell the operator which gas limit estimation produced."""
    ctx.output.write(f"estimated gas = {gas}\n")
    logger.info("gas_estimated", gas=gas, signer=ctx.from_name)


async def build_unsigned_std_tx(
    tx_builder: TxBuilder,
    ctx: ChainContext,
    msgs: Sequence[Msg],
) -> StdTx:
    """
    Build an unsigned transaction.

    Gas is estimated when the builder has none.

    Returns:
        Transaction with no signatures
    """
    tx_builder = await prepare_tx_builder(tx_builder, ctx)

    if tx_builder.gas == 0:
        tx_builder = await enrich_with_gas(tx_builder, ctx, ctx.from_name, msgs)
        report_gas_estimate(ctx, tx_builder.gas)

    sign_msg = tx_builder.build(msgs)
    return StdTx(msgs=sign_msg.msgs, fee=sign_msg.fee, signatures=(), memo=sign_msg.memo)


async def print_unsigned_std_tx(
    tx_builder: TxBuilder,
    ctx: ChainContext,
    msgs: Sequence[Msg],
    out: Optional[TextIO] = None,
) -> StdTx:
    """Build an unsigned transaction and write it as JSON to ``out`` (stdout by default)."""
    std_tx = await build_unsigned_std_tx(tx_builder, ctx, msgs)
    out = out or sys.stdout
    out.write(ctx.codec.marshal_json(std_tx) + "\n")
    return std_tx


async def complete_and_broadcast_tx(
    tx_builder: TxBuilder,
    ctx: ChainContext,
    msgs: Sequence[Msg],
) -> Optional[BroadcastResult]:
    """
    Sign a set of messages and broadcast them.

    Ensures the signer's account exists and has its number and sequence set.
    Gas is estimated when the caller did not set it, and also on dry runs so
    the operator sees the estimate even for an explicit gas limit. A dry run
    stops after the estimate.

    Args:
        tx_builder: Builder with the transaction parameters
        ctx: Signer context
        msgs: Messages to send

    Returns:
        The node's acknowledgment, or None for a dry run
    """
    tx_builder = await prepare_tx_builder(tx_builder, ctx)

    autogas = ctx.dry_run or not ctx.gas_set
    if autogas:
        tx_builder = await enrich_with_gas(tx_builder, ctx, ctx.from_name, msgs)
        report_gas_estimate(ctx, tx_builder.gas)

    if ctx.dry_run:
        logger.info("dry_run_finished", gas=tx_builder.gas)
        return None

    passphrase = ctx.get_passphrase()

    # build and sign the transaction
    tx_bytes = tx_builder.build_and_sign(ctx.from_name, passphrase, msgs)

    return await broadcast_tx(ctx, tx_bytes)


async def send_tx(
    tx_builder: TxBuilder,
    ctx: ChainContext,
    msgs: Sequence[Msg],
    out: Optional[TextIO] = None,
) -> Union[StdTx, BroadcastResult, None]:
    """
    Entry point used by commands that send messages.

    In generate-only mode the unsigned transaction is printed and returned;
    otherwise the full sign-and-broadcast flow runs.
    """
    if ctx.generate_only:
        return await print_unsigned_std_tx(tx_builder, ctx, msgs, out)
    return await complete_and_broadcast_tx(tx_builder, ctx, msgs)
