"""
Account resolution for a transaction builder.
"""

import structlog

from txprep.client.context import ChainContext
from txprep.tx.builder import TxBuilder

logger = structlog.get_logger(__name__)


async def prepare_tx_builder(tx_builder: TxBuilder, ctx: ChainContext) -> TxBuilder:
    """
    Make sure the signer's account exists and fill in its number and sequence.

    Fields that are already nonzero are kept as given and never read from
    the chain. Any failure is raised as is.

    Args:
        tx_builder: Builder to complete
        ctx: Context of the signer

    Returns:
        Builder with account number and sequence populated

    Raises:
        AccountNotFoundError: If the signer's account does not exist
    """
    address = ctx.from_address()
    await ctx.ensure_account_exists(address)

    if tx_builder.account_number == 0:
        account_number = await ctx.get_account_number(address)
        tx_builder = tx_builder.with_account_number(account_number)

    if tx_builder.sequence == 0:
        sequence = await ctx.get_account_sequence(address)
        tx_builder = tx_builder.with_sequence(sequence)

    logger.debug(
        "account_resolved",
        address=address,
        account_number=tx_builder.account_number,
        sequence=tx_builder.sequence,
    )
    return tx_builder
