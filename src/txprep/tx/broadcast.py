"""
Submission of signed transactions.
"""

import structlog

from txprep.client.context import ChainContext
from txprep.types import BroadcastResult

logger = structlog.get_logger(__name__)


async def broadcast_tx(ctx: ChainContext, tx_bytes: bytes) -> BroadcastResult:
    """
    Hand signed transaction bytes to the node.

    The bytes are not inspected. The node's acknowledgment or error is
    returned to the caller unchanged.
    """
    logger.info(
        "broadcasting_transaction",
        size=len(tx_bytes),
        mode=ctx.broadcast_mode.value,
    )
    return await ctx.node.broadcast(tx_bytes, ctx.broadcast_mode)
