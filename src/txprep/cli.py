"""
Command-line interface for txprep.

Provides commands for inspecting accounts, submitting signed transactions
and managing signing keys.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from txprep import __version__
from txprep.client.context import AccountNotFoundError, ChainContext
from txprep.codec import DecodeError, TxCodec
from txprep.config import BroadcastMode, ClientConfig, NetworkType, set_config
from txprep.keys.keybase import FileKeybase, SigningError
from txprep.node.interface import QueryError, TransactionSubmitError
from txprep.node.rpc import TendermintRPCAdapter
from txprep.tx.broadcast import broadcast_tx

logger = structlog.get_logger(__name__)


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Logs go to stderr so command output on stdout stays parseable
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--keyring-dir",
        dest="keyring_dir",
        help="Directory holding <name>.skey key files",
    )
    parser.add_argument(
        "--network",
        choices=[n.value for n in NetworkType],
        help="Network used to derive addresses",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs in JSON format",
    )


def _add_node_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--node",
        dest="node_url",
        help="Tendermint RPC endpoint (default: http://localhost:26657)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="txprep",
        description="Prepare, sign and broadcast transactions",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Account command
    account_parser = subparsers.add_parser("account", help="Show a signer's account number and sequence")
    account_parser.add_argument(
        "--from",
        dest="from_name",
        help="Name of the key whose account to show",
    )
    _add_node_argument(account_parser)
    _add_common_arguments(account_parser)

    # Broadcast command
    broadcast_parser = subparsers.add_parser("broadcast", help="Broadcast a signed transaction file")
    broadcast_parser.add_argument(
        "tx_file",
        help="File holding the encoded signed transaction",
    )
    broadcast_parser.add_argument(
        "--broadcast-mode",
        dest="broadcast_mode",
        choices=[m.value for m in BroadcastMode],
        help="Broadcast mode (default: sync)",
    )
    _add_node_argument(broadcast_parser)
    _add_common_arguments(broadcast_parser)

    # Keys command
    keys_parser = subparsers.add_parser("keys", help="Manage signing keys")
    keys_subparsers = keys_parser.add_subparsers(dest="keys_command", help="Key command")

    add_parser = keys_subparsers.add_parser("add", help="Generate a new key")
    add_parser.add_argument("name", help="Key name")
    _add_common_arguments(add_parser)

    show_parser = keys_subparsers.add_parser("show", help="Show a key's address")
    show_parser.add_argument("name", help="Key name")
    _add_common_arguments(show_parser)

    list_parser = keys_subparsers.add_parser("list", help="List all keys")
    _add_common_arguments(list_parser)

    return parser


def build_config(args: argparse.Namespace) -> ClientConfig:
    """Build configuration from command-line overrides on top of the environment."""
    overrides = {}
    for name in ("node_url", "keyring_dir", "from_name", "network", "broadcast_mode", "log_level"):
        value = getattr(args, name, None)
        if value is not None:
            overrides[name] = value
    if getattr(args, "log_json", False):
        overrides["log_json"] = True

    config = ClientConfig(**overrides)
    set_config(config)
    return config


async def show_account(config: ClientConfig) -> None:
    """Print the account number and sequence of the configured signer."""
    node = TendermintRPCAdapter(config)
    ctx = ChainContext.from_config(node, TxCodec(), FileKeybase(config=config), config)

    try:
        address = ctx.from_address()
        account = await ctx.get_account(address)
    finally:
        await node.disconnect()

    print(json.dumps({
        "address": account.address,
        "account_number": account.account_number,
        "sequence": account.sequence,
        "coins": [str(c) for c in account.coins],
    }, indent=2))


async def broadcast_file(config: ClientConfig, tx_file: str) -> None:
    """Broadcast the signed transaction stored in a file."""
    tx_bytes = Path(tx_file).read_bytes()

    node = TendermintRPCAdapter(config)
    ctx = ChainContext.from_config(node, TxCodec(), FileKeybase(config=config), config)

    try:
        result = await broadcast_tx(ctx, tx_bytes)
    finally:
        await node.disconnect()

    print(json.dumps(result.to_dict(), indent=2))


def run_keys_command(args: argparse.Namespace, config: ClientConfig) -> int:
    keybase = FileKeybase(config=config)

    if args.keys_command == "add":
        info = keybase.generate(args.name)
        print(f"{info.name}\t{info.address}")
    elif args.keys_command == "show":
        info = keybase.get(args.name)
        print(f"{info.name}\t{info.address}\t{info.pub_key.hex()}")
    elif args.keys_command == "list":
        for info in keybase.list():
            print(f"{info.name}\t{info.address}")
    else:
        print("Usage: txprep keys {add,show,list}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = build_config(args)

    # Setup logging
    setup_logging(config.log_level, config.log_json)

    try:
        if args.command == "account":
            asyncio.run(show_account(config))
        elif args.command == "broadcast":
            asyncio.run(broadcast_file(config, args.tx_file))
        elif args.command == "keys":
            sys.exit(run_keys_command(args, config))
    except (
        AccountNotFoundError,
        DecodeError,
        QueryError,
        SigningError,
        TransactionSubmitError,
        ValueError,
        OSError,
    ) as e:
        logger.debug("command_failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
