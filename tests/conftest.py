"""
Pytest configuration and shared fixtures for the test suite.
"""

import io
import logging
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import pytest
import structlog

from txprep.client.context import ACCOUNT_STORE_PATH, ChainContext
from txprep.codec import TxCodec
from txprep.config import BroadcastMode, ClientConfig, NetworkType
from txprep.keys.keybase import InMemoryKeybase, generate_test_keybase
from txprep.node.interface import NodeInterface, QueryError
from txprep.tx.builder import TxBuilder
from txprep.tx.gas import SIMULATE_PATH
from txprep.types import BaseAccount, BroadcastResult, SimulationResult, parse_coins


TEST_CHAIN_ID = "test-chain-1"
ALICE_ACCOUNT_NUMBER = 12
ALICE_SEQUENCE = 3


# ============================================================================
# Test Messages
# ============================================================================

@dataclass(frozen=True)
class MsgSend:
    """Minimal transfer message used throughout the tests."""
    from_address: str
    to_address: str
    amount: str


@dataclass(frozen=True)
class MsgVote:
    """Second message type, to exercise multi-message transactions."""
    proposal_id: int
    voter: str
    option: str


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def structlog_to_stderr():
    """Route log events to stderr so command output on stdout stays parseable."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def test_config() -> ClientConfig:
    """Create a test configuration."""
    return ClientConfig(
        network=NetworkType.TESTNET,
        chain_id=TEST_CHAIN_ID,
        node_url="http://node.test:26657",
        gas_adjustment=1.5,
        fees="10stake",
        memo="test memo",
        log_level="DEBUG",
    )


@pytest.fixture
def codec() -> TxCodec:
    """Codec with the test message types registered."""
    codec = TxCodec()
    codec.register_msg("test/MsgSend", MsgSend)
    codec.register_msg("test/MsgVote", MsgVote)
    return codec


@pytest.fixture
def keybase(test_config) -> InMemoryKeybase:
    """Keybase with two random keys, alice and bob."""
    return generate_test_keybase("alice", "bob", config=test_config)


# ============================================================================
# Mock Node Interface
# ============================================================================

class MockNodeInterface(NodeInterface):
    """Mock node that records every query and broadcast."""

    def __init__(self, codec: TxCodec):
        self.codec = codec
        self.accounts: Dict[str, BaseAccount] = {}
        self.gas_used = 100_000
        self.simulate_response: Optional[bytes] = None
        self.query_errors: Dict[str, Exception] = {}
        self.broadcast_error: Optional[Exception] = None
        self.queries: List[Tuple[str, bytes]] = []
        self.broadcasts: List[Tuple[bytes, BroadcastMode]] = []

    async def query(self, path: str, data: bytes) -> bytes:
        self.queries.append((path, data))

        if path in self.query_errors:
            raise self.query_errors[path]

        if path == ACCOUNT_STORE_PATH:
            account = self.accounts.get(data.decode("utf-8"))
            return self.codec.encode_account(account) if account else b""

        if path == SIMULATE_PATH:
            if self.simulate_response is not None:
                return self.simulate_response
            return self.codec.encode_result(SimulationResult(gas_used=self.gas_used))

        raise QueryError(f"Unknown query path: {path}", path=path)

    async def broadcast(
        self,
        tx_bytes: bytes,
        mode: BroadcastMode = BroadcastMode.SYNC,
    ) -> BroadcastResult:
        self.broadcasts.append((tx_bytes, mode))
        if self.broadcast_error is not None:
            raise self.broadcast_error
        return BroadcastResult(tx_hash="AB" * 32, height=0)

    def add_account(self, address: str, account_number: int, sequence: int) -> None:
        """Add an account to the mock state."""
        self.accounts[address] = BaseAccount(
            address=address,
            account_number=account_number,
            sequence=sequence,
        )

    def queries_for(self, path: str) -> List[bytes]:
        return [data for p, data in self.queries if p == path]

    @property
    def simulations(self) -> List[bytes]:
        return self.queries_for(SIMULATE_PATH)


@pytest.fixture
def mock_node(codec) -> MockNodeInterface:
    """Create a mock node with no accounts."""
    return MockNodeInterface(codec)


@pytest.fixture
def funded_node(mock_node, keybase) -> MockNodeInterface:
    """Mock node where alice has an account."""
    mock_node.add_account(
        keybase.get("alice").address,
        ALICE_ACCOUNT_NUMBER,
        ALICE_SEQUENCE,
    )
    return mock_node


# ============================================================================
# Pipeline Fixtures
# ============================================================================

@pytest.fixture
def operator_output() -> io.StringIO:
    """Captures what the pipeline reports to the operator."""
    return io.StringIO()


@pytest.fixture
def ctx(funded_node, codec, keybase, operator_output) -> ChainContext:
    """Context signing as alice against the funded mock node."""
    return ChainContext(
        node=funded_node,
        codec=codec,
        keybase=keybase,
        from_name="alice",
        gas_adjustment=1.5,
        output=operator_output,
    )


@pytest.fixture
def tx_builder(codec, keybase) -> TxBuilder:
    """Builder with nothing resolved yet."""
    return TxBuilder(
        codec=codec,
        keybase=keybase,
        chain_id=TEST_CHAIN_ID,
        gas_adjustment=1.5,
        fees=parse_coins("10stake"),
        memo="test memo",
    )


@pytest.fixture
def sample_msgs(keybase) -> List[MsgSend]:
    """One transfer from alice to bob."""
    return [
        MsgSend(
            from_address=keybase.get("alice").address,
            to_address=keybase.get("bob").address,
            amount="5stake",
        )
    ]
