"""
Test suite for transaction construction functionality.

Tests the builder record, signing, and the keybase behind it.
"""

import pytest
from nacl.signing import VerifyKey

from tests.conftest import TEST_CHAIN_ID, MsgSend
from txprep.keys.keybase import (
    FileKeybase,
    InMemoryKeybase,
    KeyNotFoundError,
    generate_test_keybase,
)
from txprep.tx.builder import TransactionBuildError, TxBuilder
from txprep.types import Coin, StdFee, StdSignMsg


# ============================================================================
# Test Keybase
# ============================================================================

class TestKeybase:
    """Tests for named key storage and signing."""

    def test_generate_test_keybase(self, test_config):
        """Test generating random keys."""
        keybase = generate_test_keybase("alice", "bob", config=test_config)

        names = [info.name for info in keybase.list()]
        assert names == ["alice", "bob"]
        assert keybase.get("alice").address.startswith("addr_test")
        assert keybase.get("alice").address != keybase.get("bob").address
        assert len(keybase.get("alice").pub_key) == 32

    def test_unknown_key(self, keybase):
        """Test that a missing name raises KeyNotFoundError."""
        with pytest.raises(KeyNotFoundError, match="carol"):
            keybase.get("carol")

        with pytest.raises(KeyNotFoundError):
            keybase.sign("carol", "", b"data")

    def test_sign_verifies(self, keybase):
        """Test that signatures verify under the returned public key."""
        signature, pub_key = keybase.sign("alice", "", b"payload")

        assert pub_key == keybase.get("alice").pub_key
        VerifyKey(pub_key).verify(b"payload", signature)

    def test_mainnet_address(self, test_config):
        """Test that the network decides the address prefix."""
        from txprep.config import NetworkType
        config = test_config.model_copy(update={"network": NetworkType.MAINNET})

        keybase = InMemoryKeybase(config)
        info = keybase.generate("main")

        assert info.address.startswith("addr1")

    def test_file_keybase_persists_keys(self, tmp_path, test_config):
        """Test that generated keys are saved and reloaded from disk."""
        keybase = FileKeybase(str(tmp_path), config=test_config)
        created = keybase.generate("alice")

        assert (tmp_path / "alice.skey").exists()

        reloaded = FileKeybase(str(tmp_path), config=test_config)
        assert reloaded.get("alice") == created
        assert [info.name for info in reloaded.list()] == ["alice"]

    def test_file_keybase_refuses_overwrite(self, tmp_path, test_config):
        """Test that generate never overwrites an existing key file."""
        keybase = FileKeybase(str(tmp_path), config=test_config)
        keybase.generate("alice")

        with pytest.raises(ValueError, match="already exists"):
            keybase.generate("alice")

    def test_file_keybase_missing_key(self, tmp_path, test_config):
        """Test that a missing key file raises KeyNotFoundError."""
        keybase = FileKeybase(str(tmp_path), config=test_config)

        with pytest.raises(KeyNotFoundError):
            keybase.get("nobody")

    def test_file_keybase_requires_directory(self, test_config):
        """Test that a keyring directory is required."""
        with pytest.raises(ValueError, match="keyring directory"):
            FileKeybase(config=test_config)


# ============================================================================
# Test Builder Record
# ============================================================================

class TestTxBuilderRecord:
    """Tests for the immutable builder."""

    def test_with_methods_return_new_builder(self, tx_builder):
        """Test that each with_* call leaves the original untouched."""
        updated = (
            tx_builder
            .with_account_number(3)
            .with_sequence(8)
            .with_gas(21_000)
            .with_memo("hello")
            .with_chain_id("other-chain")
        )

        assert (updated.account_number, updated.sequence, updated.gas) == (3, 8, 21_000)
        assert updated.memo == "hello"
        assert updated.chain_id == "other-chain"
        assert (tx_builder.account_number, tx_builder.sequence, tx_builder.gas) == (0, 0, 0)
        assert tx_builder.memo == "test memo"

    def test_frozen(self, tx_builder):
        """Test that fields cannot be assigned."""
        from dataclasses import FrozenInstanceError
        with pytest.raises(FrozenInstanceError):
            tx_builder.gas = 5

    def test_with_fees(self, tx_builder):
        """Test fee parsing."""
        updated = tx_builder.with_fees("5photon,10stake")

        assert updated.fees == (Coin("photon", 5), Coin("stake", 10))
        assert updated.fee == StdFee(amount=updated.fees, gas=0)

    def test_from_config(self, codec, keybase, test_config):
        """Test creating a builder from configuration."""
        config = test_config.model_copy(update={"gas": 80_000, "sequence": 4})

        builder = TxBuilder.from_config(codec, keybase, config)

        assert builder.chain_id == TEST_CHAIN_ID
        assert builder.gas == 80_000
        assert builder.sequence == 4
        assert builder.account_number == 0
        assert builder.gas_adjustment == 1.5
        assert builder.fees == (Coin("stake", 10),)
        assert builder.memo == "test memo"


# ============================================================================
# Test Build and Sign
# ============================================================================

class TestBuildAndSign:
    """Tests for producing sign messages and signed transactions."""

    def test_build(self, tx_builder, sample_msgs):
        """Test building a sign message."""
        sign_msg = tx_builder.with_account_number(1).with_sequence(2).with_gas(10).build(sample_msgs)

        assert isinstance(sign_msg, StdSignMsg)
        assert sign_msg.chain_id == TEST_CHAIN_ID
        assert (sign_msg.account_number, sign_msg.sequence) == (1, 2)
        assert sign_msg.fee.gas == 10
        assert sign_msg.msgs == tuple(sample_msgs)

    def test_build_requires_chain_id(self, tx_builder, sample_msgs):
        """Test that the chain ID is mandatory."""
        with pytest.raises(TransactionBuildError, match="Chain ID"):
            tx_builder.with_chain_id("").build(sample_msgs)

    def test_build_requires_messages(self, tx_builder):
        """Test that an empty message list is rejected."""
        with pytest.raises(TransactionBuildError, match="without messages"):
            tx_builder.build([])

    def test_sign_refuses_zero_gas(self, tx_builder, sample_msgs):
        """Test that a zero gas limit is never signed."""
        with pytest.raises(TransactionBuildError, match="zero gas"):
            tx_builder.build_and_sign("alice", "", sample_msgs)

    def test_build_and_sign(self, tx_builder, codec, keybase, sample_msgs):
        """Test that the encoded signed transaction decodes and verifies."""
        builder = tx_builder.with_account_number(1).with_sequence(2).with_gas(50_000)

        tx = codec.decode_tx(builder.build_and_sign("alice", "", sample_msgs))

        assert tx.is_signed
        assert tx.fee.gas == 50_000
        signature = tx.signatures[0]
        VerifyKey(signature.pub_key).verify(
            codec.sign_bytes(builder.build(sample_msgs)),
            signature.signature,
        )

    def test_unregistered_message(self, tx_builder):
        """Test that a message the codec does not know is a build failure."""
        from dataclasses import dataclass

        @dataclass(frozen=True)
        class MsgUnknown:
            value: int

        with pytest.raises(TransactionBuildError, match="not registered"):
            tx_builder.with_gas(1).build_and_sign("alice", "", [MsgUnknown(1)])

    def test_build_with_pubkey(self, tx_builder, codec, keybase, sample_msgs):
        """Test the simulation candidate carries the key but no signature."""
        tx = codec.decode_tx(tx_builder.build_with_pubkey("bob", sample_msgs))

        assert tx.signatures[0].pub_key == keybase.get("bob").pub_key
        assert tx.signatures[0].signature == b""
        assert not tx.is_signed

    def test_requires_keybase(self, codec, sample_msgs):
        """Test that signing without a keybase fails cleanly."""
        builder = TxBuilder(codec=codec, chain_id=TEST_CHAIN_ID, gas=1)

        with pytest.raises(TransactionBuildError, match="keybase"):
            builder.build_and_sign("alice", "", sample_msgs)

    def test_sign_bytes_are_deterministic(self, codec, keybase):
        """Test that identical transactions produce identical sign bytes."""
        msgs = (MsgSend("a", "b", "1stake"),)
        first = StdSignMsg(TEST_CHAIN_ID, 1, 2, StdFee((Coin("stake", 1),), 10), msgs)
        second = StdSignMsg(TEST_CHAIN_ID, 1, 2, StdFee((Coin("stake", 1),), 10), msgs)

        assert codec.sign_bytes(first) == codec.sign_bytes(second)
        assert codec.sign_bytes(first).startswith(b'{"account_number":"1","chain_id":')
