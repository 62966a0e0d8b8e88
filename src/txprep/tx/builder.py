"""
Transaction Builder - constructs signable transactions.

A TxBuilder is an immutable record of the parameters of one transaction.
Every ``with_*`` method returns a new builder; nothing mutates in place.
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

import structlog

from txprep.codec import CodecError, TxCodec
from txprep.config import DEFAULT_GAS_ADJUSTMENT, ClientConfig, get_config
from txprep.keys.keybase import Keybase
from txprep.types import (
    Coin,
    Msg,
    StdFee,
    StdSignature,
    StdSignMsg,
    StdTx,
    parse_coins,
)

logger = structlog.get_logger(__name__)


class TransactionBuildError(Exception):
    """Raised when transaction construction fails."""
    pass


@dataclass(frozen=True)
class TxBuilder:
    """
    Parameters of a transaction under construction.

    Attributes:
        codec: Codec used for sign bytes and the encoded transaction
        keybase: Keybase holding the signer's key
        chain_id: Chain the transaction is valid on
        account_number: Signer account number; 0 means not resolved yet
        sequence: Signer sequence; 0 means not resolved yet
        gas: Gas limit; 0 means not estimated yet
        gas_adjustment: Multiplier applied to simulated gas when the context sets none
        fees: Fee coins
        memo: Free-form memo
    """

    codec: TxCodec
    keybase: Optional[Keybase] = None
    chain_id: str = ""
    account_number: int = 0
    sequence: int = 0
    gas: int = 0
    gas_adjustment: float = DEFAULT_GAS_ADJUSTMENT
    fees: Tuple[Coin, ...] = ()
    memo: str = ""

    @classmethod
    def from_config(
        cls,
        codec: TxCodec,
        keybase: Optional[Keybase] = None,
        config: Optional[ClientConfig] = None,
    ) -> "TxBuilder":
        """
        Create a builder from client configuration.

        Raises:
            ValueError: If the configured fees cannot be parsed
        """
        config = config or get_config()
        return cls(
            codec=codec,
            keybase=keybase,
            chain_id=config.chain_id,
            account_number=config.account_number,
            sequence=config.sequence,
            gas=config.gas,
            gas_adjustment=config.gas_adjustment,
            fees=parse_coins(config.fees),
            memo=config.memo,
        )

    def with_chain_id(self, chain_id: str) -> "TxBuilder":
        return replace(self, chain_id=chain_id)

    def with_account_number(self, account_number: int) -> "TxBuilder":
        return replace(self, account_number=account_number)

    def with_sequence(self, sequence: int) -> "TxBuilder":
        return replace(self, sequence=sequence)

    def with_gas(self, gas: int) -> "TxBuilder":
        return replace(self, gas=gas)

    def with_gas_adjustment(self, gas_adjustment: float) -> "TxBuilder":
        return replace(self, gas_adjustment=gas_adjustment)

    def with_fees(self, fees: str) -> "TxBuilder":
        return replace(self, fees=parse_coins(fees))

    def with_memo(self, memo: str) -> "TxBuilder":
        return replace(self, memo=memo)

    def with_keybase(self, keybase: Keybase) -> "TxBuilder":
        return replace(self, keybase=keybase)

    @property
    def fee(self) -> StdFee:
        return StdFee(amount=self.fees, gas=self.gas)

    def build(self, msgs: Sequence[Msg]) -> StdSignMsg:
        """
        Build the message a signer signs.

        Args:
            msgs: Messages to include, in order

        Returns:
            Sign message for the current parameters

        Raises:
            TransactionBuildError: If the chain ID is missing or there are no messages
        """
        if not self.chain_id:
            raise TransactionBuildError("Chain ID required but not specified")

        if not msgs:
            raise TransactionBuildError("Cannot build transaction without messages")

        return StdSignMsg(
            chain_id=self.chain_id,
            account_number=self.account_number,
            sequence=self.sequence,
            fee=self.fee,
            msgs=tuple(msgs),
            memo=self.memo,
        )

    def sign(self, name: str, passphrase: str, sign_msg: StdSignMsg) -> bytes:
        """
        Sign a message and encode the resulting transaction.

        Args:
            name: Key name in the keybase
            passphrase: Passphrase for the key
            sign_msg: Message built by ``build``

        Returns:
            Encoded signed transaction

        Raises:
            TransactionBuildError: If gas is unset or encoding fails
            SigningError: If the key is unavailable or signing fails
        """
        if sign_msg.fee.gas == 0:
            raise TransactionBuildError("Refusing to sign a transaction with zero gas")

        keybase = self._require_keybase()
        sign_bytes = self._sign_bytes(sign_msg)
        signature, pub_key = keybase.sign(name, passphrase, sign_bytes)

        tx = StdTx(
            msgs=sign_msg.msgs,
            fee=sign_msg.fee,
            signatures=(StdSignature(pub_key=pub_key, signature=signature),),
            memo=sign_msg.memo,
        )

        logger.debug(
            "transaction_signed",
            signer=name,
            account_number=sign_msg.account_number,
            sequence=sign_msg.sequence,
        )
        return self._encode(tx)

    def build_and_sign(self, name: str, passphrase: str, msgs: Sequence[Msg]) -> bytes:
        """Build a transaction and sign it with the named key."""
        return self.sign(name, passphrase, self.build(msgs))

    def build_with_pubkey(self, name: str, msgs: Sequence[Msg]) -> bytes:
        """
        Build a transaction carrying the signer's public key but no signature.

        The result is what the node simulates: it can charge signature
        verification gas without the transaction being signed.
        """
        sign_msg = self.build(msgs)
        info = self._require_keybase().get(name)

        tx = StdTx(
            msgs=sign_msg.msgs,
            fee=sign_msg.fee,
            signatures=(StdSignature(pub_key=info.pub_key),),
            memo=sign_msg.memo,
        )
        return self._encode(tx)

    def _require_keybase(self) -> Keybase:
        if self.keybase is None:
            raise TransactionBuildError("No keybase configured")
        return self.keybase

    def _sign_bytes(self, sign_msg: StdSignMsg) -> bytes:
        try:
            return self.codec.sign_bytes(sign_msg)
        except CodecError as e:
            raise TransactionBuildError(f"Failed to encode sign bytes: {e}") from e

    def _encode(self, tx: StdTx) -> bytes:
        try:
            return self.codec.encode_tx(tx)
        except CodecError as e:
            raise TransactionBuildError(f"Failed to encode transaction: {e}") from e
