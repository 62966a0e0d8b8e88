"""
Transaction codec.

Binary (CBOR) encoding of transactions, simulation results and accounts, a
registry of message types, canonical sign bytes and JSON rendering.
"""

import base64
import dataclasses
import json
import types
from typing import Any, Dict, Optional, Union, get_args, get_origin, get_type_hints

import cbor2
import structlog

from txprep.types import (
    BaseAccount,
    Coin,
    Msg,
    SimulationResult,
    StdFee,
    StdSignature,
    StdSignMsg,
    StdTx,
)

logger = structlog.get_logger(__name__)

_UNION_ORIGINS = (Union, getattr(types, "UnionType", Union))

STD_TX_TYPE = "auth/StdTx"


class CodecError(Exception):
    """Base class for codec failures."""
    pass


class DecodeError(CodecError):
    """Raised when bytes cannot be decoded under the expected schema."""
    pass


class UnknownMsgTypeError(CodecError):
    """Raised when a message type was never registered with the codec."""
    pass


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class TxCodec:
    """
    Shared codec for everything that crosses the wire.

    Messages are opaque to the pipeline. Each message type is a dataclass
    registered under a stable name; on the wire a message is the pair
    ``{"type": name, "value": fields}``.

    Usage:
        ```python
        codec = TxCodec()
        codec.register_msg("bank/MsgSend", MsgSend)
        tx_bytes = codec.encode_tx(std_tx)
        ```
    """

    def __init__(self):
        self._msg_types: Dict[str, type] = {}
        self._msg_names: Dict[type, str] = {}

    # ------------------------------------------------------------------
    # Message registry
    # ------------------------------------------------------------------

    def register_msg(self, name: str, msg_type: type) -> None:
        """
        Register a message type under a wire name.

        Args:
            name: Wire name, e.g. ``bank/MsgSend``
            msg_type: Dataclass implementing the message

        Raises:
            ValueError: If the type is not a dataclass or the name is taken
        """
        if not dataclasses.is_dataclass(msg_type):
            raise ValueError(f"{msg_type!r} is not a dataclass")
        if name in self._msg_types and self._msg_types[name] is not msg_type:
            raise ValueError(f"Message name already registered: {name}")

        self._msg_types[name] = msg_type
        self._msg_names[msg_type] = name
        logger.debug("msg_type_registered", name=name, msg_type=msg_type.__name__)

    def msg_name(self, msg: Msg) -> str:
        try:
            return self._msg_names[type(msg)]
        except KeyError:
            raise UnknownMsgTypeError(
                f"Message type {type(msg).__name__} is not registered"
            ) from None

    def msg_to_primitive(self, msg: Msg) -> dict:
        return {"type": self.msg_name(msg), "value": dataclasses.asdict(msg)}

    def msg_from_primitive(self, data: dict) -> Msg:
        name = data["type"]
        msg_type = self._msg_types.get(name)
        if msg_type is None:
            raise UnknownMsgTypeError(f"Unknown message type: {name}")
        return _from_primitive(msg_type, data["value"])

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def tx_to_primitive(self, tx: StdTx) -> dict:
        return {
            "type": STD_TX_TYPE,
            "value": {
                "msg": [self.msg_to_primitive(m) for m in tx.msgs],
                "fee": _fee_to_primitive(tx.fee),
                "signatures": [
                    {"pub_key": s.pub_key, "signature": s.signature}
                    for s in tx.signatures
                ] or None,
                "memo": tx.memo,
            },
        }

    def tx_from_primitive(self, data: dict) -> StdTx:
        if data.get("type") != STD_TX_TYPE:
            raise DecodeError(f"Not a {STD_TX_TYPE}: {data.get('type')!r}")

        value = data["value"]
        signatures = tuple(
            StdSignature(pub_key=bytes(s["pub_key"]), signature=bytes(s["signature"]))
            for s in (value.get("signatures") or [])
        )
        return StdTx(
            msgs=tuple(self.msg_from_primitive(m) for m in value["msg"]),
            fee=_fee_from_primitive(value["fee"]),
            signatures=signatures,
            memo=value.get("memo", ""),
        )

    def encode_tx(self, tx: StdTx) -> bytes:
        """Encode a transaction into its binary wire form."""
        return cbor2.dumps(self.tx_to_primitive(tx))

    def decode_tx(self, data: bytes) -> StdTx:
        """
        Decode a transaction from its binary wire form.

        Raises:
            DecodeError: If the bytes are not a valid encoded StdTx
        """
        primitive = self._loads(data, "transaction")
        try:
            return self.tx_from_primitive(primitive)
        except DecodeError:
            raise
        except (AttributeError, KeyError, TypeError, ValueError, CodecError) as e:
            raise DecodeError(f"Malformed transaction: {e}") from e

    def marshal_json(self, tx: StdTx, indent: Optional[int] = 2) -> str:
        """Render a transaction as JSON, with bytes in base64."""
        return json.dumps(self.tx_to_primitive(tx), indent=indent, default=_json_default)

    def sign_bytes(self, sign_msg: StdSignMsg) -> bytes:
        """
        Canonical bytes a signer signs.

        Keys are sorted and integers rendered as strings, so every client
        produces identical bytes for the same transaction.
        """
        doc = {
            "account_number": str(sign_msg.account_number),
            "chain_id": sign_msg.chain_id,
            "fee": {
                "amount": [{"denom": c.denom, "amount": str(c.amount)} for c in sign_msg.fee.amount],
                "gas": str(sign_msg.fee.gas),
            },
            "memo": sign_msg.memo,
            "msgs": [self.msg_to_primitive(m) for m in sign_msg.msgs],
            "sequence": str(sign_msg.sequence),
        }
        return json.dumps(
            doc,
            sort_keys=True,
            separators=(",", ":"),
            default=_json_default,
        ).encode("utf-8")

    # ------------------------------------------------------------------
    # Query responses
    # ------------------------------------------------------------------

    def encode_result(self, result: SimulationResult) -> bytes:
        return cbor2.dumps({"gas_used": result.gas_used})

    def decode_result(self, data: bytes) -> SimulationResult:
        """
        Decode a simulation response.

        Raises:
            DecodeError: If the response carries no usable gas figure
        """
        primitive = self._loads(data, "simulation result")
        gas_used = primitive.get("gas_used") if isinstance(primitive, dict) else None
        if isinstance(gas_used, bool) or not isinstance(gas_used, int) or gas_used < 0:
            raise DecodeError(f"Simulation result has no valid gas_used: {primitive!r}")
        return SimulationResult(gas_used=gas_used)

    def encode_account(self, account: BaseAccount) -> bytes:
        return cbor2.dumps({
            "address": account.address,
            "account_number": account.account_number,
            "sequence": account.sequence,
            "coins": [{"denom": c.denom, "amount": c.amount} for c in account.coins],
            "pub_key": account.pub_key,
        })

    def decode_account(self, data: bytes) -> BaseAccount:
        """
        Decode an account record from the account store.

        Raises:
            DecodeError: If the record is malformed
        """
        primitive = self._loads(data, "account")
        try:
            return BaseAccount(
                address=str(primitive["address"]),
                account_number=int(primitive["account_number"]),
                sequence=int(primitive["sequence"]),
                coins=tuple(
                    Coin(denom=c["denom"], amount=int(c["amount"]))
                    for c in primitive.get("coins") or []
                ),
                pub_key=primitive.get("pub_key"),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed account: {e}") from e

    def _loads(self, data: bytes, what: str) -> Any:
        try:
            return cbor2.loads(data)
        except cbor2.CBORDecodeError as e:
            raise DecodeError(f"Cannot decode {what}: {e}") from e


def _fee_to_primitive(fee: StdFee) -> dict:
    return {
        "amount": [{"denom": c.denom, "amount": c.amount} for c in fee.amount],
        "gas": fee.gas,
    }


def _fee_from_primitive(data: dict) -> StdFee:
    return StdFee(
        amount=tuple(Coin(denom=c["denom"], amount=int(c["amount"])) for c in data["amount"]),
        gas=int(data["gas"]),
    )


def _from_primitive(tp: Any, value: Any) -> Any:
    """Rebuild a decoded value as the annotated type, down through nested fields."""
    if value is None:
        return None

    if dataclasses.is_dataclass(tp) and isinstance(value, dict):
        hints = get_type_hints(tp)
        return tp(**{
            f.name: _from_primitive(hints.get(f.name, Any), value[f.name])
            for f in dataclasses.fields(tp)
            if f.name in value
        })

    origin = get_origin(tp)
    args = get_args(tp)

    if origin in _UNION_ORIGINS:
        for arg in args:
            if arg is not type(None):
                return _from_primitive(arg, value)
        return value

    if origin is tuple and isinstance(value, (list, tuple)):
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(_from_primitive(args[0], v) for v in value)
        if args:
            return tuple(_from_primitive(a, v) for a, v in zip(args, value))
        return tuple(value)

    if origin is list and isinstance(value, (list, tuple)):
        item = args[0] if args else Any
        return [_from_primitive(item, v) for v in value]

    return value
