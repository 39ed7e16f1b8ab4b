"""ERC-20 ABI helpers: call encoding, return decoding and Transfer log decoding."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Union

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from .address import Address
from .exceptions import LogDecodeError
from .provider import parse_quantity

TRANSFER_SELECTOR = bytes(Web3.keccak(text="transfer(address,uint256)")[:4])
BALANCE_OF_SELECTOR = bytes(Web3.keccak(text="balanceOf(address)")[:4])
DECIMALS_SELECTOR = bytes(Web3.keccak(text="decimals()")[:4])

# keccak256("Transfer(address,address,uint256)")
TRANSFER_EVENT_SIGNATURE = "0x" + bytes(Web3.keccak(text="Transfer(address,address,uint256)")).hex()


def _hex(data: bytes) -> str:
    return "0x" + data.hex()


def _to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


def encode_transfer(to: Address, amount: int) -> str:
    """Calldata for ``transfer(to, amount)``."""
    return _hex(TRANSFER_SELECTOR + encode(["address", "uint256"], [to.checksum, amount]))


def encode_balance_of(owner: Address) -> str:
    """Calldata for ``balanceOf(owner)``."""
    return _hex(BALANCE_OF_SELECTOR + encode(["address"], [owner.checksum]))


def encode_decimals() -> str:
    return _hex(DECIMALS_SELECTOR)


def decode_uint(result: Union[str, bytes]) -> int:
    """Decode a single uint256 return value."""
    (value,) = decode(["uint256"], _to_bytes(result))
    return value


@dataclass(frozen=True)
class TransferLog:
    """A decoded ERC-20 Transfer event."""
    sender: Address
    recipient: Address
    value: int
    tx_hash: str
    block_number: int
    log_index: int


def _topic_address(topic: Union[str, bytes]) -> Address:
    raw = _to_bytes(topic)
    if len(raw) != 32 or any(raw[:12]):
        raise LogDecodeError(f"Topic is not a padded address: {_hex(raw)}")
    return Address(raw[12:])


def decode_transfer_log(log: Dict[str, Any]) -> TransferLog:
    """
    Decode a raw JSON-RPC log entry as an ERC-20 Transfer.

    Raises:
        LogDecodeError: Wrong signature, wrong topic count, or bad data
    """
    topics: List[Any] = log.get("topics") or []
    if len(topics) != 3:
        raise LogDecodeError(f"Transfer log must have 3 topics, got {len(topics)}")

    try:
        signature = _hex(_to_bytes(topics[0])).lower()
        if signature != TRANSFER_EVENT_SIGNATURE:
            raise LogDecodeError(f"Unexpected event signature {signature}")

        sender = _topic_address(topics[1])
        recipient = _topic_address(topics[2])
        (value,) = decode(["uint256"], _to_bytes(log.get("data") or "0x"))

        return TransferLog(
            sender=sender,
            recipient=recipient,
            value=value,
            tx_hash=log.get("transactionHash") or "",
            block_number=parse_quantity(log.get("blockNumber")) or 0,
            log_index=parse_quantity(log.get("logIndex")) or 0,
        )
    except (DecodingError, ValueError, TypeError, AttributeError) as e:
        raise LogDecodeError(f"Malformed Transfer log: {e}") from e


__all__ = [
    "TRANSFER_SELECTOR",
    "BALANCE_OF_SELECTOR",
    "DECIMALS_SELECTOR",
    "TRANSFER_EVENT_SIGNATURE",
    "TransferLog",
    "encode_transfer",
    "encode_balance_of",
    "encode_decimals",
    "decode_uint",
    "decode_transfer_log",
]
