"""
Address parsing, checksum enforcement and the token allow-list.

All checks here are local: nothing in this module touches the network, so
a bad address is rejected before any RPC call is made.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Pattern

from web3 import Web3

from .exceptions import (
    ChecksumMismatchError,
    InvalidAddressFormatError,
    InvalidDecimalsError,
    NotAllowlistedError,
    RelayValidationError,
)

logger = logging.getLogger(__name__)

# 20 bytes of hex, optional 0x prefix, any casing
ADDRESS_PATTERN: Pattern[str] = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")

# BEP-20 USDT on BNB Smart Chain
BSC_USDT_ADDRESS = "0x55d398326f99059ff775485246999027b3197955"


@dataclass(frozen=True)
class Address:
    """A 20-byte account or contract address.

    Equality and hashing use the raw bytes, so two renderings that differ
    only in letter case are the same address.
    """
    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != 20:
            raise InvalidAddressFormatError(
                f"Address must be 20 bytes, got {len(self.raw)}",
                field="address",
            )

    @classmethod
    def from_string(cls, value: str) -> "Address":
        """Parse a hex address in any casing."""
        if not isinstance(value, str) or not ADDRESS_PATTERN.fullmatch(value):
            raise InvalidAddressFormatError(
                f"Not a 20-byte hex address: {value!r}",
                field="address",
            )
        digits = value[2:] if value.startswith("0x") else value
        return cls(bytes.fromhex(digits))

    @property
    def checksum(self) -> str:
        """Canonical EIP-55 mixed-case rendering."""
        return Web3.to_checksum_address("0x" + self.raw.hex())

    @property
    def topic(self) -> str:
        """Left-padded 32-byte hex form used in indexed log topics."""
        return "0x" + self.raw.hex().rjust(64, "0")

    def __str__(self) -> str:
        return self.checksum

    def __repr__(self) -> str:
        return f"Address({self.checksum})"


@dataclass(frozen=True)
class AllowListEntry:
    """A token contract the relay is permitted to operate on."""
    address: Address
    decimals: int
    symbol: str

    def __post_init__(self) -> None:
        if not 0 <= self.decimals <= 255:
            raise InvalidDecimalsError(
                f"Decimals must be in 0..255, got {self.decimals}",
                field="decimals",
            )
        if not self.symbol:
            raise RelayValidationError("Token symbol must not be empty", field="symbol")


class TokenAllowList:
    """Injectable table of permitted token contracts.

    Any token operation must resolve to exactly one entry; duplicates are
    rejected when the table is built.
    """

    def __init__(self, entries: Iterable[AllowListEntry] = ()):
        self._entries: Dict[Address, AllowListEntry] = {}
        for entry in entries:
            if entry.address in self._entries:
                raise RelayValidationError(
                    f"Duplicate allow-list entry for {entry.address}",
                    field="allowlist",
                )
            self._entries[entry.address] = entry

    def __contains__(self, address: object) -> bool:
        return address in self._entries

    def __iter__(self) -> Iterator[AllowListEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, address: Address) -> Optional[AllowListEntry]:
        return self._entries.get(address)

    def resolve(self, address: Address) -> AllowListEntry:
        """Return the entry for ``address`` or raise NotAllowlistedError."""
        entry = self._entries.get(address)
        if entry is None:
            raise NotAllowlistedError(
                f"Token {address} is not allow-listed",
                field="token",
                details={"address": address.checksum},
            )
        return entry

    def with_entry(self, entry: AllowListEntry) -> "TokenAllowList":
        """Return a new table with ``entry`` added."""
        return TokenAllowList([*self._entries.values(), entry])


def default_allowlist() -> TokenAllowList:
    """The single-token table used by the BSC deployment."""
    return TokenAllowList([
        AllowListEntry(
            address=Address.from_string(BSC_USDT_ADDRESS),
            decimals=18,
            symbol="USDT",
        ),
    ])


class AddressValidator:
    """Syntax, checksum and allow-list checks on address strings."""

    def __init__(self, allowlist: TokenAllowList):
        self._allowlist = allowlist

    @property
    def allowlist(self) -> TokenAllowList:
        return self._allowlist

    @staticmethod
    def is_valid_syntax(value: str) -> bool:
        """True if ``value`` parses as a 20-byte hex address, any casing."""
        return isinstance(value, str) and ADDRESS_PATTERN.fullmatch(value) is not None

    @staticmethod
    def is_checksum_canonical(value: str) -> bool:
        """True if ``value`` parses and equals its EIP-55 rendering exactly."""
        if not AddressValidator.is_valid_syntax(value):
            return False
        return Address.from_string(value).checksum == value

    def parse_address(self, value: str, require_checksum: bool = False) -> Address:
        """Parse a recipient address, optionally enforcing checksum casing."""
        address = Address.from_string(value)
        if require_checksum and address.checksum != value:
            raise ChecksumMismatchError(
                f"Address {value!r} is not in checksum form (expected {address.checksum})",
                field="address",
            )
        return address

    def validate_allowlisted(self, value: str) -> Address:
        """Parse with checksum enforcement, then require allow-list membership.

        Raises the most specific of InvalidAddressFormatError,
        ChecksumMismatchError and NotAllowlistedError.
        """
        address = self.parse_address(value, require_checksum=True)
        self._allowlist.resolve(address)
        return address


__all__ = [
    "ADDRESS_PATTERN",
    "BSC_USDT_ADDRESS",
    "Address",
    "AllowListEntry",
    "TokenAllowList",
    "default_allowlist",
    "AddressValidator",
]
