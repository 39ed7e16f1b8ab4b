"""Token descriptor resolution and balance reads."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from eth_abi.exceptions import DecodingError

from .address import Address, AllowListEntry
from .amounts import AmountValue, to_human
from .erc20 import decode_uint, encode_balance_of, encode_decimals
from .exceptions import DescriptorResolutionError, RelayRPCError
from .fees import NATIVE_DECIMALS
from .logging_utils import TransferLogger
from .provider import ChainProvider

logger = logging.getLogger(__name__)


class DescriptorSource(str, Enum):
    """Where a descriptor's decimals came from."""
    CHAIN = "chain"
    ALLOWLIST_FALLBACK = "allowlist_fallback"


@dataclass(frozen=True)
class TokenDescriptor:
    """Decimals and symbol for one token contract."""
    address: Address
    decimals: int
    symbol: str
    source: DescriptorSource = DescriptorSource.CHAIN
    fallback_reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.source == DescriptorSource.ALLOWLIST_FALLBACK


class TokenClient:
    """
    Read-side access to one allow-listed token.

    The descriptor is resolved on first use and cached. If ``decimals()``
    cannot be read, the allow-list value is used and the fallback is both
    flagged on the descriptor and logged.
    """

    def __init__(
        self,
        provider: ChainProvider,
        entry: AllowListEntry,
        event_logger: Optional[TransferLogger] = None,
        native_symbol: str = "BNB",
    ):
        self._provider = provider
        self._entry = entry
        self._events = event_logger or TransferLogger()
        self._native_symbol = native_symbol
        self._descriptor: Optional[TokenDescriptor] = None

    @property
    def address(self) -> Address:
        return self._entry.address

    @property
    def entry(self) -> AllowListEntry:
        return self._entry

    async def resolve_descriptor(self, strict: bool = False) -> TokenDescriptor:
        """
        Resolve and cache the token descriptor.

        Args:
            strict: Raise instead of falling back to the allow-list decimals

        Raises:
            DescriptorResolutionError: decimals() failed and ``strict`` is set
        """
        if self._descriptor is not None:
            if strict and self._descriptor.is_fallback:
                raise DescriptorResolutionError(
                    f"decimals() unavailable for {self.address}: {self._descriptor.fallback_reason}",
                    details={"token": self.address.checksum},
                )
            return self._descriptor

        try:
            result = await self._provider.call(
                {"to": self.address.checksum, "data": encode_decimals()},
            )
            decimals = decode_uint(result)
            if decimals > 255:
                raise ValueError(f"decimals() returned {decimals}")
        except (RelayRPCError, DecodingError, ValueError, TypeError) as e:
            if strict:
                raise DescriptorResolutionError(
                    f"decimals() unavailable for {self.address}: {e}",
                    details={"token": self.address.checksum},
                ) from e
            reason = str(e) or type(e).__name__
            self._events.log_descriptor_fallback(self.address, self._entry.decimals, reason)
            self._descriptor = TokenDescriptor(
                address=self.address,
                decimals=self._entry.decimals,
                symbol=self._entry.symbol,
                source=DescriptorSource.ALLOWLIST_FALLBACK,
                fallback_reason=reason,
            )
            return self._descriptor

        if decimals != self._entry.decimals:
            logger.warning(
                f"On-chain decimals {decimals} for {self.address} differ from "
                f"allow-list value {self._entry.decimals}"
            )
        self._descriptor = TokenDescriptor(
            address=self.address,
            decimals=decimals,
            symbol=self._entry.symbol,
        )
        return self._descriptor

    async def balance_of(self, owner: Address) -> AmountValue:
        """Token balance of ``owner`` in base units."""
        descriptor = await self.resolve_descriptor()
        result = await self._provider.call(
            {"to": self.address.checksum, "data": encode_balance_of(owner)},
        )
        amount = AmountValue(base_units=decode_uint(result), decimals=descriptor.decimals)
        self._events.log_balance(owner, descriptor.symbol, amount.to_human(), amount.base_units)
        return amount

    async def balance_human(self, owner: Address) -> str:
        """Token balance formatted like ``"1.5 USDT"``."""
        descriptor = await self.resolve_descriptor()
        amount = await self.balance_of(owner)
        return f"{amount.to_human()} {descriptor.symbol}"

    async def native_balance(self, owner: Address) -> AmountValue:
        """Native coin balance of ``owner`` in wei."""
        wei = await self._provider.get_balance(owner.checksum)
        amount = AmountValue(base_units=wei, decimals=NATIVE_DECIMALS)
        self._events.log_balance(owner, self._native_symbol, to_human(wei, NATIVE_DECIMALS), wei)
        return amount


__all__ = ["DescriptorSource", "TokenDescriptor", "TokenClient"]
