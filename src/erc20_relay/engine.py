"""
Transfer lifecycle: prepare, broadcast, confirm.

States:
    prepared (a FeeQuote, no chain mutation)
      -> pending (signed and submitted once)
      -> confirmed | timed_out | reverted (terminal)

Confirmation polling checks the receipt before the block-distance timeout
on every poll, so a receipt that lands after the threshold still confirms.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from web3 import Web3

from .address import Address, AddressValidator
from .amounts import AmountValue, from_human
from .config import RelayConfig
from .erc20 import encode_transfer
from .exceptions import (
    ArithmeticOverflowError,
    InvalidTransitionError,
    RelayValidationError,
    TransferRevertedError,
)
from .fees import FeeEstimator, FeeModel, FeeQuote
from .logging_utils import TransferLogger
from .provider import ChainProvider, parse_quantity
from .token import TokenDescriptor
from .wallet import SigningIdentity

logger = logging.getLogger(__name__)

# Fee fields of a signed transaction are 128-bit
MAX_FEE_FIELD = 2**128 - 1

Sleep = Callable[[float], Awaitable[Any]]


class TransferStatus(str, Enum):
    """Status of a submitted transfer."""
    PENDING = "pending"  # Submitted, no receipt yet
    CONFIRMED = "confirmed"  # Receipt with success status
    TIMED_OUT = "timed_out"  # No receipt within max_blocks_wait, presumed stuck
    REVERTED = "reverted"  # Receipt with failed execution


TERMINAL_STATUSES = frozenset({
    TransferStatus.CONFIRMED,
    TransferStatus.TIMED_OUT,
    TransferStatus.REVERTED,
})


@dataclass(frozen=True)
class TransferRequest:
    """A validated transfer intent."""
    to: Address
    amount: AmountValue


@dataclass
class TransferRecord:
    """A submitted transfer and what is known about its settlement."""
    tx_hash: str
    submission_block: int
    status: TransferStatus = TransferStatus.PENDING
    nonce: Optional[int] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    effective_gas_price: Optional[int] = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _transition(self, status: TransferStatus) -> None:
        if self.is_terminal:
            raise InvalidTransitionError(
                f"Transfer {self.tx_hash} is already {self.status.value}",
                details={"tx_hash": self.tx_hash, "status": self.status.value, "requested": status.value},
            )
        self.status = status
        self.completed_at = datetime.now(timezone.utc)

    def _apply_receipt(self, receipt: Dict[str, Any]) -> None:
        self.block_number = parse_quantity(receipt.get("blockNumber"))
        self.gas_used = parse_quantity(receipt.get("gasUsed"))
        self.effective_gas_price = parse_quantity(receipt.get("effectiveGasPrice"))

    def mark_confirmed(self, receipt: Dict[str, Any]) -> None:
        self._transition(TransferStatus.CONFIRMED)
        self._apply_receipt(receipt)

    def mark_reverted(self, receipt: Dict[str, Any]) -> None:
        self._transition(TransferStatus.REVERTED)
        self._apply_receipt(receipt)

    def mark_timed_out(self) -> None:
        self._transition(TransferStatus.TIMED_OUT)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tx_hash": self.tx_hash,
            "submission_block": self.submission_block,
            "status": self.status.value,
            "nonce": self.nonce,
            "block_number": self.block_number,
            "gas_used": self.gas_used,
            "effective_gas_price": self.effective_gas_price,
            "submitted_at": self.submitted_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


def _check_fee_field(name: str, value: int) -> int:
    if value < 0 or value > MAX_FEE_FIELD:
        raise ArithmeticOverflowError(
            f"{name} does not fit in 128 bits",
            details={"field": name, "value": str(value)},
        )
    return value


class TransferEngine:
    """
    Sends one allow-listed token from one signing identity.

    The engine owns its identity. ``transfer`` serialises prepare and
    broadcast under an engine-level lock so concurrent callers on the same
    engine never race for a nonce; callers driving ``prepare``/``broadcast``
    directly must serialise themselves.
    """

    def __init__(
        self,
        provider: ChainProvider,
        identity: SigningIdentity,
        token: TokenDescriptor,
        validator: AddressValidator,
        fee_estimator: Optional[FeeEstimator] = None,
        config: Optional[RelayConfig] = None,
        sleep: Sleep = asyncio.sleep,
        event_logger: Optional[TransferLogger] = None,
    ):
        self._provider = provider
        self._identity = identity
        self._token = token
        self._validator = validator
        self._config = config or RelayConfig()
        self._fees = fee_estimator or FeeEstimator(self._config.fees)
        self._sleep = sleep
        self._events = event_logger or TransferLogger(config=self._config.logging)
        self._lock = asyncio.Lock()

        # Token contract must be allow-listed before any transfer is built
        validator.allowlist.resolve(token.address)

    @property
    def sender(self) -> Address:
        return self._identity.address

    @property
    def token(self) -> TokenDescriptor:
        return self._token

    def build_request(self, recipient: str, amount: str) -> TransferRequest:
        """
        Validate a recipient and a human amount. No network access.

        Raises:
            InvalidAddressFormatError, ChecksumMismatchError: Bad recipient
            MalformedDecimalError, TooManyFractionalDigitsError,
            ArithmeticOverflowError: Bad amount
        """
        to = self._validator.parse_address(
            recipient,
            require_checksum=self._config.strict_recipient_checksum,
        )
        return TransferRequest(to=to, amount=from_human(amount, self._token.decimals))

    def _check_amount(self, amount: AmountValue) -> None:
        if amount.decimals != self._token.decimals:
            raise RelayValidationError(
                f"Amount has {amount.decimals} decimals, token {self._token.symbol} "
                f"has {self._token.decimals}",
                field="amount",
            )

    def _transfer_call(self, to: Address, amount: AmountValue) -> Dict[str, Any]:
        return {
            "from": self.sender.checksum,
            "to": self._token.address.checksum,
            "data": encode_transfer(to, amount.base_units),
        }

    async def prepare(self, to: Address, amount: AmountValue) -> FeeQuote:
        """Simulate the transfer and quote its fee. Repeatable, mutates nothing."""
        self._check_amount(amount)
        quote = await self._fees.quote(self._provider, self._transfer_call(to, amount))
        self._events.log_fee_quote(quote)
        return quote

    @staticmethod
    def _fee_fields(quote: FeeQuote) -> Dict[str, Any]:
        if quote.model == FeeModel.PRIORITY_FEE:
            return {
                "type": 2,
                "accessList": [],
                "maxFeePerGas": _check_fee_field("maxFeePerGas", quote.require("max_fee_per_unit")),
                "maxPriorityFeePerGas": _check_fee_field(
                    "maxPriorityFeePerGas", quote.require("priority_fee_per_unit"),
                ),
            }
        return {"gasPrice": _check_fee_field("gasPrice", quote.require("gas_price"))}

    async def broadcast(self, to: Address, amount: AmountValue, quote: FeeQuote) -> TransferRecord:
        """
        Sign and submit the transfer exactly once.

        The current block height is recorded as the submission anchor for
        the confirmation timeout. On any failure no record is produced.

        Raises:
            RelayRPCError: Transport or node failure
            ArithmeticOverflowError: Fee fields out of range
            ValueError: Quote lacks a fee field its model needs
        """
        self._check_amount(amount)
        FeeEstimator.total_cost(quote)
        fee_fields = self._fee_fields(quote)

        submission_block = await self._provider.get_block_number()
        nonce = await self._provider.get_transaction_count(self.sender.checksum, "pending")
        chain_id = await self._provider.get_chain_id()

        tx = {
            "chainId": chain_id,
            "nonce": nonce,
            "to": self._token.address.checksum,
            "value": 0,
            "data": encode_transfer(to, amount.base_units),
            "gas": quote.gas_units,
            **fee_fields,
        }
        raw = self._identity.sign_transaction(tx)
        tx_hash = await self._provider.send_raw_transaction(Web3.to_hex(raw))

        record = TransferRecord(
            tx_hash=tx_hash,
            submission_block=submission_block,
            nonce=nonce,
        )
        self._events.log_broadcast(
            tx_hash,
            self.sender,
            to,
            amount.to_human(),
            self._token.symbol,
            nonce,
            submission_block,
        )
        return record

    async def confirm(
        self,
        record: TransferRecord,
        max_blocks_wait: Optional[int] = None,
    ) -> TransferRecord:
        """
        Poll until the transfer confirms, reverts or times out.

        Each poll checks for a receipt first, then the block distance since
        submission, then sleeps the poll interval.

        Returns:
            The record, now CONFIRMED or TIMED_OUT

        Raises:
            TransferRevertedError: Receipt reports failed execution
            InvalidTransitionError: Record is not pending
            RelayRPCError: Transport or node failure while polling
        """
        if record.status != TransferStatus.PENDING:
            raise InvalidTransitionError(
                f"Transfer {record.tx_hash} is {record.status.value}, not pending",
                details={"tx_hash": record.tx_hash, "status": record.status.value},
            )
        if max_blocks_wait is None:
            max_blocks_wait = self._config.confirmation.max_blocks_wait
        poll_interval = self._config.confirmation.poll_interval_seconds

        while True:
            receipt = await self._provider.get_transaction_receipt(record.tx_hash)
            if receipt is not None and receipt.get("blockNumber") is not None:
                if parse_quantity(receipt.get("status")) == 1:
                    record.mark_confirmed(receipt)
                    self._events.log_confirmation(
                        record.tx_hash, record.status.value, record.block_number, record.gas_used,
                    )
                    return record

                record.mark_reverted(receipt)
                self._events.log_confirmation(
                    record.tx_hash, record.status.value, record.block_number, record.gas_used,
                )
                raise TransferRevertedError(record)

            current_block = await self._provider.get_block_number()
            if current_block - record.submission_block > max_blocks_wait:
                record.mark_timed_out()
                self._events.log_confirmation(record.tx_hash, record.status.value)
                return record

            logger.debug(
                f"Waiting for {record.tx_hash}: block {current_block}, "
                f"submitted at {record.submission_block}"
            )
            await self._sleep(poll_interval)

    async def transfer(
        self,
        recipient: str,
        amount: str,
        max_blocks_wait: Optional[int] = None,
    ) -> TransferRecord:
        """Validate, quote, send and confirm in one call."""
        request = self.build_request(recipient, amount)
        async with self._lock:
            quote = await self.prepare(request.to, request.amount)
            record = await self.broadcast(request.to, request.amount, quote)
        return await self.confirm(record, max_blocks_wait)


__all__ = [
    "TransferStatus",
    "TransferRequest",
    "TransferRecord",
    "TransferEngine",
]
