"""
Structured logging for transfer lifecycle events.

Features:
- One method per event (balance read, descriptor fallback, fee quote,
  broadcast, confirmation outcome, inbound transfer)
- Message plus an ``extra`` payload for structured handlers
- Optional address masking
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .config import LoggingConfig

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Kinds of logged relay events."""
    BALANCE_READ = "balance_read"
    DESCRIPTOR_FALLBACK = "descriptor_fallback"
    FEE_QUOTE = "fee_quote"
    BROADCAST = "broadcast"
    CONFIRMATION = "confirmation"
    INBOUND_TRANSFER = "inbound_transfer"


@dataclass
class TransferEvent:
    """A single structured log event."""
    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            **self.data,
        }


class TransferLogger:
    """Emits relay events through a stdlib logger."""

    def __init__(
        self,
        name: str = "erc20_relay",
        config: Optional[LoggingConfig] = None,
    ):
        self._logger = logging.getLogger(name)
        self._config = config or LoggingConfig()

    @property
    def config(self) -> LoggingConfig:
        return self._config

    def _get_level(self, level_str: str) -> int:
        """Convert level string to logging level."""
        return getattr(logging, level_str.upper(), logging.INFO)

    def _address(self, address: Any) -> str:
        text = str(address)
        if self._config.mask_addresses:
            return self._mask_address(text)
        return text

    @staticmethod
    def _mask_address(address: str) -> str:
        """Mask middle portion of address for privacy."""
        if len(address) < 10:
            return address
        return f"{address[:6]}...{address[-4:]}"

    @staticmethod
    def _format_log_data(data: Dict[str, Any]) -> str:
        """Format data for logging."""
        def convert(obj):
            if isinstance(obj, datetime):
                return obj.isoformat()
            if isinstance(obj, Enum):
                return obj.value
            # ints past 2**53 are rendered as strings
            if isinstance(obj, int) and not isinstance(obj, bool) and obj > 2**53:
                return str(obj)
            return obj

        formatted = {k: convert(v) for k, v in data.items()}
        return json.dumps(formatted, default=str)

    def _emit(self, level: int, message: str, event: TransferEvent) -> TransferEvent:
        payload = event.to_dict()
        self._logger.log(
            level,
            message,
            extra={"relay_event": payload, "relay_event_json": self._format_log_data(payload)},
        )
        return event

    def log_balance(self, owner: Any, symbol: str, human_amount: str, base_units: int) -> TransferEvent:
        """Log a token or native balance read."""
        event = TransferEvent(EventType.BALANCE_READ, {
            "owner": self._address(owner),
            "symbol": symbol,
            "amount": human_amount,
            "base_units": base_units,
        })
        return self._emit(
            self._get_level(self._config.event_level),
            f"Balance of {self._address(owner)}: {human_amount} {symbol}",
            event,
        )

    def log_descriptor_fallback(self, token: Any, decimals: int, reason: str) -> TransferEvent:
        """Log that token decimals came from the allow-list instead of the chain."""
        event = TransferEvent(EventType.DESCRIPTOR_FALLBACK, {
            "token": self._address(token),
            "decimals": decimals,
            "reason": reason,
        })
        return self._emit(
            logging.WARNING,
            f"decimals() unavailable for {self._address(token)}, "
            f"using allow-list value {decimals}: {reason}",
            event,
        )

    def log_fee_quote(self, quote: Any, native_symbol: str = "BNB") -> TransferEvent:
        """Log a fee preview."""
        data = quote.to_dict()
        data["total_cost_human"] = quote.total_cost_human()
        event = TransferEvent(EventType.FEE_QUOTE, data)
        return self._emit(
            self._get_level(self._config.event_level),
            f"Fee quote ({quote.model.value}): {quote.gas_units} gas, "
            f"max {data['total_cost_human']} {native_symbol}",
            event,
        )

    def log_broadcast(
        self,
        tx_hash: str,
        sender: Any,
        recipient: Any,
        human_amount: str,
        symbol: str,
        nonce: int,
        submission_block: int,
    ) -> TransferEvent:
        """Log transaction submission."""
        event = TransferEvent(EventType.BROADCAST, {
            "tx_hash": tx_hash,
            "from_address": self._address(sender),
            "to_address": self._address(recipient),
            "amount": human_amount,
            "symbol": symbol,
            "nonce": nonce,
            "submission_block": submission_block,
        })
        return self._emit(
            self._get_level(self._config.event_level),
            f"Transaction submitted: {tx_hash} sending {human_amount} {symbol} "
            f"to {self._address(recipient)}",
            event,
        )

    def log_confirmation(
        self,
        tx_hash: str,
        status: str,
        block_number: Optional[int] = None,
        gas_used: Optional[int] = None,
    ) -> TransferEvent:
        """Log the outcome of confirmation polling."""
        event = TransferEvent(EventType.CONFIRMATION, {
            "tx_hash": tx_hash,
            "status": status,
            "block_number": block_number,
            "gas_used": gas_used,
        })
        if status == "confirmed":
            level = self._get_level(self._config.event_level)
            message = f"Transaction confirmed: {tx_hash} in block {block_number}"
        elif status == "reverted":
            level = self._get_level(self._config.error_level)
            message = f"Transaction reverted: {tx_hash} in block {block_number}"
        else:
            level = logging.WARNING
            message = f"Transaction {tx_hash} not mined in time ({status})"
        return self._emit(level, message, event)

    def log_inbound_transfer(
        self,
        tx_hash: str,
        sender: Any,
        recipient: Any,
        human_amount: str,
        symbol: str,
        block_number: int,
    ) -> TransferEvent:
        """Log a transfer observed by the monitor."""
        event = TransferEvent(EventType.INBOUND_TRANSFER, {
            "tx_hash": tx_hash,
            "from_address": self._address(sender),
            "to_address": self._address(recipient),
            "amount": human_amount,
            "symbol": symbol,
            "block_number": block_number,
        })
        return self._emit(
            self._get_level(self._config.event_level),
            f"Received {human_amount} {symbol} from {self._address(sender)} in block {block_number}",
            event,
        )


def setup_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
    json_format: bool = False,
) -> None:
    """
    Set up logging configuration.

    Args:
        level: Log level
        format_string: Custom format string
        json_format: Use JSON formatting
    """
    if format_string is None:
        if json_format:
            format_string = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
        else:
            format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=format_string,
    )

    logging.getLogger("erc20_relay").setLevel(getattr(logging, level.upper()))
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


__all__ = [
    "EventType",
    "TransferEvent",
    "TransferLogger",
    "setup_logging",
]
