"""Exception hierarchy for erc20-relay.

All relay exceptions inherit from RelayException, so callers can tell
local validation failures (never reach the network) apart from transient
RPC failures and from terminal transfer outcomes.

Usage:
    from erc20_relay.exceptions import RelayRPCError, RelayValidationError

    try:
        quote = await engine.prepare(request.to, request.amount)
    except RelayValidationError:
        ...  # fix the input, do not retry
    except RelayRPCError:
        ...  # transient, caller may retry

All exceptions have:
- error_code: Machine-readable error code (e.g., "INVALID_ADDRESS_FORMAT")
- message: Human-readable error message
- details: Optional additional context dictionary
- to_dict(): Convert to a structured payload for logs
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .engine import TransferRecord


class RelayException(Exception):
    """Base exception for all relay errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Optional additional context
    """

    error_code: str = "RELAY_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a structured payload."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Validation & Input Errors (local, never reach the network)
# =============================================================================

class RelayValidationError(RelayException):
    """Invalid input data or parameters."""

    error_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details=details)


class InvalidAddressFormatError(RelayValidationError):
    """String does not parse as a 20-byte hex address."""

    error_code = "INVALID_ADDRESS_FORMAT"


class ChecksumMismatchError(RelayValidationError):
    """Address parses but is not in canonical EIP-55 casing."""

    error_code = "CHECKSUM_MISMATCH"


class NotAllowlistedError(RelayValidationError):
    """Token contract is not in the allow-list."""

    error_code = "NOT_ALLOWLISTED"


class MalformedDecimalError(RelayValidationError):
    """Amount text is not a plain non-negative decimal number."""

    error_code = "MALFORMED_DECIMAL"


class TooManyFractionalDigitsError(RelayValidationError):
    """Amount has more fractional digits than the token supports."""

    error_code = "TOO_MANY_FRACTIONAL_DIGITS"

    def __init__(self, text: str, digits: int, decimals: int) -> None:
        super().__init__(
            f"Amount {text!r} has {digits} fractional digits, "
            f"token supports at most {decimals}",
            field="amount",
            details={"fractional_digits": digits, "decimals": decimals},
        )


class InvalidDecimalsError(RelayValidationError):
    """Token decimals outside the 0..255 range."""

    error_code = "INVALID_DECIMALS"


class ArithmeticOverflowError(RelayException):
    """Amount or fee computation exceeded its integer range."""

    error_code = "ARITHMETIC_OVERFLOW"


# =============================================================================
# Wallet Errors
# =============================================================================

class WalletError(RelayException):
    """Base class for identity generation and derivation errors."""

    error_code = "WALLET_ERROR"


class SecretReleasedError(WalletError):
    """The mnemonic secret was already wiped."""

    error_code = "SECRET_RELEASED"


# =============================================================================
# Chain & Transfer Errors
# =============================================================================

class RelayChainError(RelayException):
    """Base class for blockchain-related errors."""

    error_code = "CHAIN_ERROR"


class RelayRPCError(RelayChainError):
    """RPC call to the chain node failed (transient, caller may retry)."""

    error_code = "RPC_ERROR"

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        code: Optional[int] = None,
        data: Any = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if method:
            details["method"] = method
        if code is not None:
            details["rpc_code"] = code
        self.method = method
        self.code = code
        self.data = data
        super().__init__(message, details=details)


class UnsupportedFeeModelError(RelayChainError):
    """Chain exposes no base fee, so the priority-fee model cannot be used."""

    error_code = "UNSUPPORTED_FEE_MODEL"


class DescriptorResolutionError(RelayChainError):
    """Token descriptor could not be read from the contract."""

    error_code = "DESCRIPTOR_RESOLUTION_FAILED"


class LogDecodeError(RelayChainError):
    """A log entry is not a well-formed ERC-20 Transfer event."""

    error_code = "LOG_DECODE_ERROR"


class InvalidTransitionError(RelayException):
    """Transfer record is not in a state that allows the requested step."""

    error_code = "INVALID_TRANSITION"


class TransferRevertedError(RelayChainError):
    """Transaction was mined but its execution failed."""

    error_code = "TRANSFER_REVERTED"

    def __init__(self, record: "TransferRecord") -> None:
        self.record = record
        super().__init__(
            f"Transaction {record.tx_hash} reverted in block {record.block_number}",
            details={
                "tx_hash": record.tx_hash,
                "block_number": record.block_number,
                "gas_used": record.gas_used,
            },
        )


__all__ = [
    "RelayException",
    "RelayValidationError",
    "InvalidAddressFormatError",
    "ChecksumMismatchError",
    "NotAllowlistedError",
    "MalformedDecimalError",
    "TooManyFractionalDigitsError",
    "InvalidDecimalsError",
    "ArithmeticOverflowError",
    "WalletError",
    "SecretReleasedError",
    "RelayChainError",
    "RelayRPCError",
    "UnsupportedFeeModelError",
    "DescriptorResolutionError",
    "LogDecodeError",
    "InvalidTransitionError",
    "TransferRevertedError",
]
