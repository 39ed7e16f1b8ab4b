"""Single-token ERC-20 transfers: fee preview, broadcast, confirmation and inbound monitoring."""

from .address import (
    Address,
    AddressValidator,
    AllowListEntry,
    TokenAllowList,
    default_allowlist,
)
from .amounts import AmountValue, from_human, to_human
from .client import EvmClient
from .config import (
    ConfirmationConfig,
    FeeConfig,
    LoggingConfig,
    MonitorConfig,
    RelayConfig,
    RelaySettings,
)
from .engine import TransferEngine, TransferRecord, TransferRequest, TransferStatus
from .exceptions import (
    ArithmeticOverflowError,
    ChecksumMismatchError,
    DescriptorResolutionError,
    InvalidAddressFormatError,
    InvalidDecimalsError,
    InvalidTransitionError,
    MalformedDecimalError,
    NotAllowlistedError,
    RelayException,
    RelayRPCError,
    RelayValidationError,
    SecretReleasedError,
    TooManyFractionalDigitsError,
    TransferRevertedError,
    UnsupportedFeeModelError,
)
from .fees import FeeEstimator, FeeModel, FeeQuote
from .logging_utils import TransferLogger, setup_logging
from .monitor import DecodedTransfer, MonitorFilter, TransferMonitor
from .provider import ChainProvider, JsonRpcProvider
from .token import DescriptorSource, TokenClient, TokenDescriptor
from .wallet import MnemonicSecret, SigningIdentity, WalletFactory

__version__ = "0.1.0"

__all__ = [
    "Address",
    "AddressValidator",
    "AllowListEntry",
    "TokenAllowList",
    "default_allowlist",
    "AmountValue",
    "from_human",
    "to_human",
    "EvmClient",
    "ConfirmationConfig",
    "FeeConfig",
    "LoggingConfig",
    "MonitorConfig",
    "RelayConfig",
    "RelaySettings",
    "TransferEngine",
    "TransferRecord",
    "TransferRequest",
    "TransferStatus",
    "ArithmeticOverflowError",
    "ChecksumMismatchError",
    "DescriptorResolutionError",
    "InvalidAddressFormatError",
    "InvalidDecimalsError",
    "InvalidTransitionError",
    "MalformedDecimalError",
    "NotAllowlistedError",
    "RelayException",
    "RelayRPCError",
    "RelayValidationError",
    "SecretReleasedError",
    "TooManyFractionalDigitsError",
    "TransferRevertedError",
    "UnsupportedFeeModelError",
    "FeeEstimator",
    "FeeModel",
    "FeeQuote",
    "TransferLogger",
    "setup_logging",
    "DecodedTransfer",
    "MonitorFilter",
    "TransferMonitor",
    "ChainProvider",
    "JsonRpcProvider",
    "DescriptorSource",
    "TokenClient",
    "TokenDescriptor",
    "MnemonicSecret",
    "SigningIdentity",
    "WalletFactory",
]
