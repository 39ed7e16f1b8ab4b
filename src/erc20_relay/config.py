"""
Configuration management for erc20-relay.

Provides:
- RelaySettings: deployment values read from the environment (RPC endpoint,
  mnemonic, token contract, recipient)
- Tuning dataclasses for fee estimation, confirmation polling, the transfer
  monitor and structured logging
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GWEI = 10**9


@dataclass
class FeeConfig:
    """Configuration for fee estimation."""
    # Fixed priority fee floor paid to the block producer
    priority_fee_wei: int = 2 * GWEI

    # max_fee = base_fee * multiplier + priority fee (one block of headroom)
    base_fee_multiplier: int = 2

    # Fall back to the legacy gas price when the chain has no base fee
    allow_legacy_fallback: bool = True


@dataclass
class ConfirmationConfig:
    """Configuration for receipt polling."""
    poll_interval_seconds: float = 10.0

    # Blocks past submission before a pending transfer is presumed stuck
    max_blocks_wait: int = 50


@dataclass
class MonitorConfig:
    """Configuration for inbound transfer monitoring."""
    poll_interval_seconds: float = 3.0


@dataclass
class LoggingConfig:
    """Configuration for transfer event logging."""
    event_level: str = "INFO"
    error_level: str = "ERROR"

    # Partial masking of addresses in structured payloads
    mask_addresses: bool = False


@dataclass
class RelayConfig:
    """Master tuning configuration."""
    fees: FeeConfig = field(default_factory=FeeConfig)
    confirmation: ConfirmationConfig = field(default_factory=ConfirmationConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Recipients must be in canonical checksum casing
    strict_recipient_checksum: bool = True


class RelaySettings(BaseSettings):
    """Deployment settings.

    Every field reads ``RELAY_<NAME>`` and also accepts the variable names
    used by existing BSC deployments (``BSC_API``, ``MAIN_PASSPHRASE``, ...).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    rpc_url: str = Field(validation_alias=AliasChoices("RELAY_RPC_URL", "BSC_API"))
    mnemonic: SecretStr = Field(
        validation_alias=AliasChoices("RELAY_MNEMONIC", "MAIN_PASSPHRASE"),
    )
    mnemonic_password: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_MNEMONIC_PASSWORD", "MAIN_PASSPHRASE_PASSWORD"),
    )
    token_contract: str = Field(
        validation_alias=AliasChoices("RELAY_TOKEN_CONTRACT", "USDT_CONTRACT_BSC"),
    )
    recipient: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_RECIPIENT", "XBTS_BSC_WALLET"),
    )
    log_level: str = Field(default="INFO", validation_alias="RELAY_LOG_LEVEL")
    max_blocks_wait: int = Field(default=50, ge=0, validation_alias="RELAY_MAX_BLOCKS_WAIT")

    @field_validator("rpc_url")
    @classmethod
    def _check_rpc_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("rpc_url must be an http(s) URL")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    def build_config(self) -> RelayConfig:
        """Tuning config seeded from these settings."""
        config = RelayConfig()
        config.confirmation.max_blocks_wait = self.max_blocks_wait
        return config
