"""
Client bootstrap: wires deployment settings into the relay components.

Usage:
    settings = RelaySettings()
    async with EvmClient.from_settings(settings) as client:
        engine = await client.engine()
        record = await engine.transfer(settings.recipient, "1.5")
"""
from __future__ import annotations

import logging
from typing import Optional

from .address import AddressValidator, TokenAllowList, default_allowlist
from .config import RelayConfig, RelaySettings
from .engine import Sleep, TransferEngine
from .logging_utils import TransferLogger
from .monitor import TransferMonitor
from .provider import ChainProvider, JsonRpcProvider
from .token import TokenClient
from .wallet import MnemonicSecret, SigningIdentity, WalletFactory

logger = logging.getLogger(__name__)


class EvmClient:
    """One provider, one signing identity and one allow-listed token."""

    def __init__(
        self,
        provider: ChainProvider,
        identity: SigningIdentity,
        token_contract: str,
        allowlist: Optional[TokenAllowList] = None,
        config: Optional[RelayConfig] = None,
        sleep: Optional[Sleep] = None,
    ):
        self._provider = provider
        self._identity = identity
        self._config = config or RelayConfig()
        self._validator = AddressValidator(allowlist or default_allowlist())
        self._sleep = sleep
        self._events = TransferLogger(config=self._config.logging)

        # Token contract casing is not enforced
        token_address = self._validator.parse_address(token_contract)
        self._token = TokenClient(
            provider,
            self._validator.allowlist.resolve(token_address),
            event_logger=self._events,
        )

    @classmethod
    def from_settings(
        cls,
        settings: RelaySettings,
        config: Optional[RelayConfig] = None,
        allowlist: Optional[TokenAllowList] = None,
    ) -> "EvmClient":
        """
        Build a client from environment settings.

        The identity at index 0 is derived inside a secret scope; the
        mnemonic buffer is wiped before this returns.
        """
        password = (
            settings.mnemonic_password.get_secret_value()
            if settings.mnemonic_password is not None
            else None
        )
        with MnemonicSecret(settings.mnemonic.get_secret_value()) as secret:
            identity = WalletFactory().derive(secret, password=password, index=0)

        logger.info(f"Loaded identity {identity.address} for {settings.rpc_url}")
        return cls(
            provider=JsonRpcProvider(settings.rpc_url),
            identity=identity,
            token_contract=settings.token_contract,
            allowlist=allowlist,
            config=config or settings.build_config(),
        )

    @property
    def provider(self) -> ChainProvider:
        return self._provider

    @property
    def identity(self) -> SigningIdentity:
        return self._identity

    @property
    def validator(self) -> AddressValidator:
        return self._validator

    def token(self) -> TokenClient:
        return self._token

    async def engine(self) -> TransferEngine:
        """Transfer engine for the configured token; resolves its descriptor first."""
        descriptor = await self._token.resolve_descriptor()
        kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
        return TransferEngine(
            self._provider,
            self._identity,
            descriptor,
            self._validator,
            config=self._config,
            event_logger=self._events,
            **kwargs,
        )

    async def monitor(self) -> TransferMonitor:
        """Inbound transfer monitor for the configured token."""
        descriptor = await self._token.resolve_descriptor()
        kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
        return TransferMonitor(
            self._provider,
            descriptor,
            config=self._config.monitor,
            event_logger=self._events,
            **kwargs,
        )

    async def aclose(self) -> None:
        close = getattr(self._provider, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "EvmClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


__all__ = ["EvmClient"]
