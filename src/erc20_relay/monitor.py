"""
Inbound transfer monitoring via JSON-RPC log filters.

A watch installs one ``eth_newFilter`` on (token, Transfer signature,
destination) and polls ``eth_getFilterChanges``. Malformed entries are
logged and skipped; entries for another recipient or another contract are
never emitted. The filter is uninstalled when the watch ends, however it
ends.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from .address import Address
from .amounts import AmountValue
from .config import MonitorConfig
from .erc20 import TRANSFER_EVENT_SIGNATURE, decode_transfer_log
from .exceptions import LogDecodeError, RelayRPCError
from .logging_utils import TransferLogger
from .provider import ChainProvider
from .token import TokenDescriptor

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class MonitorFilter:
    """Which transfers a watch reports."""
    token: Address
    destination: Address
    event_signature: str = TRANSFER_EVENT_SIGNATURE

    def to_params(self) -> Dict[str, Any]:
        """``eth_newFilter`` parameters: destination is the second indexed topic."""
        return {
            "address": self.token.checksum,
            "topics": [self.event_signature, None, self.destination.topic],
        }


@dataclass(frozen=True)
class DecodedTransfer:
    """An inbound transfer observed on chain."""
    sender: Address
    recipient: Address
    amount: AmountValue
    tx_hash: str
    block_number: int
    log_index: int

    @property
    def human_amount(self) -> str:
        return self.amount.to_human()


class TransferMonitor:
    """Watches one token for transfers to a destination address."""

    def __init__(
        self,
        provider: ChainProvider,
        token: TokenDescriptor,
        config: Optional[MonitorConfig] = None,
        sleep: Sleep = asyncio.sleep,
        event_logger: Optional[TransferLogger] = None,
    ):
        self._provider = provider
        self._token = token
        self._config = config or MonitorConfig()
        self._sleep = sleep
        self._events = event_logger or TransferLogger()

    def filter_for(self, destination: Address) -> MonitorFilter:
        return MonitorFilter(token=self._token.address, destination=destination)

    def _decode(self, log: Dict[str, Any], flt: MonitorFilter) -> Optional[DecodedTransfer]:
        try:
            decoded = decode_transfer_log(log)
        except LogDecodeError as e:
            logger.warning(f"Skipping undecodable log in {log.get('transactionHash')}: {e}")
            return None

        emitter = log.get("address")
        if emitter is not None and str(emitter).lower() != flt.token.checksum.lower():
            logger.debug(f"Skipping log from unexpected contract {emitter}")
            return None
        if decoded.recipient != flt.destination:
            logger.debug(f"Skipping transfer to {decoded.recipient} in {decoded.tx_hash}")
            return None

        return DecodedTransfer(
            sender=decoded.sender,
            recipient=decoded.recipient,
            amount=AmountValue(base_units=decoded.value, decimals=self._token.decimals),
            tx_hash=decoded.tx_hash,
            block_number=decoded.block_number,
            log_index=decoded.log_index,
        )

    async def watch(
        self,
        flt: MonitorFilter,
        stop: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[DecodedTransfer]:
        """
        Yield inbound transfers matching ``flt`` until cancelled.

        Ends when the consuming task is cancelled, when the generator is
        closed, or when ``stop`` is set. Transport errors propagate.

        Usage:
            async for transfer in monitor.watch(monitor.filter_for(address)):
                print(transfer.human_amount)
        """
        filter_id = await self._provider.new_log_filter(flt.to_params())
        logger.info(f"Watching {self._token.symbol} transfers to {flt.destination} (filter {filter_id})")
        try:
            while stop is None or not stop.is_set():
                for log in await self._provider.get_filter_changes(filter_id):
                    transfer = self._decode(log, flt)
                    if transfer is None:
                        continue
                    self._events.log_inbound_transfer(
                        transfer.tx_hash,
                        transfer.sender,
                        transfer.recipient,
                        transfer.human_amount,
                        self._token.symbol,
                        transfer.block_number,
                    )
                    yield transfer
                    if stop is not None and stop.is_set():
                        return
                await self._sleep(self._config.poll_interval_seconds)
        finally:
            try:
                await self._provider.uninstall_filter(filter_id)
            except RelayRPCError as e:
                logger.warning(f"Failed to uninstall filter {filter_id}: {e}")
            logger.info(f"Stopped watching filter {filter_id}")

    async def wait_for_first(self, flt: MonitorFilter) -> DecodedTransfer:
        """Block until the first matching transfer arrives, then tear down."""
        stream = self.watch(flt)
        try:
            return await stream.__anext__()
        finally:
            await stream.aclose()


__all__ = ["MonitorFilter", "DecodedTransfer", "TransferMonitor"]
