"""
Chain provider capability and its JSON-RPC implementation.

The transfer engine, fee estimator and monitor depend only on the
ChainProvider protocol. JsonRpcProvider is the httpx-backed implementation
used in deployments; it does not retry, and every transport or node failure
surfaces as RelayRPCError.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Protocol, Union

import httpx

from .exceptions import RelayRPCError

logger = logging.getLogger(__name__)

BlockId = Union[int, str]


class ChainProvider(Protocol):
    """Read operations plus one write operation against an EVM node."""

    async def get_chain_id(self) -> int: ...

    async def get_block_number(self) -> int: ...

    async def get_block(self, block: BlockId = "latest") -> Optional[Dict[str, Any]]: ...

    async def get_gas_price(self) -> int: ...

    async def estimate_gas(self, tx: Dict[str, Any]) -> int: ...

    async def call(self, tx: Dict[str, Any], block: BlockId = "latest") -> str: ...

    async def get_balance(self, address: str, block: BlockId = "latest") -> int: ...

    async def get_transaction_count(self, address: str, block: BlockId = "pending") -> int: ...

    async def send_raw_transaction(self, signed_tx: str) -> str: ...

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]: ...

    async def new_log_filter(self, params: Dict[str, Any]) -> str: ...

    async def get_filter_changes(self, filter_id: str) -> List[Dict[str, Any]]: ...

    async def uninstall_filter(self, filter_id: str) -> bool: ...


def _block_param(block: BlockId) -> str:
    return hex(block) if isinstance(block, int) else block


def parse_quantity(value: Any) -> Optional[int]:
    """Decode a JSON-RPC hex quantity; ints pass through, None stays None."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value, 16)


class JsonRpcProvider:
    """
    JSON-RPC client for a single EVM endpoint.

    Features:
    - Lazily created httpx.AsyncClient (or an injected one)
    - Hex quantities decoded to int
    - Transport errors and JSON-RPC errors mapped to RelayRPCError
    - Chain ID cached after the first read
    """

    def __init__(
        self,
        rpc_url: str,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._rpc_url = rpc_url
        self._timeout = timeout_seconds
        self._http_client = client
        self._owns_client = client is None
        self._request_id = 0
        self._chain_id: Optional[int] = None

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=10.0),
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            )
        return self._http_client

    async def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make a JSON-RPC call and return its ``result``."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        client = await self._get_client()
        start_time = time.monotonic()
        try:
            response = await client.post(
                self._rpc_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"RPC {method} transport failure: {e}")
            raise RelayRPCError(f"RPC {method} failed: {e}", method=method) from e
        except ValueError as e:
            raise RelayRPCError(f"RPC {method} returned invalid JSON", method=method) from e

        latency_ms = (time.monotonic() - start_time) * 1000
        logger.debug(f"RPC {method} completed in {latency_ms:.0f}ms")

        if "error" in result:
            error = result["error"] or {}
            raise RelayRPCError(
                f"RPC {method} error: {error.get('message', error)}",
                method=method,
                code=error.get("code"),
                data=error.get("data"),
            )

        return result.get("result")

    async def get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = parse_quantity(await self._call("eth_chainId"))
        return self._chain_id

    async def get_block_number(self) -> int:
        """Get current block number."""
        return parse_quantity(await self._call("eth_blockNumber"))

    async def get_block(self, block: BlockId = "latest") -> Optional[Dict[str, Any]]:
        """Get a block header (transaction hashes only)."""
        return await self._call("eth_getBlockByNumber", [_block_param(block), False])

    async def get_gas_price(self) -> int:
        """Get current gas price in wei."""
        return parse_quantity(await self._call("eth_gasPrice"))

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        """Simulate ``tx`` and return its gas units."""
        return parse_quantity(await self._call("eth_estimateGas", [tx]))

    async def call(self, tx: Dict[str, Any], block: BlockId = "latest") -> str:
        return await self._call("eth_call", [tx, _block_param(block)])

    async def get_balance(self, address: str, block: BlockId = "latest") -> int:
        """Native coin balance in wei."""
        return parse_quantity(await self._call("eth_getBalance", [address, _block_param(block)]))

    async def get_transaction_count(self, address: str, block: BlockId = "pending") -> int:
        """Get transaction count (nonce) for address."""
        return parse_quantity(await self._call("eth_getTransactionCount", [address, _block_param(block)]))

    async def send_raw_transaction(self, signed_tx: str) -> str:
        """Broadcast signed transaction."""
        return await self._call("eth_sendRawTransaction", [signed_tx])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self._call("eth_getTransactionReceipt", [tx_hash])

    async def new_log_filter(self, params: Dict[str, Any]) -> str:
        """Install a log filter and return its id."""
        return await self._call("eth_newFilter", [params])

    async def get_filter_changes(self, filter_id: str) -> List[Dict[str, Any]]:
        """Logs matching the filter since the previous poll."""
        return await self._call("eth_getFilterChanges", [filter_id]) or []

    async def uninstall_filter(self, filter_id: str) -> bool:
        return bool(await self._call("eth_uninstallFilter", [filter_id]))

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "JsonRpcProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


__all__ = ["BlockId", "ChainProvider", "JsonRpcProvider", "parse_quantity"]
