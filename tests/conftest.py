"""
Pytest configuration for erc20-relay tests.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from web3 import Web3

from erc20_relay.address import BSC_USDT_ADDRESS, Address, AddressValidator, default_allowlist
from erc20_relay.erc20 import TRANSFER_EVENT_SIGNATURE
from erc20_relay.token import TokenDescriptor
from erc20_relay.wallet import MnemonicSecret, WalletFactory

GWEI = 10**9

# Well-known development mnemonic (hardhat / anvil default accounts)
HARDHAT_MNEMONIC = "test test test test test test test test test test test junk"
HARDHAT_ADDRESS_0 = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
HARDHAT_ADDRESS_1 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"

USDT_CHECKSUM = Web3.to_checksum_address(BSC_USDT_ADDRESS)
RECIPIENT = Web3.to_checksum_address("0x" + "ab" * 20)
OTHER = Web3.to_checksum_address("0x" + "cd" * 20)
TX_HASH = "0x" + "a" * 64


def uint_result(value: int) -> str:
    """ABI-encoded uint256 return value."""
    return "0x" + value.to_bytes(32, "big").hex()


def transfer_log(
    sender: str,
    recipient: str,
    value: int,
    token: str = USDT_CHECKSUM,
    tx_hash: str = TX_HASH,
    block_number: int = 100,
    log_index: int = 0,
) -> Dict[str, Any]:
    """Raw JSON-RPC log entry for an ERC-20 Transfer."""
    return {
        "address": token.lower(),
        "topics": [
            TRANSFER_EVENT_SIGNATURE,
            Address.from_string(sender).topic,
            Address.from_string(recipient).topic,
        ],
        "data": uint_result(value),
        "transactionHash": tx_hash,
        "blockNumber": hex(block_number),
        "logIndex": hex(log_index),
    }


def success_receipt(block_number: int = 101, status: int = 1) -> Dict[str, Any]:
    return {
        "transactionHash": TX_HASH,
        "blockNumber": hex(block_number),
        "status": hex(status),
        "gasUsed": hex(52_000),
        "effectiveGasPrice": hex(5 * GWEI),
    }


class FakeProvider:
    """In-memory ChainProvider with scripted responses."""

    def __init__(
        self,
        chain_id: int = 56,
        block_numbers: Optional[List[int]] = None,
        base_fee: Optional[int] = None,
        gas_price: int = 5 * GWEI,
        gas_estimate: int = 21_000,
        receipts: Optional[List[Optional[Dict[str, Any]]]] = None,
        call_results: Optional[Dict[str, Any]] = None,
        filter_batches: Optional[List[List[Dict[str, Any]]]] = None,
        nonce: int = 7,
        native_balance: int = 0,
    ):
        self.chain_id = chain_id
        self.block_numbers = list(block_numbers or [100])
        self.base_fee = base_fee
        self.gas_price = gas_price
        self.gas_estimate = gas_estimate
        self.receipts = list(receipts or [None])
        self.call_results = call_results or {}
        self.filter_batches = list(filter_batches or [])
        self.nonce = nonce
        self.native_balance = native_balance

        self.estimate_calls: List[Dict[str, Any]] = []
        self.eth_calls: List[Dict[str, Any]] = []
        self.sent: List[str] = []
        self.filters: List[Dict[str, Any]] = []
        self.uninstalled: List[str] = []
        self.receipt_polls = 0
        self.block_number_calls = 0

    @staticmethod
    def _next(items: list) -> Any:
        return items.pop(0) if len(items) > 1 else items[0]

    async def get_chain_id(self) -> int:
        return self.chain_id

    async def get_block_number(self) -> int:
        self.block_number_calls += 1
        return self._next(self.block_numbers)

    async def get_block(self, block="latest") -> Optional[Dict[str, Any]]:
        header: Dict[str, Any] = {"number": hex(self.block_numbers[0])}
        if self.base_fee is not None:
            header["baseFeePerGas"] = hex(self.base_fee)
        return header

    async def get_gas_price(self) -> int:
        return self.gas_price

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        self.estimate_calls.append(tx)
        return self.gas_estimate

    async def call(self, tx: Dict[str, Any], block="latest") -> str:
        self.eth_calls.append(tx)
        result = self.call_results[tx["data"][:10]]
        if isinstance(result, Exception):
            raise result
        return result

    async def get_balance(self, address: str, block="latest") -> int:
        return self.native_balance

    async def get_transaction_count(self, address: str, block="pending") -> int:
        return self.nonce

    async def send_raw_transaction(self, signed_tx: str) -> str:
        self.sent.append(signed_tx)
        return TX_HASH

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        self.receipt_polls += 1
        return self._next(self.receipts)

    async def new_log_filter(self, params: Dict[str, Any]) -> str:
        self.filters.append(params)
        return "0x1"

    async def get_filter_changes(self, filter_id: str) -> List[Dict[str, Any]]:
        if self.filter_batches:
            return self.filter_batches.pop(0)
        return []

    async def uninstall_filter(self, filter_id: str) -> bool:
        self.uninstalled.append(filter_id)
        return True


@pytest.fixture(scope="session")
def hardhat_identity():
    """Signing identity for hardhat account 0."""
    with MnemonicSecret(HARDHAT_MNEMONIC) as secret:
        return WalletFactory().derive(secret)


@pytest.fixture
def usdt_descriptor():
    return TokenDescriptor(
        address=Address.from_string(BSC_USDT_ADDRESS),
        decimals=18,
        symbol="USDT",
    )


@pytest.fixture
def validator():
    return AddressValidator(default_allowlist())
