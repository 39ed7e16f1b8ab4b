"""
Tests for the httpx JSON-RPC provider.
"""
import json

import httpx
import pytest

from erc20_relay.exceptions import RelayRPCError
from erc20_relay.provider import JsonRpcProvider, parse_quantity

RPC_URL = "https://bsc.example.org/rpc"


def rpc_client(results, requests=None, status_code=200):
    """AsyncClient answering each JSON-RPC method from ``results``."""

    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        if requests is not None:
            requests.append(payload)
        if status_code != 200:
            return httpx.Response(status_code, text="upstream unavailable")
        answer = results[payload["method"]]
        if isinstance(answer, dict) and "error" in answer:
            body = {"jsonrpc": "2.0", "id": payload["id"], "error": answer["error"]}
        else:
            body = {"jsonrpc": "2.0", "id": payload["id"], "result": answer}
        return httpx.Response(200, json=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_parse_quantity():
    assert parse_quantity("0x10") == 16
    assert parse_quantity(5) == 5
    assert parse_quantity(None) is None


class TestJsonRpcProvider:
    """Test request building and response mapping."""

    @pytest.mark.asyncio
    async def test_block_number_decoded(self):
        requests = []
        provider = JsonRpcProvider(RPC_URL, client=rpc_client({"eth_blockNumber": "0x2a"}, requests))

        assert await provider.get_block_number() == 42
        assert requests[0]["method"] == "eth_blockNumber"
        assert requests[0]["jsonrpc"] == "2.0"
        assert requests[0]["params"] == []

    @pytest.mark.asyncio
    async def test_chain_id_cached(self):
        requests = []
        provider = JsonRpcProvider(RPC_URL, client=rpc_client({"eth_chainId": "0x38"}, requests))

        assert await provider.get_chain_id() == 56
        assert await provider.get_chain_id() == 56
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_params_encoding(self):
        requests = []
        provider = JsonRpcProvider(RPC_URL, client=rpc_client({
            "eth_getTransactionCount": "0x7",
            "eth_getBlockByNumber": {"number": "0x1", "baseFeePerGas": "0x3b9aca00"},
            "eth_getBalance": "0xde0b6b3a7640000",
        }, requests))

        assert await provider.get_transaction_count("0xabc") == 7
        block = await provider.get_block(1)
        assert await provider.get_balance("0xabc") == 10**18

        assert requests[0]["params"] == ["0xabc", "pending"]
        assert requests[1]["params"] == ["0x1", False]
        assert block["baseFeePerGas"] == "0x3b9aca00"
        assert requests[2]["params"] == ["0xabc", "latest"]

    @pytest.mark.asyncio
    async def test_json_rpc_error(self):
        provider = JsonRpcProvider(RPC_URL, client=rpc_client({
            "eth_sendRawTransaction": {"error": {"code": -32000, "message": "nonce too low"}},
        }))

        with pytest.raises(RelayRPCError) as exc_info:
            await provider.send_raw_transaction("0x02")

        assert exc_info.value.code == -32000
        assert exc_info.value.method == "eth_sendRawTransaction"
        assert "nonce too low" in exc_info.value.message
        assert exc_info.value.details["rpc_code"] == -32000

    @pytest.mark.asyncio
    async def test_http_error(self):
        provider = JsonRpcProvider(RPC_URL, client=rpc_client({}, status_code=503))

        with pytest.raises(RelayRPCError) as exc_info:
            await provider.get_gas_price()
        assert exc_info.value.method == "eth_gasPrice"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        provider = JsonRpcProvider(RPC_URL, client=client)

        with pytest.raises(RelayRPCError):
            await provider.get_block_number()

    @pytest.mark.asyncio
    async def test_missing_receipt_is_none(self):
        provider = JsonRpcProvider(RPC_URL, client=rpc_client({"eth_getTransactionReceipt": None}))
        assert await provider.get_transaction_receipt("0x" + "a" * 64) is None

    @pytest.mark.asyncio
    async def test_filter_lifecycle(self):
        requests = []
        provider = JsonRpcProvider(RPC_URL, client=rpc_client({
            "eth_newFilter": "0x99",
            "eth_getFilterChanges": None,
            "eth_uninstallFilter": True,
        }, requests))

        filter_id = await provider.new_log_filter({"address": "0xabc", "topics": []})
        assert filter_id == "0x99"
        assert await provider.get_filter_changes(filter_id) == []
        assert await provider.uninstall_filter(filter_id) is True
        assert requests[1]["params"] == ["0x99"]

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self):
        client = rpc_client({})
        async with JsonRpcProvider(RPC_URL, client=client):
            pass
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_close_owned_client(self):
        provider = JsonRpcProvider(RPC_URL)
        client = await provider._get_client()
        await provider.close()
        assert client.is_closed
