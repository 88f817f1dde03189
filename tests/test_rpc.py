"""
Tests for the node transports.
"""

import json

import httpx
import pytest

from mcwallet.errors import RpcError
from mcwallet.rpc import EthRpcClient, FiberApiClient, hex_to_int, int_to_hex


def test_hex_quantities():
    assert hex_to_int("0x64") == 100
    assert hex_to_int("0x") == 0
    assert int_to_hex(200) == "0xc8"
    with pytest.raises(ValueError):
        hex_to_int("100")
    with pytest.raises(ValueError):
        int_to_hex(-1)


class TestEthRpcClient:
    @pytest.mark.asyncio
    async def test_call(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x64"})

        client = EthRpcClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        assert await client.call("http://node", "eth_blockNumber") == "0x64"
        assert await client.call("http://node", "eth_getBalance", ["0xa", "pending"]) == "0x64"

        assert requests[0]["method"] == "eth_blockNumber"
        assert requests[0]["params"] == []
        assert requests[1]["params"] == ["0xa", "pending"]
        assert requests[1]["id"] == requests[0]["id"] + 1
        await client.close()

    @pytest.mark.asyncio
    async def test_error_reply(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "bad"}},
            )

        client = EthRpcClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        with pytest.raises(RpcError) as exc_info:
            await client.call("http://node", "eth_call")
        assert exc_info.value.code == -32000
        await client.close()

    @pytest.mark.asyncio
    async def test_http_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502)

        client = EthRpcClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        with pytest.raises(httpx.HTTPStatusError):
            await client.call("http://node", "eth_blockNumber")
        await client.close()


class TestFiberApiClient:
    @pytest.mark.asyncio
    async def test_v1_get(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/balance"
            assert request.url.params["addrs"] == "a,b"
            return httpx.Response(200, json={"confirmed": {"coins": 1}})

        client = FiberApiClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        reply = await client.get("http://node/", "balance", {"addrs": "a,b"})
        assert reply == {"confirmed": {"coins": 1}}
        await client.close()

    @pytest.mark.asyncio
    async def test_v1_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text="400 Bad Request - invalid address\n")

        client = FiberApiClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        with pytest.raises(RpcError, match="invalid address") as exc_info:
            await client.post("http://node", "injectTransaction", {"rawtx": "00"})
        assert exc_info.value.code == 400
        await client.close()

    @pytest.mark.asyncio
    async def test_v2_unwraps_data(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v2/transaction"
            assert json.loads(request.content) == {"to": []}
            return httpx.Response(200, json={"data": {"encoded_transaction": "ab"}})

        client = FiberApiClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        reply = await client.post("http://node", "transaction", {"to": []}, use_v2=True)
        assert reply == {"encoded_transaction": "ab"}
        await client.close()

    @pytest.mark.asyncio
    async def test_v2_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                422, json={"error": {"message": "Invalid checksum", "code": 422}}
            )

        client = FiberApiClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        with pytest.raises(RpcError, match="Invalid checksum") as exc_info:
            await client.post("http://node", "address/verify", {"address": "x"}, use_v2=True)
        assert exc_info.value.code == 422
        await client.close()
