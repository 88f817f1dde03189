"""
Tests for the command line interface.
"""

import json
from decimal import Decimal

import httpx
import pytest
from typer.testing import CliRunner

from mcwallet import cli
from mcwallet.coins import CoinFamily
from mcwallet.config import Settings
from mcwallet.models import AddressBalance, ProgressEvent, WalletBalance
from mcwallet.rpc import EthRpcClient, FiberApiClient

runner = CliRunner()

ETHER = 10**18


@pytest.fixture
def fake_run(monkeypatch):
    """Replace the operator runner with one returning a canned result."""
    calls = []

    def install(result):
        async def run(coin, wallets, action, timeout):
            calls.append((coin, wallets, timeout))
            if isinstance(result, Exception):
                raise result
            return result

        monkeypatch.setattr(cli, "run_with_operators", run)
        return calls

    return install


class TestBuildCoin:
    def test_defaults(self):
        coin = cli.build_coin(cli.Family.eth, None, local=False)
        assert coin.family == CoinFamily.ETH
        assert coin.node_url == "http://127.0.0.1:8545"
        assert not coin.is_local

    def test_overrides(self):
        coin = cli.build_coin(
            cli.Family.fiber, "http://node:6420/", True, decimals=3, confirmations=4
        )
        assert coin.node_url == "http://node:6420"
        assert coin.decimals == 3
        assert coin.confirmations_needed == 4


class TestCommands:
    def test_balance(self, fake_run):
        result = WalletBalance()
        first = AddressBalance(current=Decimal(5), predicted=Decimal(5), predicted_hours=Decimal(7))
        result.add("a1", first)
        result.add("a2", AddressBalance(current=Decimal(3), predicted=Decimal(4)))
        calls = fake_run(result)

        outcome = runner.invoke(cli.app, ["balance", "a1", "a2", "--timeout", "5"])

        assert outcome.exit_code == 0, outcome.output
        assert "a1: 5 SKY confirmed, 5 SKY predicted, 7 Coin Hours" in outcome.output
        assert "Total: 8 confirmed, 9 predicted" in outcome.output
        assert "There are pending transactions" in outcome.output

        coin, wallets, timeout = calls[0]
        assert coin.family == CoinFamily.FIBER
        assert wallets[0].address_strings() == ["a1", "a2"]
        assert timeout == 5.0

    def test_eth_balance_has_no_hours(self, fake_run):
        result = WalletBalance()
        result.add("0xa", AddressBalance(current=Decimal(1), predicted=Decimal(1)))
        fake_run(result)

        outcome = runner.invoke(cli.app, ["balance", "0xa", "-c", "eth"])

        assert outcome.exit_code == 0, outcome.output
        assert "0xa: 1 ETH confirmed, 1 ETH predicted" in outcome.output
        assert "Coin Hours" not in outcome.output
        assert "pending" not in outcome.output

    def test_sync_status(self, fake_run):
        fake_run(ProgressEvent(current_block=100, highest_block=200, synchronized=False))

        outcome = runner.invoke(cli.app, ["sync-status", "-c", "eth"])

        assert outcome.exit_code == 0, outcome.output
        assert "Synchronizing: block 100 of 200" in outcome.output

    def test_synchronized(self, fake_run):
        fake_run(ProgressEvent(current_block=10, highest_block=10, synchronized=True))

        outcome = runner.invoke(cli.app, ["sync-status"])

        assert "Synchronized" in outcome.output

    def test_node_version(self, fake_run):
        fake_run("Geth/v1.13.0")

        outcome = runner.invoke(cli.app, ["node-version", "--family", "eth"])

        assert outcome.exit_code == 0, outcome.output
        assert "Geth/v1.13.0" in outcome.output

    def test_timeout(self, fake_run):
        fake_run(TimeoutError())

        outcome = runner.invoke(cli.app, ["node-version"])

        assert outcome.exit_code == 1


def eth_handler(request: httpx.Request) -> httpx.Response:
    payload = json.loads(request.content)
    method, params = payload["method"], payload["params"]
    results = {
        "eth_blockNumber": hex(100),
        "eth_syncing": {"currentBlock": "0x64", "highestBlock": "0xc8"},
        "web3_clientVersion": "Geth/v1.13.0-stable/linux-amd64/go1.21",
    }
    if method == "eth_getBalance":
        _, tag = params
        result = hex(2 * ETHER if tag == "pending" else ETHER + ETHER // 2)
    elif method in results:
        result = results[method]
    else:
        error = {"code": -32601, "message": f"Method {method} not available"}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": error})
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})


def fiber_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "down":
        return httpx.Response(503, text="503 Service Unavailable")
    routes = {
        "/api/v1/balance": {
            "addresses": {
                "2abc": {
                    "confirmed": {"coins": 3000000, "hours": 10},
                    "predicted": {"coins": 3000000, "hours": 12},
                }
            }
        },
        "/api/v1/outputs": {"head_outputs": []},
        "/api/v1/blockchain/progress": {"current": 50, "highest": 50},
        "/api/v1/health": {"version": {"version": "0.27.1"}},
    }
    if request.url.path not in routes:
        return httpx.Response(404, text="404 Not Found")
    return httpx.Response(200, json=routes[request.url.path])


@pytest.fixture
def mock_nodes(monkeypatch):
    """Run the real operators against nodes served by httpx mock transports."""
    requests = []

    def transport(handler):
        def record(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(record))

    monkeypatch.setattr(
        cli, "EthRpcClient", lambda timeout: EthRpcClient(client=transport(eth_handler))
    )
    monkeypatch.setattr(
        cli, "FiberApiClient", lambda timeout: FiberApiClient(client=transport(fiber_handler))
    )
    monkeypatch.setattr(cli, "get_settings", lambda: Settings(_env_file=None))
    return requests


class TestCommandsAgainstNodes:
    def test_eth_balance(self, mock_nodes):
        outcome = runner.invoke(cli.app, ["balance", "0xa1", "-c", "eth", "-t", "10"])

        assert outcome.exit_code == 0, outcome.output
        assert "0xa1: 1.5 ETH confirmed, 2 ETH predicted" in outcome.output
        assert "Total: 1.5 confirmed, 2 predicted" in outcome.output
        assert "There are pending transactions" in outcome.output

    def test_fiber_balance(self, mock_nodes):
        outcome = runner.invoke(cli.app, ["balance", "2abc", "-u", "http://node:6420"])

        assert outcome.exit_code == 0, outcome.output
        assert "2abc: 3 SKY confirmed, 3 SKY predicted, 12 Coin Hours" in outcome.output
        assert all(r.url.host == "node" for r in mock_nodes)

    def test_eth_sync_status(self, mock_nodes):
        outcome = runner.invoke(cli.app, ["sync-status", "-c", "eth"])

        assert outcome.exit_code == 0, outcome.output
        assert "Synchronizing: block 100 of 200" in outcome.output

    def test_fiber_sync_status(self, mock_nodes):
        outcome = runner.invoke(cli.app, ["sync-status"])

        assert outcome.exit_code == 0, outcome.output
        assert "Synchronized" in outcome.output

    def test_eth_node_version(self, mock_nodes):
        outcome = runner.invoke(cli.app, ["node-version", "-c", "eth"])

        assert outcome.exit_code == 0, outcome.output
        assert "Geth/v1.13.0-stable" in outcome.output.splitlines()

    def test_unreachable_node_times_out(self, mock_nodes):
        outcome = runner.invoke(cli.app, ["node-version", "-u", "http://down:6420", "-t", "0.2"])

        assert outcome.exit_code == 1
