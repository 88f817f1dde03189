"""
Test fixtures and configuration.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest

from mcwallet.coins import Coin, ethereum, skycoin
from mcwallet.config import Settings
from mcwallet.errors import RpcError
from mcwallet.models import AddressBase, WalletBase
from mcwallet.operators.base import Operator, OperatorContext
from mcwallet.rpc import EthRpcClient, FiberApiClient
from mcwallet.signer import InMemoryNoteStore
from mcwallet.wallets import InMemoryWalletSource


class FakeEthNode:
    """
    Replies to JSON-RPC calls like an eth node.

    Balances are keyed by (address, block tag). Any method can be overridden
    through responses with a value, an exception or a callable taking params.
    """

    def __init__(self) -> None:
        self.block_number = 100
        self.balances: dict[tuple[str, str], int] = {}
        self.responses: dict[str, Any] = {}
        self.calls: list[tuple[str, list[Any] | None]] = []
        # Cleared to make balance requests wait
        self.gate = asyncio.Event()
        self.gate.set()

    def set_balance(self, address: str, confirmed: int, predicted: int, block: int | None = None):
        confirmed_block = block if block is not None else self.block_number - 11
        self.balances[(address, hex(confirmed_block))] = confirmed
        self.balances[(address, "pending")] = predicted

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    async def call(self, node_url: str, method: str, params: list[Any] | None = None) -> Any:
        self.calls.append((method, params))

        if method in self.responses:
            response = self.responses[method]
            if isinstance(response, Exception):
                raise response
            return response(params) if callable(response) else response

        if method == "eth_blockNumber":
            return hex(self.block_number)
        if method == "eth_getBalance":
            await self.gate.wait()
            address, tag = params
            return hex(self.balances.get((address, tag), 0))
        raise RpcError(f"Method {method} not available", code=-32601)


class FakeFiberNode:
    """Replies to REST calls like a fiber node. Routes map endpoints to replies."""

    def __init__(self) -> None:
        self.get_routes: dict[str, Any] = {}
        self.post_routes: dict[str, Any] = {}
        self.calls: list[tuple[str, str, Any, bool]] = []

    @staticmethod
    def _reply(routes: dict[str, Any], endpoint: str, data: Any) -> Any:
        if endpoint not in routes:
            raise RpcError(f"404 Not Found: {endpoint}", code=404)
        response = routes[endpoint]
        if isinstance(response, Exception):
            raise response
        return response(data) if callable(response) else response

    async def get(self, node_url: str, endpoint: str, params=None, use_v2: bool = False) -> Any:
        self.calls.append(("GET", endpoint, params, use_v2))
        return self._reply(self.get_routes, endpoint, params)

    async def post(self, node_url: str, endpoint: str, data=None, use_v2: bool = False) -> Any:
        self.calls.append(("POST", endpoint, data, use_v2))
        return self._reply(self.post_routes, endpoint, data)


@pytest.fixture
def settings() -> Settings:
    # Long periods, so loops run once unless a test asks for more
    return Settings(
        _env_file=None,
        balance_update_period=3600,
        balance_error_update_period=3600,
        blockchain_update_period=3600,
        blockchain_error_update_period=3600,
        node_info_retry_period=3600,
    )


@pytest.fixture
def eth_node() -> FakeEthNode:
    return FakeEthNode()


@pytest.fixture
def fiber_node() -> FakeFiberNode:
    return FakeFiberNode()


@pytest.fixture
def wallet_source() -> InMemoryWalletSource:
    return InMemoryWalletSource()


@pytest.fixture
def notes() -> InMemoryNoteStore:
    return InMemoryNoteStore()


@pytest.fixture
def context(
    settings: Settings,
    eth_node: FakeEthNode,
    fiber_node: FakeFiberNode,
    wallet_source: InMemoryWalletSource,
    notes: InMemoryNoteStore,
) -> OperatorContext:
    eth_rpc = AsyncMock(spec=EthRpcClient)
    eth_rpc.call.side_effect = eth_node.call
    fiber_api = AsyncMock(spec=FiberApiClient)
    fiber_api.get.side_effect = fiber_node.get
    fiber_api.post.side_effect = fiber_node.post
    return OperatorContext(
        eth_rpc=eth_rpc,
        fiber_api=fiber_api,
        wallets=wallet_source,
        settings=settings,
        notes=notes,
    )


@pytest.fixture
def eth_coin() -> Coin:
    return ethereum()


@pytest.fixture
def fiber_coin() -> Coin:
    return skycoin()


def make_wallet(wallet_id: str, coin: Coin, addresses: list[str], **kwargs: Any) -> WalletBase:
    return WalletBase(
        id=wallet_id,
        label=kwargs.pop("label", wallet_id),
        coin=coin.coin_name,
        addresses=[AddressBase(address=a) for a in addresses],
        **kwargs,
    )


@pytest.fixture
def wallet_factory():
    return make_wallet


@pytest.fixture
def publish():
    """Publish a minimal operator set for operators built outside OperatorService."""

    def _publish(context: OperatorContext, operator: Operator, **operators: Any) -> None:
        context.current_operators.emit(
            SimpleNamespace(generation=operator.set_generation, coin=operator.coin, **operators)
        )

    return _publish


@pytest.fixture
def wait():
    """Wait, with a timeout, for the first value of a stream matching predicate."""

    async def _wait(stream, predicate=None, timeout: float = 2.0):
        return await asyncio.wait_for(stream.first(predicate), timeout)

    return _wait
