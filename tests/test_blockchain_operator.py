"""
Tests for the blockchain operators.
"""

from unittest.mock import MagicMock

import pytest

from mcwallet.config import Settings
from mcwallet.errors import RpcError, UnsupportedOperationError
from mcwallet.models import BasicBlockInfo, CoinSupply, ProgressEvent
from mcwallet.operators.base import BalanceAndOutputsOperator
from mcwallet.operators.eth import EthBlockchainOperator
from mcwallet.operators.fiber import FiberBlockchainOperator


def start_operator(operator_class, context, coin, publish, balance_operator=None):
    operator = operator_class(context, coin)
    publish(
        context,
        operator,
        balance_and_outputs=balance_operator or MagicMock(spec=BalanceAndOutputsOperator),
    )
    return operator


class TestEthBlockchainOperator:
    @pytest.mark.asyncio
    async def test_not_syncing(self, context, eth_coin, eth_node, publish, wait):
        eth_node.responses["eth_syncing"] = False

        operator = start_operator(EthBlockchainOperator, context, eth_coin, publish)
        progress = await wait(operator.progress)

        assert progress == ProgressEvent(current_block=0, highest_block=0, synchronized=True)
        operator.dispose()

    @pytest.mark.asyncio
    async def test_syncing(self, context, eth_coin, eth_node, publish, wait):
        eth_node.responses["eth_syncing"] = {
            "startingBlock": "0x0",
            "currentBlock": "0x64",
            "highestBlock": "0xc8",
        }

        operator = start_operator(EthBlockchainOperator, context, eth_coin, publish)
        progress = await wait(operator.progress)

        assert progress == ProgressEvent(current_block=100, highest_block=200, synchronized=False)
        operator.dispose()

    @pytest.mark.asyncio
    async def test_waits_for_operator_set(self, context, eth_coin, eth_node):
        operator = EthBlockchainOperator(context, eth_coin)
        assert "eth_syncing" not in eth_node.methods()
        assert not operator.progress.has_value
        operator.dispose()

    @pytest.mark.asyncio
    async def test_refreshes_balance_when_synchronized(
        self, context, eth_coin, eth_node, publish, wait
    ):
        context.settings = Settings(
            _env_file=None, blockchain_update_period=0.01, blockchain_error_update_period=0.01
        )
        replies = [{"currentBlock": "0x1", "highestBlock": "0x2"}, False]
        eth_node.responses["eth_syncing"] = lambda params: replies.pop(0) if replies else False
        balance_operator = MagicMock(spec=BalanceAndOutputsOperator)

        operator = start_operator(
            EthBlockchainOperator, context, eth_coin, publish, balance_operator
        )
        await wait(operator.progress, lambda p: p.synchronized)

        balance_operator.refresh_balance.assert_called_once()
        operator.dispose()

    @pytest.mark.asyncio
    async def test_error_keeps_polling(self, context, eth_coin, eth_node, publish, wait):
        context.settings = Settings(
            _env_file=None, blockchain_update_period=0.01, blockchain_error_update_period=0.01
        )
        replies = [RpcError("busy")]

        def syncing(params):
            if replies:
                raise replies.pop(0)
            return False

        eth_node.responses["eth_syncing"] = syncing

        operator = start_operator(EthBlockchainOperator, context, eth_coin, publish)
        progress = await wait(operator.progress)

        assert progress.synchronized
        assert eth_node.methods().count("eth_syncing") == 2
        operator.dispose()

    @pytest.mark.asyncio
    async def test_dispose_completes_progress(self, context, eth_coin, eth_node, publish):
        eth_node.responses["eth_syncing"] = False
        operator = start_operator(EthBlockchainOperator, context, eth_coin, publish)

        operator.dispose()
        operator.dispose()

        assert operator.progress.completed

    @pytest.mark.asyncio
    async def test_last_block(self, context, eth_coin, eth_node):
        eth_node.responses["eth_getBlockByNumber"] = {
            "number": "0x10",
            "timestamp": "0x5f5e100",
            "hash": "0xabc",
        }
        operator = EthBlockchainOperator(context, eth_coin)

        block = await operator.get_last_block()

        assert block == BasicBlockInfo(seq=16, timestamp=100000000, hash="0xabc")
        assert eth_node.calls[-1] == ("eth_getBlockByNumber", ["latest", False])
        operator.dispose()

    @pytest.mark.asyncio
    async def test_coin_supply_unsupported(self, context, eth_coin):
        operator = EthBlockchainOperator(context, eth_coin)
        with pytest.raises(UnsupportedOperationError):
            await operator.get_coin_supply()
        operator.dispose()


class TestFiberBlockchainOperator:
    @pytest.mark.asyncio
    async def test_progress(self, context, fiber_coin, fiber_node, publish, wait):
        fiber_node.get_routes["blockchain/progress"] = {"current": 50, "highest": 80, "peers": []}

        operator = start_operator(FiberBlockchainOperator, context, fiber_coin, publish)
        progress = await wait(operator.progress)

        assert progress == ProgressEvent(current_block=50, highest_block=80, synchronized=False)
        operator.dispose()

    @pytest.mark.asyncio
    async def test_synchronized(self, context, fiber_coin, fiber_node, publish, wait):
        fiber_node.get_routes["blockchain/progress"] = {"current": 80, "highest": 80}

        operator = start_operator(FiberBlockchainOperator, context, fiber_coin, publish)
        progress = await wait(operator.progress)

        assert progress.synchronized
        operator.dispose()

    @pytest.mark.asyncio
    async def test_last_block_and_supply(self, context, fiber_coin, fiber_node):
        fiber_node.get_routes["blockchain/metadata"] = {
            "head": {"seq": 58894, "block_hash": "3961bea8", "timestamp": 1537581604}
        }
        fiber_node.get_routes["coinSupply"] = {
            "current_supply": "7187500.000000",
            "total_supply": "25000000.000000",
            "current_coinhour_supply": "23499025077",
            "total_coinhour_supply": "93679828577",
        }
        operator = FiberBlockchainOperator(context, fiber_coin)

        block = await operator.get_last_block()
        supply = await operator.get_coin_supply()

        assert block == BasicBlockInfo(seq=58894, timestamp=1537581604, hash="3961bea8")
        assert supply == CoinSupply(
            current_supply="7187500.000000",
            total_supply="25000000.000000",
            current_coinhour_supply="23499025077",
            total_coinhour_supply="93679828577",
        )
        operator.dispose()
