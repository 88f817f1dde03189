"""
Blockchain state of eth-like coins.
"""

from __future__ import annotations

from mcwallet.errors import UnsupportedOperationError
from mcwallet.models import BasicBlockInfo, CoinSupply, ProgressEvent
from mcwallet.operators.blockchain import PollingBlockchainOperator
from mcwallet.rpc import hex_to_int


class EthBlockchainOperator(PollingBlockchainOperator):
    async def fetch_progress(self) -> ProgressEvent:
        result = await self.context.eth_rpc.call(self.coin.node_url, "eth_syncing")

        # The node returns false when it is not syncing
        if not result:
            return ProgressEvent(current_block=0, highest_block=0, synchronized=True)

        return ProgressEvent(
            current_block=hex_to_int(result["currentBlock"]),
            highest_block=hex_to_int(result["highestBlock"]),
            synchronized=False,
        )

    async def get_last_block(self) -> BasicBlockInfo:
        block = await self.context.eth_rpc.call(
            self.coin.node_url, "eth_getBlockByNumber", ["latest", False]
        )
        return BasicBlockInfo(
            seq=hex_to_int(block["number"]),
            timestamp=hex_to_int(block["timestamp"]),
            hash=block["hash"],
        )

    async def get_coin_supply(self) -> CoinSupply:
        raise UnsupportedOperationError(f"{self.coin.coin_name} nodes don't report the coin supply")
