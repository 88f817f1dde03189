"""
Blockchain state of fiber coins.
"""

from __future__ import annotations

from mcwallet.models import BasicBlockInfo, CoinSupply, ProgressEvent
from mcwallet.operators.blockchain import PollingBlockchainOperator


class FiberBlockchainOperator(PollingBlockchainOperator):
    async def fetch_progress(self) -> ProgressEvent:
        response = await self.context.fiber_api.get(self.coin.node_url, "blockchain/progress")
        current = int(response["current"])
        highest = int(response["highest"])
        return ProgressEvent(
            current_block=current,
            highest_block=highest,
            synchronized=current >= highest,
        )

    async def get_last_block(self) -> BasicBlockInfo:
        response = await self.context.fiber_api.get(self.coin.node_url, "blockchain/metadata")
        head = response["head"]
        return BasicBlockInfo(
            seq=int(head["seq"]),
            timestamp=int(head["timestamp"]),
            hash=head["block_hash"],
        )

    async def get_coin_supply(self) -> CoinSupply:
        response = await self.context.fiber_api.get(self.coin.node_url, "coinSupply")
        return CoinSupply(
            current_supply=response["current_supply"],
            total_supply=response["total_supply"],
            current_coinhour_supply=response.get("current_coinhour_supply", ""),
            total_coinhour_supply=response.get("total_coinhour_supply", ""),
        )
