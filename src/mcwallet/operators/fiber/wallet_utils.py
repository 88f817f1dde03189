from __future__ import annotations

import httpx
from loguru import logger

from mcwallet.errors import RpcError
from mcwallet.operators.base import WalletUtilsOperator


class FiberWalletUtilsOperator(WalletUtilsOperator):
    """Checks done by the node. A rejected value and a failed request both mean invalid."""

    async def _verify(self, endpoint: str, data: dict[str, str]) -> bool:
        try:
            await self.context.fiber_api.post(self.coin.node_url, endpoint, data, use_v2=True)
        except (RpcError, httpx.HTTPError) as e:
            logger.debug(f"Verification with {endpoint} failed: {e}")
            return False
        return True

    async def verify_address(self, address: str) -> bool:
        return await self._verify("address/verify", {"address": address})

    async def verify_seed(self, seed: str) -> bool:
        return await self._verify("wallet/seed/verify", {"seed": seed})

    async def generate_seed(self, entropy: int) -> str:
        response = await self.context.fiber_api.get(
            self.coin.node_url, "wallet/newSeed", {"entropy": entropy}
        )
        return response["seed"]
