from __future__ import annotations

from decimal import Decimal

from mcwallet.operators.node import PollingNodeOperator, parse_client_version


class FiberNodeOperator(PollingNodeOperator):
    async def fetch_node_info(self) -> None:
        health = await self.context.fiber_api.get(self.coin.node_url, "health")

        self._node_version = parse_client_version(health["version"]["version"])

        verification = health.get("user_verify_transaction", {})
        if "burn_factor" in verification:
            self._burn_rate = Decimal(verification["burn_factor"])
        if "max_decimals" in verification:
            self._max_decimals = int(verification["max_decimals"])
