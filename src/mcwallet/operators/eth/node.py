from __future__ import annotations

from mcwallet.operators.node import PollingNodeOperator, parse_client_version


class EthNodeOperator(PollingNodeOperator):
    """Node info of eth-like coins. Transactions burn no hours, so the burn rate stays 1."""

    async def fetch_node_info(self) -> None:
        version = await self.context.eth_rpc.call(self.coin.node_url, "web3_clientVersion")
        self._node_version = parse_client_version(version)
        self._max_decimals = self.coin.decimals
