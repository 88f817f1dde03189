"""
Node info retrieval shared by every coin family.
"""

from __future__ import annotations

import asyncio
from abc import abstractmethod
from decimal import Decimal

from loguru import logger

from mcwallet.coins import Coin
from mcwallet.operators.base import NodeOperator, OperatorContext
from mcwallet.streams import StateStream

# Version strings with an unknown format longer than this are truncated
MAX_RAW_VERSION_LENGTH = 15
TRUNCATED_VERSION_LENGTH = 12


def parse_client_version(raw: str) -> str:
    """
    Reduce a node version string to something short enough to be displayed.

    Strings like "Geth/v1.10.1-stable/linux-amd64/go1.16" become
    "Geth/v1.10.1-stable". Strings with an unknown format are kept if short
    and truncated otherwise. Never fails.
    """
    text = raw if isinstance(raw, str) else str(raw)
    parts = text.split("/")
    if len(parts) >= 2:
        return f"{parts[0]}/{parts[1]}"
    if len(text) < MAX_RAW_VERSION_LENGTH:
        return text
    return text[:TRUNCATED_VERSION_LENGTH] + "..."


class PollingNodeOperator(NodeOperator):
    """Gets the node info once, retrying after a delay until it succeeds."""

    def __init__(self, context: OperatorContext, coin: Coin):
        super().__init__(context, coin)

        self.retry_period = self.periods.node_info_retry

        self._remote_node_data_updated: StateStream[bool] = self._stream(False)
        self._node_version = ""
        self._burn_rate = Decimal(1)
        self._max_decimals = coin.decimals

        self._spawn(self._update_data(), "node-info")

    @property
    def remote_node_data_updated(self) -> StateStream[bool]:
        return self._remote_node_data_updated

    @property
    def node_version(self) -> str:
        return self._node_version

    @property
    def current_max_decimals(self) -> int:
        return self._max_decimals

    @property
    def burn_rate(self) -> Decimal:
        return self._burn_rate

    @abstractmethod
    async def fetch_node_info(self) -> None:
        """Get the data from the node and save it in the instance."""

    async def _update_data(self) -> None:
        while not self._disposed:
            try:
                await self.fetch_node_info()
            except Exception as e:
                logger.warning(
                    f"Failed to get the {self.coin.coin_name} node info, "
                    f"retrying in {self.retry_period}s: {e}"
                )
                await asyncio.sleep(self.retry_period)
                continue

            if not self._disposed:
                logger.debug(f"{self.coin.coin_name} node version: {self._node_version}")
                self._remote_node_data_updated.emit(True)
            return
