"""
Periodic check of the synchronization state of the node.
"""

from __future__ import annotations

import asyncio
from abc import abstractmethod

from loguru import logger

from mcwallet.coins import Coin
from mcwallet.models import ProgressEvent
from mcwallet.operators.base import (
    BalanceAndOutputsOperator,
    BlockchainOperator,
    OperatorContext,
)
from mcwallet.streams import StateStream


class PollingBlockchainOperator(BlockchainOperator):
    """
    Polls the node for its synchronization state.

    Polling starts only after the operator set is published, as the balance
    operator of the same set is needed: when the node finishes synchronizing
    the balance is refreshed, since balances from a node still catching up
    are stale.
    """

    def __init__(self, context: OperatorContext, coin: Coin):
        super().__init__(context, coin)

        self.update_period = self.periods.blockchain
        self.error_update_period = self.periods.blockchain_error

        self._progress: StateStream[ProgressEvent] = self._stream()
        self._balance_operator: BalanceAndOutputsOperator | None = None
        self._data_task: asyncio.Task[None] | None = None

        self._when_operators_ready(self._on_operators_ready)

    @property
    def progress(self) -> StateStream[ProgressEvent]:
        return self._progress

    @abstractmethod
    async def fetch_progress(self) -> ProgressEvent:
        """Ask the node for its synchronization state."""

    def _on_operators_ready(self, operators) -> None:
        self._balance_operator = operators.balance_and_outputs
        self._start_data_refresh(0)

    def _start_data_refresh(self, delay: float) -> None:
        if self._disposed:
            return
        if self._data_task is not None:
            self._data_task.cancel()
        self._data_task = self._spawn(self._refresh_loop(delay), "progress")

    async def _refresh_loop(self, delay: float) -> None:
        while not self._disposed:
            await asyncio.sleep(delay)
            if self._disposed:
                return

            try:
                progress = await self.fetch_progress()
            except Exception as e:
                logger.warning(f"Failed to get the {self.coin.coin_name} sync state: {e}")
                delay = self.error_update_period
                continue

            if self._disposed:
                return

            previous = self._progress.value
            self._progress.emit(progress)
            if (
                progress.synchronized
                and previous is not None
                and not previous.synchronized
                and self._balance_operator is not None
            ):
                logger.info(f"{self.coin.coin_name} node synchronized, refreshing balance")
                self._balance_operator.refresh_balance()

            delay = self.update_period

    def _on_dispose(self) -> None:
        self._data_task = None
        self._balance_operator = None
