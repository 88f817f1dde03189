"""
Registry of the operators for the active coin.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass

from loguru import logger

from mcwallet.coins import Coin, CoinFamily
from mcwallet.operators.base import (
    BalanceAndOutputsOperator,
    BlockchainOperator,
    HistoryOperator,
    NodeOperator,
    Operator,
    OperatorContext,
    SpendingOperator,
    WalletUtilsOperator,
)
from mcwallet.operators.eth import (
    EthBalanceAndOutputsOperator,
    EthBlockchainOperator,
    EthHistoryOperator,
    EthNodeOperator,
    EthSpendingOperator,
    EthWalletUtilsOperator,
)
from mcwallet.operators.fiber import (
    FiberBalanceAndOutputsOperator,
    FiberBlockchainOperator,
    FiberHistoryOperator,
    FiberNodeOperator,
    FiberSpendingOperator,
    FiberWalletUtilsOperator,
)
from mcwallet.streams import StateStream


@dataclass(frozen=True)
class OperatorSet:
    """Operators for one coin, built and disposed together."""

    generation: int
    coin: Coin
    balance_and_outputs: BalanceAndOutputsOperator
    blockchain: BlockchainOperator
    spending: SpendingOperator
    history: HistoryOperator
    wallet_utils: WalletUtilsOperator
    node: NodeOperator

    def __iter__(self) -> Iterator[Operator]:
        yield self.balance_and_outputs
        yield self.blockchain
        yield self.spending
        yield self.history
        yield self.wallet_utils
        yield self.node

    def dispose(self) -> None:
        for operator in self:
            operator.dispose()


# Operator classes for each coin family. The balance operator comes first, as
# other operators get it from the published set.
OPERATOR_CLASSES: dict[CoinFamily, dict[str, Callable[[OperatorContext, Coin], Operator]]] = {
    CoinFamily.ETH: {
        "balance_and_outputs": EthBalanceAndOutputsOperator,
        "blockchain": EthBlockchainOperator,
        "spending": EthSpendingOperator,
        "history": EthHistoryOperator,
        "wallet_utils": EthWalletUtilsOperator,
        "node": EthNodeOperator,
    },
    CoinFamily.FIBER: {
        "balance_and_outputs": FiberBalanceAndOutputsOperator,
        "blockchain": FiberBlockchainOperator,
        "spending": FiberSpendingOperator,
        "history": FiberHistoryOperator,
        "wallet_utils": FiberWalletUtilsOperator,
        "node": FiberNodeOperator,
    },
}


class OperatorService:
    """
    Holds the operator set of the active coin.

    When the coin changes the new set is built and published before the
    previous one is disposed, so consumers that resubscribe synchronously
    always find a valid set.
    """

    def __init__(self, context: OperatorContext):
        self.context = context
        self._closed = False

    @property
    def current_operators(self) -> StateStream[OperatorSet | None]:
        return self.context.current_operators

    @property
    def operators(self) -> OperatorSet | None:
        return self.context.current_operators.value

    def build_operators(self, coin: Coin) -> OperatorSet:
        try:
            classes = OPERATOR_CLASSES[coin.family]
        except KeyError:
            raise ValueError(f"No operators for coin family {coin.family}") from None

        self.context.operators_generation += 1
        built: dict[str, Operator] = {}
        try:
            for name, operator_class in classes.items():
                built[name] = operator_class(self.context, coin)
        except Exception:
            for operator in built.values():
                operator.dispose()
            raise

        return OperatorSet(generation=self.context.operators_generation, coin=coin, **built)

    def switch_coin(self, coin: Coin) -> OperatorSet:
        """Replace the current operators with new ones for coin."""
        if self._closed:
            raise RuntimeError("OperatorService was closed")

        previous = self.operators
        operators = self.build_operators(coin)
        logger.info(f"Switching operators to {coin.coin_name} ({coin.family.value})")
        self.context.current_operators.emit(operators)

        if previous is not None:
            previous.dispose()
            logger.debug(f"Disposed operators for {previous.coin.coin_name}")

        return operators

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        previous = self.operators
        self.context.current_operators.emit(None)
        if previous is not None:
            previous.dispose()
        self.context.current_operators.complete()
        logger.info("Operator service closed")
