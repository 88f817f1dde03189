"""
Coin operators: one implementation of each capability per coin family.
"""

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

__all__ = [
    "BalanceAndOutputsOperator",
    "BlockchainOperator",
    "HistoryOperator",
    "NodeOperator",
    "Operator",
    "OperatorContext",
    "SpendingOperator",
    "WalletUtilsOperator",
]
