"""
Operators for fiber coins (UTXO based, with coin hours).
"""

from mcwallet.operators.fiber.balance import FiberBalanceAndOutputsOperator
from mcwallet.operators.fiber.blockchain import FiberBlockchainOperator
from mcwallet.operators.fiber.history import FiberHistoryOperator
from mcwallet.operators.fiber.node import FiberNodeOperator
from mcwallet.operators.fiber.spending import FiberSpendingOperator
from mcwallet.operators.fiber.wallet_utils import FiberWalletUtilsOperator

__all__ = [
    "FiberBalanceAndOutputsOperator",
    "FiberBlockchainOperator",
    "FiberHistoryOperator",
    "FiberNodeOperator",
    "FiberSpendingOperator",
    "FiberWalletUtilsOperator",
]
