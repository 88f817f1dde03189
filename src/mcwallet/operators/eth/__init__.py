"""
Operators for account based, eth-like coins.
"""

from mcwallet.operators.eth.balance import EthBalanceAndOutputsOperator
from mcwallet.operators.eth.blockchain import EthBlockchainOperator
from mcwallet.operators.eth.history import EthHistoryOperator
from mcwallet.operators.eth.node import EthNodeOperator
from mcwallet.operators.eth.spending import EthSpendingOperator
from mcwallet.operators.eth.wallet_utils import EthWalletUtilsOperator

__all__ = [
    "EthBalanceAndOutputsOperator",
    "EthBlockchainOperator",
    "EthHistoryOperator",
    "EthNodeOperator",
    "EthSpendingOperator",
    "EthWalletUtilsOperator",
]
