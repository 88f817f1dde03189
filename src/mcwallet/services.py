"""
Services used by the rest of the application.

Each service follows the operator set published by OperatorService, keeps
the operator of its capability for the active coin and re-exposes it
unchanged. Consumers can hold a service for the whole life of the process
while the operators behind it are replaced on every coin change.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Generic, TypeVar

from mcwallet.errors import OperatorDisposedError
from mcwallet.models import (
    AddressesHistoryResponse,
    BasicBlockInfo,
    CoinSupply,
    GeneratedTransaction,
    HoursDistributionOptions,
    OldTransaction,
    Output,
    PendingTransactionsResponse,
    ProgressEvent,
    RecommendedFees,
    TransactionDestination,
    WalletBase,
    WalletWithBalance,
    WalletWithOutputs,
)
from mcwallet.operators.base import (
    BalanceAndOutputsOperator,
    BlockchainOperator,
    HistoryOperator,
    NodeOperator,
    Operator,
    SpendingOperator,
    WalletUtilsOperator,
)
from mcwallet.operators.registry import OperatorService, OperatorSet
from mcwallet.streams import StateStream

O = TypeVar("O", bound=Operator)


class OperatorFacade(Generic[O]):
    """Follows the operator of one capability in the current operator set."""

    # Name of the OperatorSet field with the operator
    capability = ""

    def __init__(self, operator_service: OperatorService):
        self._operator: O | None = None
        self._subscription = operator_service.current_operators.subscribe(self._on_operators)

    def _on_operators(self, operators: OperatorSet | None) -> None:
        self._operator = getattr(operators, self.capability) if operators is not None else None

    @property
    def operator(self) -> O:
        if self._operator is None or self._operator.disposed:
            raise OperatorDisposedError(f"No {self.capability} operator available")
        return self._operator

    def close(self) -> None:
        self._subscription.unsubscribe()
        self._operator = None


class BalanceAndOutputsService(OperatorFacade[BalanceAndOutputsOperator]):
    capability = "balance_and_outputs"

    @property
    def wallets_with_balance(self) -> StateStream[list[WalletWithBalance]]:
        return self.operator.wallets_with_balance

    @property
    def last_balances_update_time(self) -> StateStream[datetime]:
        return self.operator.last_balances_update_time

    @property
    def has_pending_transactions(self) -> StateStream[bool]:
        return self.operator.has_pending_transactions

    @property
    def first_full_update_made(self) -> StateStream[bool]:
        return self.operator.first_full_update_made

    @property
    def had_error_refreshing_balance(self) -> StateStream[bool]:
        return self.operator.had_error_refreshing_balance

    @property
    def refreshing_balance(self) -> StateStream[bool]:
        return self.operator.refreshing_balance

    @property
    def outputs_with_wallets(self) -> StateStream[list[WalletWithOutputs]]:
        return self.operator.outputs_with_wallets

    def refresh_balance(self) -> None:
        self.operator.refresh_balance()

    async def get_outputs(self, addresses: list[str]) -> list[Output]:
        return await self.operator.get_outputs(addresses)

    async def get_wallet_unspent_outputs(self, wallet: WalletBase) -> list[Output]:
        return await self.operator.get_wallet_unspent_outputs(wallet)


class BlockchainService(OperatorFacade[BlockchainOperator]):
    capability = "blockchain"

    @property
    def progress(self) -> StateStream[ProgressEvent]:
        return self.operator.progress

    async def get_last_block(self) -> BasicBlockInfo:
        return await self.operator.get_last_block()

    async def get_coin_supply(self) -> CoinSupply:
        return await self.operator.get_coin_supply()


class SpendingService(OperatorFacade[SpendingOperator]):
    capability = "spending"

    async def create_transaction(
        self,
        wallet: WalletBase | None,
        addresses: list[str] | None,
        unspents: list[str] | None,
        destinations: list[TransactionDestination],
        hours_distribution: HoursDistributionOptions,
        change_address: str | None,
        password: str | None,
        unsigned: bool,
        fee: str = "",
    ) -> GeneratedTransaction:
        return await self.operator.create_transaction(
            wallet,
            addresses,
            unspents,
            destinations,
            hours_distribution,
            change_address,
            password,
            unsigned,
            fee,
        )

    async def sign_transaction(
        self,
        wallet: WalletBase,
        password: str | None,
        transaction: GeneratedTransaction,
        raw_transaction: str = "",
    ) -> str:
        return await self.operator.sign_transaction(wallet, password, transaction, raw_transaction)

    async def inject_transaction(self, encoded_tx: str, note: str | None = None) -> bool:
        return await self.operator.inject_transaction(encoded_tx, note)

    async def get_current_recommended_fees(self) -> RecommendedFees | None:
        return await self.operator.get_current_recommended_fees()


class HistoryService(OperatorFacade[HistoryOperator]):
    capability = "history"

    async def get_transactions_history(self, wallet: WalletBase | None) -> list[OldTransaction]:
        return await self.operator.get_transactions_history(wallet)

    async def get_pending_transactions(self) -> PendingTransactionsResponse:
        return await self.operator.get_pending_transactions()

    async def get_addresses_history(self, wallet: WalletBase) -> AddressesHistoryResponse:
        return await self.operator.get_addresses_history(wallet)


class WalletUtilsService(OperatorFacade[WalletUtilsOperator]):
    capability = "wallet_utils"

    async def verify_address(self, address: str) -> bool:
        return await self.operator.verify_address(address)

    async def verify_seed(self, seed: str) -> bool:
        return await self.operator.verify_seed(seed)

    async def generate_seed(self, entropy: int) -> str:
        return await self.operator.generate_seed(entropy)


class NodeService(OperatorFacade[NodeOperator]):
    capability = "node"

    @property
    def remote_node_data_updated(self) -> StateStream[bool]:
        return self.operator.remote_node_data_updated

    @property
    def node_version(self) -> str:
        return self.operator.node_version

    @property
    def current_max_decimals(self) -> int:
        return self.operator.current_max_decimals

    @property
    def burn_rate(self) -> Decimal:
        return self.operator.burn_rate
