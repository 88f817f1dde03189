"""
Operator contracts and lifecycle.

An operator is the implementation of one capability (balance, blockchain
state, spending, history, wallet utilities, node info) for one coin family.
Every operator is built with (context, coin) and must be disposed with
dispose() when the active coin changes. Disposal cancels the background
tasks, drops the subscriptions to other components and completes every
stream the operator exposes.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from loguru import logger

from mcwallet.coins import Coin
from mcwallet.config import Settings, UpdatePeriods
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
from mcwallet.rpc import EthRpcClient, FiberApiClient
from mcwallet.signer import NoteStore, TransactionSigner
from mcwallet.streams import NO_VALUE, StateStream, Subscription
from mcwallet.wallets import WalletSource

if TYPE_CHECKING:
    from mcwallet.operators.registry import OperatorSet


@dataclass
class OperatorContext:
    """Process-scoped dependencies shared by every operator."""

    eth_rpc: EthRpcClient
    fiber_api: FiberApiClient
    wallets: WalletSource
    settings: Settings = field(default_factory=Settings)
    signer: TransactionSigner | None = None
    notes: NoteStore | None = None
    # Published by OperatorService, None while no coin is active
    current_operators: StateStream[OperatorSet | None] = field(
        default_factory=lambda: StateStream(None)
    )
    # Incremented by OperatorService each time it starts building a new set
    operators_generation: int = 0

    async def close(self) -> None:
        await self.eth_rpc.close()
        await self.fiber_api.close()


class Operator(ABC):
    """Lifecycle shared by all operators."""

    def __init__(self, context: OperatorContext, coin: Coin):
        self.context = context
        self.coin = coin
        self.periods: UpdatePeriods = context.settings.periods_for(coin)
        # Generation of the operator set this instance belongs to
        self.set_generation = context.operators_generation

        self._disposed = False
        self._tasks: set[asyncio.Task[Any]] = set()
        self._subscriptions: list[Subscription] = []
        self._streams: list[StateStream[Any]] = []

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _stream(self, initial: Any = NO_VALUE) -> StateStream[Any]:
        """Create a stream that is completed on dispose()."""
        stream: StateStream[Any] = StateStream(initial)
        self._streams.append(stream)
        return stream

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=f"{type(self).__name__}:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _track(self, subscription: Subscription) -> Subscription:
        self._subscriptions.append(subscription)
        return subscription

    def _when_operators_ready(self, callback: Callable[[OperatorSet], None]) -> None:
        """
        Call callback once the operator set this operator belongs to is published.

        The set is built before being published, so it is never available
        during construction.
        """
        called = False
        subscription: Subscription | None = None

        def on_operators(operators: OperatorSet | None) -> None:
            nonlocal called
            if called or self._disposed or operators is None:
                return
            if operators.generation != self.set_generation:
                return
            called = True
            if subscription is not None:
                subscription.unsubscribe()
            callback(operators)

        subscription = self._track(self.context.current_operators.subscribe(on_operators))
        if called:
            subscription.unsubscribe()

    def _check_alive(self) -> None:
        if self._disposed:
            raise OperatorDisposedError(f"{type(self).__name__} was disposed")

    def _on_dispose(self) -> None:
        """Hook for subclasses, runs before the streams are completed."""

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True

        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

        self._on_dispose()

        for stream in self._streams:
            stream.complete()

        logger.debug(f"{type(self).__name__} for {self.coin.coin_name} disposed")


class BalanceAndOutputsOperator(Operator):
    """Keeps the balance of every wallet of the coin updated."""

    @property
    @abstractmethod
    def wallets_with_balance(self) -> StateStream[list[WalletWithBalance]]:
        """Wallet list with balances, updated periodically."""

    @property
    @abstractmethod
    def last_balances_update_time(self) -> StateStream[datetime]:
        """Time of the last balance obtained from the node."""

    @property
    @abstractmethod
    def has_pending_transactions(self) -> StateStream[bool]:
        """True if any wallet is affected by unconfirmed transactions."""

    @property
    @abstractmethod
    def first_full_update_made(self) -> StateStream[bool]:
        """Becomes True once the balance was obtained from the node for the first time."""

    @property
    @abstractmethod
    def had_error_refreshing_balance(self) -> StateStream[bool]:
        """True if the last attempt to get the balance from the node failed."""

    @property
    @abstractmethod
    def refreshing_balance(self) -> StateStream[bool]:
        """True while the balance is being updated."""

    @property
    @abstractmethod
    def outputs_with_wallets(self) -> StateStream[list[WalletWithOutputs]]:
        """Unspent outputs of every wallet, grouped by address."""

    @abstractmethod
    def refresh_balance(self) -> None:
        """Cancel any scheduled update and start a new one immediately."""

    @abstractmethod
    async def get_outputs(self, addresses: list[str]) -> list[Output]:
        """Unspent outputs of the given addresses."""

    @abstractmethod
    async def get_wallet_unspent_outputs(self, wallet: WalletBase) -> list[Output]:
        """Unspent outputs of every address of a wallet."""


class BlockchainOperator(Operator):
    """Checks the state of the blockchain."""

    @property
    @abstractmethod
    def progress(self) -> StateStream[ProgressEvent]:
        """Synchronization state of the node, updated periodically."""

    @abstractmethod
    async def get_last_block(self) -> BasicBlockInfo:
        """Basic info of the last block added to the blockchain."""

    @abstractmethod
    async def get_coin_supply(self) -> CoinSupply:
        """Current and max coin supply."""


class SpendingOperator(Operator):
    """Creates, signs and sends transactions."""

    @abstractmethod
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
        """
        Create a transaction, without sending it to the network.

        Unspent outputs take precedence over addresses, which take precedence
        over all the addresses of the wallet. Without a wallet the
        transaction is always unsigned.
        """

    @abstractmethod
    async def sign_transaction(
        self,
        wallet: WalletBase,
        password: str | None,
        transaction: GeneratedTransaction,
        raw_transaction: str = "",
    ) -> str:
        """Sign an unsigned transaction, returns the encoded signed transaction."""

    @abstractmethod
    async def inject_transaction(self, encoded_tx: str, note: str | None = None) -> bool:
        """Send a signed transaction to the network. Returns whether the note was saved."""

    @abstractmethod
    async def get_current_recommended_fees(self) -> RecommendedFees | None:
        """Recommended fees, None if the coin does not use them."""


class HistoryOperator(Operator):
    @abstractmethod
    async def get_transactions_history(self, wallet: WalletBase | None) -> list[OldTransaction]:
        """Transactions of one wallet, or of all the wallets of the coin if None."""

    @abstractmethod
    async def get_pending_transactions(self) -> PendingTransactionsResponse:
        """Unconfirmed transactions known by the node."""

    @abstractmethod
    async def get_addresses_history(self, wallet: WalletBase) -> AddressesHistoryResponse:
        """Whether each address of the wallet was ever used."""


class WalletUtilsOperator(Operator):
    @abstractmethod
    async def verify_address(self, address: str) -> bool:
        """Check if an address is valid for the coin."""

    @abstractmethod
    async def verify_seed(self, seed: str) -> bool:
        """Check if a seed is valid."""

    @abstractmethod
    async def generate_seed(self, entropy: int) -> str:
        """Create a new random seed."""


class NodeOperator(Operator):
    @property
    @abstractmethod
    def remote_node_data_updated(self) -> StateStream[bool]:
        """Becomes True once the node info was obtained."""

    @property
    @abstractmethod
    def node_version(self) -> str:
        """Version of the node, for display."""

    @property
    @abstractmethod
    def current_max_decimals(self) -> int:
        """Max decimals allowed when sending coins."""

    @property
    @abstractmethod
    def burn_rate(self) -> Decimal:
        """Hours burn factor of the node (a fee of 1/burn_rate of the hours), 1 without hours."""
