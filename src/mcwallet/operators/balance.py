"""
Periodic balance refresh shared by every coin family.

Each refresh cycle may start with a quick pass, which rebuilds the wallet
list from the latest wallets using the balances saved by the last successful
network pass, so structural changes (wallets added, removed or renamed) are
shown without waiting for the node. The network pass then gets the balance
of every wallet from the node and reconciles it with the published list:

- if there is no published list, or the number of wallets or any wallet id
  at the same position differs, the whole list is replaced;
- otherwise only the numeric fields that changed are updated in place and
  the list is emitted again only if something changed.

Only one refresh chain is active at a time. Starting a new one cancels the
previous task and bumps a generation counter that every write checks, so a
superseded chain can never overwrite newer results.
"""

from __future__ import annotations

import asyncio
from abc import abstractmethod
from datetime import UTC, datetime

from loguru import logger

from mcwallet.coins import Coin
from mcwallet.models import (
    ZERO,
    Output,
    WalletBalance,
    WalletBase,
    WalletWithBalance,
    WalletWithOutputs,
)
from mcwallet.operators.base import BalanceAndOutputsOperator, OperatorContext
from mcwallet.streams import StateStream


class PollingBalanceOperator(BalanceAndOutputsOperator):
    """Balance refresh state machine. Subclasses only know how to ask the node."""

    def __init__(self, context: OperatorContext, coin: Coin):
        super().__init__(context, coin)

        self.update_period = self.periods.balance
        self.error_update_period = self.periods.balance_error

        self._wallets_with_balance_list: list[WalletWithBalance] | None = None
        self._wallets_with_balance: StateStream[list[WalletWithBalance]] = self._stream()
        self._last_balances_update_time: StateStream[datetime] = self._stream()
        self._has_pending_transactions: StateStream[bool] = self._stream(False)
        self._first_full_update_made: StateStream[bool] = self._stream(False)
        self._had_error_refreshing_balance: StateStream[bool] = self._stream(False)
        self._refreshing_balance: StateStream[bool] = self._stream(False)
        self._outputs_with_wallets: StateStream[list[WalletWithOutputs]] = self._stream()

        # Balance of each wallet (by id) obtained in the last successful network pass
        self.saved_balance_data: dict[str, WalletBalance] = {}
        # Latest wallet list of this coin, None until the wallet source replies
        self._saved_wallets: list[WalletBase] | None = None

        self._refresh_generation = 0
        self._refresh_task: asyncio.Task[None] | None = None
        self._publish_lock = asyncio.Lock()

        self._when_operators_ready(self._start_watching_wallets)

    @property
    def wallets_with_balance(self) -> StateStream[list[WalletWithBalance]]:
        return self._wallets_with_balance

    @property
    def last_balances_update_time(self) -> StateStream[datetime]:
        return self._last_balances_update_time

    @property
    def has_pending_transactions(self) -> StateStream[bool]:
        return self._has_pending_transactions

    @property
    def first_full_update_made(self) -> StateStream[bool]:
        return self._first_full_update_made

    @property
    def had_error_refreshing_balance(self) -> StateStream[bool]:
        return self._had_error_refreshing_balance

    @property
    def refreshing_balance(self) -> StateStream[bool]:
        return self._refreshing_balance

    @property
    def outputs_with_wallets(self) -> StateStream[list[WalletWithOutputs]]:
        return self._outputs_with_wallets

    @abstractmethod
    async def fetch_wallet_balance(self, wallet: WalletBase) -> WalletBalance:
        """Get the balance of every address of a wallet from the node."""

    async def fetch_outputs(self, wallets: list[WalletBase]) -> list[WalletWithOutputs] | None:
        """Get the unspent outputs of the wallets. None if the coin has no outputs."""
        return None

    async def get_outputs(self, addresses: list[str]) -> list[Output]:
        return []

    async def get_wallet_unspent_outputs(self, wallet: WalletBase) -> list[Output]:
        return await self.get_outputs(wallet.address_strings())

    def refresh_balance(self) -> None:
        self._start_data_refresh(0, update_wallets_first=False)

    def _start_watching_wallets(self, _operators: object) -> None:
        self._track(self.context.wallets.current_wallets.subscribe(self._on_wallets_updated))

    def _on_wallets_updated(self, wallets: list[WalletBase]) -> None:
        self._saved_wallets = [w for w in wallets if w.coin == self.coin.coin_name]
        self._start_data_refresh(0, update_wallets_first=True)

    def _is_current(self, generation: int) -> bool:
        return not self._disposed and generation == self._refresh_generation

    def _start_data_refresh(self, delay: float, update_wallets_first: bool) -> None:
        """Cancel the active refresh chain, if any, and start a new one."""
        if self._disposed:
            return

        self._refresh_generation += 1
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            self._refresh_task = None

        if self._saved_wallets is None:
            return

        self._refresh_task = self._spawn(
            self._refresh_loop(self._refresh_generation, delay, update_wallets_first),
            "refresh",
        )

    async def _refresh_loop(self, generation: int, delay: float, update_wallets_first: bool) -> None:
        while self._is_current(generation):
            await asyncio.sleep(delay)
            if not self._is_current(generation):
                return

            self._refreshing_balance.emit(True)
            wallets = list(self._saved_wallets or [])

            try:
                if update_wallets_first:
                    await self._refresh_balances(wallets, generation, quick_mode=True)
                await self._refresh_balances(wallets, generation, quick_mode=False)
            except Exception as e:
                if not self._is_current(generation):
                    return
                logger.warning(f"Failed to refresh the {self.coin.coin_name} balance: {e}")
                self._had_error_refreshing_balance.emit(True)
                self._refreshing_balance.emit(False)
                delay = self.error_update_period
            else:
                if not self._is_current(generation):
                    return
                self._had_error_refreshing_balance.emit(False)
                self._refreshing_balance.emit(False)
                delay = self.update_period

            update_wallets_first = False

    async def _refresh_balances(
        self, wallets: list[WalletBase], generation: int, quick_mode: bool
    ) -> None:
        """
        Build a fresh wallet list and reconcile it with the published one.

        In quick mode the balances come from saved_balance_data (zero for
        unknown wallets) and the whole list is always replaced. Otherwise the
        balances come from the node and saved_balance_data is replaced only
        after all the wallets were processed.
        """
        balances: dict[str, WalletBalance] = {}
        outputs: list[WalletWithOutputs] | None = None

        if quick_mode:
            for wallet in wallets:
                balances[wallet.id] = self.saved_balance_data.get(wallet.id, WalletBalance())
        else:
            for wallet in wallets:
                balances[wallet.id] = await self.fetch_wallet_balance(wallet)
            outputs = await self.fetch_outputs(wallets)

        async with self._publish_lock:
            if not self._is_current(generation):
                return

            fresh_list = [
                self._wallet_with_balance(wallet, balances[wallet.id]) for wallet in wallets
            ]

            if quick_mode:
                has_pending = self._has_pending_transactions.value or False
            else:
                has_pending = any(b.has_pending_transactions for b in balances.values())
            self._has_pending_transactions.emit(bool(wallets) and has_pending)

            if not quick_mode:
                self._last_balances_update_time.emit(datetime.now(UTC))

            self._reconcile(fresh_list, replace_all=quick_mode)

            # A subscriber may have started a new refresh during the emission
            if not self._is_current(generation):
                return

            if not quick_mode:
                self.saved_balance_data = balances
                if outputs is not None:
                    self._outputs_with_wallets.emit(outputs)
                if not self._first_full_update_made.value:
                    self._first_full_update_made.emit(True)
                logger.debug(
                    f"{self.coin.coin_name} balance updated for {len(wallets)} wallet(s)"
                )

    @staticmethod
    def _wallet_with_balance(wallet: WalletBase, balance: WalletBalance) -> WalletWithBalance:
        result = WalletWithBalance.from_base(wallet)
        result.coins = balance.predicted
        result.hours = balance.predicted_hours
        for address in result.addresses:
            address_balance = balance.addresses.get(address.address)
            if address_balance is not None:
                address.coins = address_balance.predicted
                address.hours = address_balance.predicted_hours
            else:
                address.coins = ZERO
                address.hours = ZERO
        return result

    def _reconcile(self, fresh_list: list[WalletWithBalance], replace_all: bool) -> None:
        current_list = self._wallets_with_balance_list

        if (
            current_list is None
            or replace_all
            or len(current_list) != len(fresh_list)
            or any(c.id != f.id for c, f in zip(current_list, fresh_list, strict=True))
        ):
            self._wallets_with_balance_list = fresh_list
            self._wallets_with_balance.emit(fresh_list)
            return

        changed = False
        for current, fresh in zip(current_list, fresh_list, strict=True):
            if current.coins != fresh.coins:
                current.coins = fresh.coins
                changed = True
            if current.hours != fresh.hours:
                current.hours = fresh.hours
                changed = True

            # Same addresses in a different order count as a different address list
            if len(current.addresses) != len(fresh.addresses) or any(
                a.address != b.address
                for a, b in zip(current.addresses, fresh.addresses, strict=True)
            ):
                current.addresses = fresh.addresses
                changed = True
                continue

            for current_address, fresh_address in zip(
                current.addresses, fresh.addresses, strict=True
            ):
                if current_address.coins != fresh_address.coins:
                    current_address.coins = fresh_address.coins
                    changed = True
                if current_address.hours != fresh_address.hours:
                    current_address.hours = fresh_address.hours
                    changed = True

        if changed:
            self._wallets_with_balance.emit(current_list)

    def _on_dispose(self) -> None:
        self._refresh_generation += 1
        self._refresh_task = None
