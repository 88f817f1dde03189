"""
Wallet persistence interface.

Storing, encrypting and editing wallets is done elsewhere; the operators only
need a read-only stream with the current wallet list.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from mcwallet.models import WalletBase
from mcwallet.streams import StateStream


class WalletSource(ABC):
    """Read-only access to the wallets of every coin."""

    @property
    @abstractmethod
    def current_wallets(self) -> StateStream[list[WalletBase]]:
        """Stream with the full, current wallet list."""


class InMemoryWalletSource(WalletSource):
    """Wallet source kept in memory, for the CLI and tests."""

    def __init__(self, wallets: list[WalletBase] | None = None):
        self._wallets: StateStream[list[WalletBase]] = StateStream(list(wallets or []))

    @property
    def current_wallets(self) -> StateStream[list[WalletBase]]:
        return self._wallets

    def set_wallets(self, wallets: list[WalletBase]) -> None:
        self._wallets.emit(list(wallets))

    def add_wallet(self, wallet: WalletBase) -> None:
        self._wallets.emit([*(self._wallets.value or []), wallet])

    def remove_wallet(self, wallet_id: str) -> None:
        self._wallets.emit([w for w in self._wallets.value or [] if w.id != wallet_id])
