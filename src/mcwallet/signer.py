"""
Interfaces of the external signer and of the transaction note storage.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from mcwallet.models import Input, WalletBase


class TransactionSigner(ABC):
    """
    Signs transactions with key material the operators never see.

    Hardware wallets are reached through this interface, as is any other
    key holder for coin families whose nodes can't sign. Every call is a
    fallible remote call; failures are reported with SignerError.
    """

    @abstractmethod
    async def check_device_connected(self, address: str) -> None:
        """Make sure the device holding the key of address is connected."""

    @abstractmethod
    async def sign_transaction(
        self,
        wallet: WalletBase,
        password: str | None,
        encoded: str,
        inputs: list[Input],
    ) -> str:
        """Sign an encoded unsigned transaction, returns the encoded signed transaction."""


class NoteStore(ABC):
    """Local storage for the notes users attach to their transactions."""

    @abstractmethod
    async def save_note(self, txid: str, note: str) -> None:
        """Save note for txid. Raises on failure."""


class InMemoryNoteStore(NoteStore):
    def __init__(self) -> None:
        self.notes: dict[str, str] = {}

    async def save_note(self, txid: str, note: str) -> None:
        self.notes[txid] = note
