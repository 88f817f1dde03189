"""
Helpers shared by the spending operators.
"""

from __future__ import annotations

from decimal import Decimal

from loguru import logger

from mcwallet.errors import SignerError, SpendingError
from mcwallet.models import Input, TransactionDestination, WalletBase
from mcwallet.signer import NoteStore, TransactionSigner


def total_coins(destinations: list[TransactionDestination]) -> Decimal:
    return sum((Decimal(d.coins) for d in destinations), Decimal(0))


def destination_addresses(destinations: list[TransactionDestination]) -> str:
    """Unique destination addresses, in order, comma separated."""
    return ", ".join(dict.fromkeys(d.address for d in destinations))


async def sign_with_signer(
    signer: TransactionSigner | None,
    wallet: WalletBase,
    password: str | None,
    encoded: str,
    inputs: list[Input],
) -> str:
    """Sign through the external signer, checking the device first for hardware wallets."""
    if signer is None:
        raise SpendingError("No signer available for this wallet")

    try:
        if wallet.is_hardware:
            for address in dict.fromkeys(i.address for i in inputs):
                await signer.check_device_connected(address)
        return await signer.sign_transaction(wallet, password, encoded, inputs)
    except SignerError as e:
        raise SpendingError(f"Signing failed: {e}") from e


async def save_transaction_note(notes: NoteStore | None, txid: str, note: str | None) -> bool:
    """
    Save the note of a transaction already sent.

    The transaction is on the network no matter what happens here, so
    failures are only reported through the return value.
    """
    if not note:
        return False
    if notes is None:
        logger.warning(f"No note storage, note for {txid} not saved")
        return False

    try:
        await notes.save_note(txid, note)
    except Exception as e:
        logger.warning(f"Transaction {txid} was sent but its note could not be saved: {e}")
        return False
    return True
