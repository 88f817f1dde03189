"""
Transaction history of eth-like coins.

Nodes don't index transactions by address, so the history is built by
scanning the most recent blocks (eth_history_block_window in the settings).
Addresses are compared in lowercase, as nodes may return checksummed ones.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from mcwallet.models import (
    AddressesHistoryResponse,
    Input,
    OldTransaction,
    Output,
    PendingTransaction,
    PendingTransactionsResponse,
    WalletBase,
)
from mcwallet.operators.base import HistoryOperator
from mcwallet.operators.history import LocalAddresses, classify_transaction
from mcwallet.rpc import hex_to_int, int_to_hex


def _lower(address: str | None) -> str:
    return (address or "").lower()


class EthHistoryOperator(HistoryOperator):
    async def _call(self, method: str, params: list[Any] | None = None) -> Any:
        return await self.context.eth_rpc.call(self.coin.node_url, method, params)

    def _coin_wallets(self) -> list[WalletBase]:
        wallets = self.context.wallets.current_wallets.value or []
        return [w for w in wallets if w.coin == self.coin.coin_name]

    async def _transaction_fee(self, tx: dict[str, Any]) -> int:
        receipt = await self._call("eth_getTransactionReceipt", [tx["hash"]])
        if not receipt:
            return hex_to_int(tx["gas"]) * hex_to_int(tx["gasPrice"])
        price = receipt.get("effectiveGasPrice") or tx["gasPrice"]
        return hex_to_int(receipt["gasUsed"]) * hex_to_int(price)

    async def get_transactions_history(self, wallet: WalletBase | None) -> list[OldTransaction]:
        self._check_alive()

        local = LocalAddresses(self._coin_wallets(), normalize=_lower)
        wanted = {_lower(a) for a in (wallet.address_strings() if wallet else local.addresses())}
        if not wanted:
            return []

        last_block = hex_to_int(await self._call("eth_blockNumber"))
        first_block = max(last_block - self.context.settings.eth_history_block_window + 1, 0)

        transactions: list[OldTransaction] = []
        for number in range(last_block, first_block - 1, -1):
            self._check_alive()
            block = await self._call("eth_getBlockByNumber", [int_to_hex(number), True])
            if not block:
                continue
            timestamp = hex_to_int(block["timestamp"])

            for tx in block.get("transactions", []):
                sender = _lower(tx.get("from"))
                receiver = _lower(tx.get("to"))
                if sender not in wanted and receiver not in wanted:
                    continue

                value = self.coin.from_smallest_unit(hex_to_int(tx["value"]))
                fee = self.coin.from_smallest_unit(await self._transaction_fee(tx))
                transactions.append(
                    classify_transaction(
                        local,
                        tx_id=tx["hash"],
                        inputs=[Input(hash=tx["hash"], address=sender, coins=value + fee)],
                        outputs=[Output(hash=tx["hash"], address=receiver, coins=value)],
                        fee=fee,
                        timestamp=timestamp,
                        confirmations=last_block - number + 1,
                        confirmations_needed=self.coin.confirmations_needed,
                    )
                )

        logger.debug(
            f"Found {len(transactions)} {self.coin.coin_symbol} transaction(s) "
            f"in blocks {first_block}-{last_block}"
        )
        return transactions

    async def get_pending_transactions(self) -> PendingTransactionsResponse:
        self._check_alive()

        block = await self._call("eth_getBlockByNumber", ["pending", True])
        response = PendingTransactionsResponse()
        if not block:
            return response

        local = LocalAddresses(self._coin_wallets(), normalize=_lower)
        timestamp = hex_to_int(block["timestamp"])
        for tx in block.get("transactions", []):
            involved = (local.wallet_id(_lower(tx.get(key))) for key in ("from", "to"))
            wallet_ids = [w for w in dict.fromkeys(involved) if w is not None]
            pending = PendingTransaction(
                id=tx["hash"],
                timestamp=timestamp,
                coins=self.coin.from_smallest_unit(hex_to_int(tx["value"])),
                wallet_ids=wallet_ids,
            )
            response.all.append(pending)
            if wallet_ids:
                response.user.append(pending)
        return response

    async def get_addresses_history(self, wallet: WalletBase) -> AddressesHistoryResponse:
        """An address was used if it sent a transaction or holds coins."""
        self._check_alive()

        result: AddressesHistoryResponse = {}
        for address in wallet.address_strings():
            nonce = hex_to_int(await self._call("eth_getTransactionCount", [address, "latest"]))
            if nonce > 0:
                result[address] = True
                continue
            balance = hex_to_int(await self._call("eth_getBalance", [address, "latest"]))
            result[address] = balance > 0
        return result
