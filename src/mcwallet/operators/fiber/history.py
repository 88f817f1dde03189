"""
Transaction history of fiber coins.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from mcwallet.models import (
    ZERO,
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


def _inputs(tx: dict[str, Any]) -> list[Input]:
    return [
        Input(
            hash=i["uxid"],
            address=i["owner"],
            coins=Decimal(i["coins"]),
            hours=Decimal(i.get("calculated_hours", i.get("hours", 0))),
        )
        for i in tx.get("inputs") or []
    ]


def _outputs(tx: dict[str, Any]) -> list[Output]:
    return [
        Output(
            hash=o["uxid"],
            address=o["dst"],
            coins=Decimal(o["coins"]),
            hours=Decimal(o.get("hours", 0)),
        )
        for o in tx.get("outputs") or []
    ]


def _parse_time(value: str) -> int:
    try:
        return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp())
    except (AttributeError, ValueError):
        return 0


class FiberHistoryOperator(HistoryOperator):
    def _coin_wallets(self) -> list[WalletBase]:
        wallets = self.context.wallets.current_wallets.value or []
        return [w for w in wallets if w.coin == self.coin.coin_name]

    async def _get_transactions(self, addresses: list[str]) -> list[dict[str, Any]]:
        if not addresses:
            return []
        return (
            await self.context.fiber_api.get(
                self.coin.node_url,
                "transactions",
                {"addrs": ",".join(addresses), "verbose": 1},
            )
            or []
        )

    async def get_transactions_history(self, wallet: WalletBase | None) -> list[OldTransaction]:
        self._check_alive()

        local = LocalAddresses(self._coin_wallets())
        addresses = wallet.address_strings() if wallet else local.addresses()

        history: list[OldTransaction] = []
        for item in await self._get_transactions(addresses):
            tx = item["txn"]
            status = item.get("status", {})
            confirmed = bool(status.get("confirmed"))
            history.append(
                classify_transaction(
                    local,
                    tx_id=tx["txid"],
                    inputs=_inputs(tx),
                    outputs=_outputs(tx),
                    fee=Decimal(tx.get("fee", 0)),
                    timestamp=int(tx.get("timestamp") or item.get("time") or 0),
                    confirmations=int(status.get("height", 0)) if confirmed else 0,
                    confirmations_needed=self.coin.confirmations_needed,
                    has_hours=True,
                )
            )

        history.sort(key=lambda t: t.timestamp, reverse=True)
        return history

    async def get_pending_transactions(self) -> PendingTransactionsResponse:
        self._check_alive()

        local = LocalAddresses(self._coin_wallets())
        pending = await self.context.fiber_api.get(
            self.coin.node_url, "pendingTxs", {"verbose": 1}
        )

        response = PendingTransactionsResponse()
        for item in pending or []:
            tx = item["transaction"]
            inputs = _inputs(tx)
            outputs = _outputs(tx)

            # Coins and hours leaving the input addresses
            input_addresses = {i.address for i in inputs}
            moved = [o for o in outputs if o.address not in input_addresses]
            output_addresses = [o.address for o in outputs]
            involved = (local.wallet_id(a) for a in [*input_addresses, *output_addresses])

            transaction = PendingTransaction(
                id=tx["txid"],
                timestamp=_parse_time(item.get("received", "")),
                coins=sum((o.coins for o in moved), ZERO),
                hours=sum((o.hours or ZERO for o in moved), ZERO),
                wallet_ids=[w for w in dict.fromkeys(involved) if w is not None],
            )
            response.all.append(transaction)
            if transaction.wallet_ids:
                response.user.append(transaction)
        return response

    async def get_addresses_history(self, wallet: WalletBase) -> AddressesHistoryResponse:
        self._check_alive()

        addresses = wallet.address_strings()
        used: set[str] = set()
        for item in await self._get_transactions(addresses):
            tx = item["txn"]
            used.update(i.address for i in _inputs(tx))
            used.update(o.address for o in _outputs(tx))
        return {address: address in used for address in addresses}
