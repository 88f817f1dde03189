"""
Balance and unspent outputs of fiber coins.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from mcwallet.models import (
    AddressBalance,
    AddressWithOutputs,
    Output,
    WalletBalance,
    WalletBase,
    WalletWithOutputs,
)
from mcwallet.operators.balance import PollingBalanceOperator


class FiberBalanceAndOutputsOperator(PollingBalanceOperator):
    """
    The node returns the confirmed and predicted balance of several
    addresses in a single call, so one request is made per wallet.
    """

    def _address_balance(self, data: dict[str, Any]) -> AddressBalance:
        confirmed = data.get("confirmed", {})
        predicted = data.get("predicted", {})
        return AddressBalance(
            current=self.coin.from_smallest_unit(int(confirmed.get("coins", 0))),
            predicted=self.coin.from_smallest_unit(int(predicted.get("coins", 0))),
            current_hours=Decimal(confirmed.get("hours", 0)),
            predicted_hours=Decimal(predicted.get("hours", 0)),
        )

    async def fetch_wallet_balance(self, wallet: WalletBase) -> WalletBalance:
        result = WalletBalance()
        addresses = wallet.address_strings()
        if not addresses:
            return result

        response = await self.context.fiber_api.get(
            self.coin.node_url, "balance", {"addrs": ",".join(addresses)}
        )
        per_address = response.get("addresses", {})
        for address in addresses:
            result.add(address, self._address_balance(per_address.get(address, {})))
        return result

    async def get_outputs(self, addresses: list[str]) -> list[Output]:
        if not addresses:
            return []

        response = await self.context.fiber_api.get(
            self.coin.node_url, "outputs", {"addrs": ",".join(addresses)}
        )
        return [
            Output(
                hash=output["hash"],
                address=output["address"],
                coins=Decimal(output["coins"]),
                hours=Decimal(output.get("calculated_hours", 0)),
            )
            for output in response.get("head_outputs") or []
        ]

    async def fetch_outputs(self, wallets: list[WalletBase]) -> list[WalletWithOutputs]:
        result: list[WalletWithOutputs] = []
        for wallet in wallets:
            addresses = wallet.address_strings()
            by_address = {address: AddressWithOutputs(address=address) for address in addresses}
            for output in await self.get_outputs(addresses):
                if output.address in by_address:
                    by_address[output.address].outputs.append(output)
            result.append(
                WalletWithOutputs(id=wallet.id, label=wallet.label, addresses=list(by_address.values()))
            )
        return result
