"""
Transactions of fiber coins.

Transactions are built by the node. Software wallets live in the node, so
their transactions are built (and signed, if requested) through the wallet
endpoints. Transactions without a wallet or for hardware wallets are built
unsigned from a list of addresses or outputs; hardware wallet transactions
are then signed by the external signer.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import httpx
from loguru import logger

from mcwallet.errors import RpcError, SpendingError
from mcwallet.models import (
    ZERO,
    GeneratedTransaction,
    HoursDistributionOptions,
    HoursDistributionType,
    Input,
    Output,
    TransactionDestination,
    WalletBase,
)
from mcwallet.operators.base import SpendingOperator
from mcwallet.operators.spending import (
    destination_addresses,
    save_transaction_note,
    sign_with_signer,
    total_coins,
)


class FiberSpendingOperator(SpendingOperator):
    async def _post(self, endpoint: str, data: dict[str, Any], use_v2: bool = True) -> Any:
        try:
            return await self.context.fiber_api.post(
                self.coin.node_url, endpoint, data, use_v2=use_v2
            )
        except (RpcError, httpx.HTTPError) as e:
            raise SpendingError(f"{endpoint} failed: {e}") from e

    @staticmethod
    def _destinations_request(
        destinations: list[TransactionDestination], hours_distribution: HoursDistributionOptions
    ) -> list[dict[str, str]]:
        result = []
        for destination in destinations:
            item = {"address": destination.address, "coins": destination.coins}
            if hours_distribution.type == HoursDistributionType.MANUAL:
                if destination.hours is None:
                    raise SpendingError(f"No hours for destination {destination.address}")
                item["hours"] = destination.hours
            result.append(item)
        return result

    def _build_request(
        self,
        wallet: WalletBase | None,
        addresses: list[str] | None,
        unspents: list[str] | None,
        destinations: list[TransactionDestination],
        hours_distribution: HoursDistributionOptions,
        change_address: str | None,
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "hours_selection": hours_distribution.to_request(),
            "to": self._destinations_request(destinations, hours_distribution),
        }
        if change_address:
            request["change_address"] = change_address

        if unspents:
            request["unspents"] = unspents
        elif addresses:
            request["addresses"] = addresses
        elif wallet is not None and wallet.is_hardware:
            # Without wallet_id the node can't know the addresses of the wallet
            request["addresses"] = wallet.address_strings()
        elif wallet is None:
            raise SpendingError("Addresses or unspent outputs are needed without a wallet")
        return request

    @staticmethod
    def _parse_transaction(response: dict[str, Any]) -> tuple[list[Input], list[Output], Decimal, str]:
        tx = response["transaction"]
        inputs = [
            Input(
                hash=i["uxid"],
                address=i["address"],
                coins=Decimal(i["coins"]),
                hours=Decimal(i.get("calculated_hours", i.get("hours", 0))),
            )
            for i in tx["inputs"]
        ]
        outputs = [
            Output(
                hash=o["uxid"],
                address=o["address"],
                coins=Decimal(o["coins"]),
                hours=Decimal(o.get("hours", 0)),
            )
            for o in tx["outputs"]
        ]
        return inputs, outputs, Decimal(tx.get("fee", 0)), tx["inner_hash"]

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
        self._check_alive()
        if not destinations:
            raise SpendingError("The transaction has no destinations")

        request = self._build_request(
            wallet, addresses, unspents, destinations, hours_distribution, change_address
        )

        use_wallet_endpoint = wallet is not None and not wallet.is_hardware
        if use_wallet_endpoint:
            request["wallet_id"] = wallet.id
            request["unsigned"] = unsigned
            if not unsigned:
                request["password"] = password or ""
            response = await self._post("wallet/transaction", request)
        else:
            response = await self._post("transaction", request)
        self._check_alive()

        inputs, outputs, fee_hours, inner_hash = self._parse_transaction(response)

        sent_to = {d.address for d in destinations}
        hours_to_send = sum((o.hours or ZERO for o in outputs if o.address in sent_to), ZERO)
        source = wallet.label if wallet else ", ".join(dict.fromkeys(i.address for i in inputs))

        transaction = GeneratedTransaction(
            inputs=inputs,
            outputs=outputs,
            fee=fee_hours,
            from_=source,
            to=destination_addresses(destinations),
            encoded=response["encoded_transaction"],
            inner_hash=inner_hash,
            coins_to_send=total_coins(destinations),
            hours_to_send=hours_to_send,
            wallet=wallet,
            signed=use_wallet_endpoint and not unsigned,
        )

        if wallet is not None and wallet.is_hardware and not unsigned:
            transaction.encoded = await self.sign_transaction(wallet, password, transaction)
            transaction.signed = True

        logger.info(
            f"Created {self.coin.coin_symbol} transaction of {transaction.coins_to_send} "
            f"to {transaction.to} (signed: {transaction.signed})"
        )
        return transaction

    async def sign_transaction(
        self,
        wallet: WalletBase,
        password: str | None,
        transaction: GeneratedTransaction,
        raw_transaction: str = "",
    ) -> str:
        self._check_alive()
        encoded = raw_transaction or transaction.encoded

        if wallet.is_hardware:
            return await sign_with_signer(
                self.context.signer, wallet, password, encoded, transaction.inputs
            )

        response = await self._post(
            "wallet/transaction/sign",
            {"wallet_id": wallet.id, "password": password or "", "encoded_transaction": encoded},
        )
        return response["encoded_transaction"]

    async def inject_transaction(self, encoded_tx: str, note: str | None = None) -> bool:
        self._check_alive()
        txid = await self._post("injectTransaction", {"rawtx": encoded_tx}, use_v2=False)
        logger.info(f"{self.coin.coin_symbol} transaction sent: {txid}")
        return await save_transaction_note(self.context.notes, txid, note)

    async def get_current_recommended_fees(self) -> None:
        # Fees are paid with hours, calculated by the node
        return None
