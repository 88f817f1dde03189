"""
Transactions of eth-like coins.

Transactions have a single source address and a single destination. The
unsigned transaction is handed to the signer as a canonical JSON document
(sorted keys, no whitespace) hex encoded with a 0x prefix, so the signer can
check every field before signing.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation

import httpx
from loguru import logger

from mcwallet.errors import RpcError, SpendingError
from mcwallet.models import (
    GeneratedTransaction,
    HoursDistributionOptions,
    Input,
    Output,
    RecommendedFees,
    TransactionDestination,
    WalletBase,
)
from mcwallet.operators.base import SpendingOperator
from mcwallet.operators.spending import (
    destination_addresses,
    save_transaction_note,
    sign_with_signer,
)
from mcwallet.rpc import hex_to_int, int_to_hex

# Gas used by a plain transfer
DEFAULT_GAS_LIMIT = 21000

GWEI = Decimal(10) ** 9

# Multipliers applied to the gas price reported by the node
FEE_MULTIPLIERS = {
    "very_high": Decimal("2"),
    "high": Decimal("1.5"),
    "normal": Decimal("1"),
    "low": Decimal("0.8"),
    "very_low": Decimal("0.6"),
}


def encode_unsigned_transaction(tx: dict[str, object]) -> tuple[str, str]:
    """Returns the encoded transaction and its SHA-256 hash."""
    raw = json.dumps(tx, sort_keys=True, separators=(",", ":")).encode()
    return "0x" + raw.hex(), hashlib.sha256(raw).hexdigest()


class EthSpendingOperator(SpendingOperator):
    async def _call(self, method: str, params: list | None = None):
        try:
            return await self.context.eth_rpc.call(self.coin.node_url, method, params)
        except (RpcError, httpx.HTTPError) as e:
            raise SpendingError(f"{method} failed: {e}") from e

    async def _gas_price(self, fee: str) -> int:
        """Gas price in wei, from the fee in Gwei or from the node if no fee is given."""
        if fee:
            try:
                price = Decimal(fee)
            except InvalidOperation as e:
                raise SpendingError(f"Invalid fee: {fee!r}") from e
            if not price.is_finite() or price <= 0:
                raise SpendingError(f"Invalid fee: {fee!r}")
            return int(price * GWEI)
        return hex_to_int(await self._call("eth_gasPrice"))

    async def _gas_limit(self, destination: str, value: int) -> int:
        try:
            result = await self.context.eth_rpc.call(
                self.coin.node_url,
                "eth_estimateGas",
                [{"to": destination, "value": int_to_hex(value)}],
            )
            return hex_to_int(result)
        except (RpcError, httpx.HTTPError, ValueError) as e:
            logger.debug(f"Gas estimation failed, using {DEFAULT_GAS_LIMIT}: {e}")
            return DEFAULT_GAS_LIMIT

    async def _select_source(self, candidates: list[str], needed: int) -> str:
        """First address with enough balance to pay needed wei."""
        for address in candidates:
            self._check_alive()
            balance = hex_to_int(await self._call("eth_getBalance", [address, "pending"]))
            if balance >= needed:
                return address
        raise SpendingError("No address has enough balance for the transaction")

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

        if unspents:
            raise SpendingError(f"{self.coin.coin_name} has no unspent outputs to select")
        if len(destinations) != 1:
            raise SpendingError(f"{self.coin.coin_name} transactions must have one destination")

        destination = destinations[0]
        coins = Decimal(destination.coins)
        if -coins.normalize().as_tuple().exponent > self.coin.decimals:
            raise SpendingError(
                f"{self.coin.coin_symbol} amounts can't have more than "
                f"{self.coin.decimals} decimals: {destination.coins}"
            )
        value = self.coin.to_smallest_unit(coins)

        candidates = addresses or (wallet.address_strings() if wallet else [])
        if not candidates:
            raise SpendingError("No source address for the transaction")

        gas_price = await self._gas_price(fee)
        gas_limit = await self._gas_limit(destination.address, value)
        max_fee = gas_limit * gas_price
        source = await self._select_source(candidates, value + max_fee)

        nonce = hex_to_int(await self._call("eth_getTransactionCount", [source, "pending"]))
        chain_id = hex_to_int(await self._call("eth_chainId"))
        self._check_alive()

        tx = {
            "chainId": int_to_hex(chain_id),
            "data": "0x",
            "from": source,
            "gas": int_to_hex(gas_limit),
            "gasPrice": int_to_hex(gas_price),
            "nonce": int_to_hex(nonce),
            "to": destination.address,
            "value": int_to_hex(value),
        }
        encoded, inner_hash = encode_unsigned_transaction(tx)

        fee_coins = self.coin.from_smallest_unit(max_fee)
        coins_to_send = self.coin.from_smallest_unit(value)
        transaction = GeneratedTransaction(
            inputs=[Input(hash="", address=source, coins=coins_to_send + fee_coins)],
            outputs=[Output(hash="", address=destination.address, coins=coins_to_send)],
            fee=fee_coins,
            from_=wallet.label if wallet else source,
            to=destination_addresses(destinations),
            encoded=encoded,
            inner_hash=inner_hash,
            coins_to_send=coins_to_send,
            wallet=wallet,
        )

        if wallet is not None and not unsigned:
            transaction.encoded = await self.sign_transaction(wallet, password, transaction)
            transaction.signed = True

        logger.info(
            f"Created {self.coin.coin_symbol} transaction of {coins_to_send} from {source} "
            f"to {destination.address}"
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
        return await sign_with_signer(
            self.context.signer, wallet, password, encoded, transaction.inputs
        )

    async def inject_transaction(self, encoded_tx: str, note: str | None = None) -> bool:
        self._check_alive()
        txid = await self._call("eth_sendRawTransaction", [encoded_tx])
        logger.info(f"{self.coin.coin_symbol} transaction sent: {txid}")
        return await save_transaction_note(self.context.notes, txid, note)

    async def get_current_recommended_fees(self) -> RecommendedFees:
        """Gas prices in Gwei, derived from the current price reported by the node."""
        price = Decimal(hex_to_int(await self._call("eth_gasPrice"))) / GWEI
        fees = {name: price * multiplier for name, multiplier in FEE_MULTIPLIERS.items()}
        return RecommendedFees(**fees, gas_limit=DEFAULT_GAS_LIMIT)
