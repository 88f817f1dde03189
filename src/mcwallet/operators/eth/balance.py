"""
Balance of eth-like coins.

Nodes of account based chains can't return the balance of an address as of
N confirmations, so for every address two balances are requested: the one
of the "pending" block, which includes the unconfirmed transactions, and
the one at height - (confirmations - 1), used as the confirmed balance.
"""

from __future__ import annotations

from loguru import logger

from mcwallet.models import AddressBalance, WalletBalance, WalletBase
from mcwallet.operators.balance import PollingBalanceOperator
from mcwallet.rpc import hex_to_int, int_to_hex


class EthBalanceAndOutputsOperator(PollingBalanceOperator):
    """Balance operator for account based coins, which have no outputs."""

    async def get_block_number(self) -> int:
        result = await self.context.eth_rpc.call(self.coin.node_url, "eth_blockNumber")
        return hex_to_int(result)

    def confirmed_height(self, last_block: int) -> int:
        return max(last_block - (self.coin.confirmations_needed - 1), 0)

    async def get_address_balance(self, address: str, confirmed_block: int) -> AddressBalance:
        rpc = self.context.eth_rpc
        node_url = self.coin.node_url

        predicted = await rpc.call(node_url, "eth_getBalance", [address, "pending"])
        current = await rpc.call(node_url, "eth_getBalance", [address, int_to_hex(confirmed_block)])

        return AddressBalance(
            current=self.coin.from_smallest_unit(hex_to_int(current)),
            predicted=self.coin.from_smallest_unit(hex_to_int(predicted)),
        )

    async def get_addresses_balance(self, addresses: list[str]) -> dict[str, AddressBalance]:
        """
        Get the balance of several addresses, one address at a time.

        The chain height is requested once, so every address is checked
        against the same confirmed block.
        """
        if not addresses:
            return {}

        confirmed_block = self.confirmed_height(await self.get_block_number())
        balances: dict[str, AddressBalance] = {}
        for address in addresses:
            self._check_alive()
            balances[address] = await self.get_address_balance(address, confirmed_block)
        return balances

    async def fetch_wallet_balance(self, wallet: WalletBase) -> WalletBalance:
        balances = await self.get_addresses_balance(wallet.address_strings())

        result = WalletBalance()
        for address, balance in balances.items():
            result.add(address, balance)

        if result.has_pending_transactions:
            logger.debug(f"Wallet {wallet.id} has pending {self.coin.coin_symbol} transactions")
        return result
