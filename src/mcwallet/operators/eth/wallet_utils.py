from __future__ import annotations

import re

from mcwallet.errors import UnsupportedOperationError
from mcwallet.operators.base import WalletUtilsOperator

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
SEED_WORD_PATTERN = re.compile(r"^[a-z]+$")
VALID_SEED_LENGTHS = (12, 24)


class EthWalletUtilsOperator(WalletUtilsOperator):
    """
    Checks done locally, as eth-like nodes have no endpoints for them.

    Only the shape of seeds is checked, wallets of these coins live in
    hardware devices.
    """

    async def verify_address(self, address: str) -> bool:
        return bool(ADDRESS_PATTERN.match(address.strip()))

    async def verify_seed(self, seed: str) -> bool:
        words = seed.split()
        return len(words) in VALID_SEED_LENGTHS and all(SEED_WORD_PATTERN.match(w) for w in words)

    async def generate_seed(self, entropy: int) -> str:
        raise UnsupportedOperationError(f"Seeds for {self.coin.coin_name} must be created by the device")
