"""
Transaction classification shared by the history operators.
"""

from __future__ import annotations

from decimal import Decimal

from mcwallet.models import ZERO, Input, OldTransaction, OldTransactionType, Output, WalletBase


class LocalAddresses:
    """Index of the addresses of the user's wallets."""

    def __init__(self, wallets: list[WalletBase], normalize=None):
        self._normalize = normalize or (lambda address: address)
        self.wallet_of: dict[str, str] = {}
        self.labels: dict[str, str] = {}
        for wallet in wallets:
            self.labels[wallet.id] = wallet.label
            for address in wallet.addresses:
                self.wallet_of[self._normalize(address.address)] = wallet.id

    def __contains__(self, address: str) -> bool:
        return self._normalize(address) in self.wallet_of

    def wallet_id(self, address: str) -> str | None:
        return self.wallet_of.get(self._normalize(address))

    def addresses(self) -> list[str]:
        return list(self.wallet_of)


def _sum(items: list[Input] | list[Output], hours: bool = False) -> Decimal:
    if hours:
        return sum((i.hours or ZERO for i in items), ZERO)
    return sum((i.coins for i in items), ZERO)


def classify_transaction(
    local: LocalAddresses,
    tx_id: str,
    inputs: list[Input],
    outputs: list[Output],
    fee: Decimal,
    timestamp: int,
    confirmations: int,
    confirmations_needed: int,
    has_hours: bool = False,
) -> OldTransaction:
    """
    Build a history entry, classified by how the user's addresses take part.

    - No local inputs: incoming, the balance is what the local addresses got.
    - Only local inputs, every output local: coins moved between addresses of
      one wallet or between wallets, the balance is what left the inputs.
    - Only local inputs, some output external: outgoing, the balance is the
      negative of what was sent out.
    - Local and external inputs: mixed, no balance.
    """
    own_inputs = [i for i in inputs if i.address in local]
    own_outputs = [o for o in outputs if o.address in local]
    external_outputs = [o for o in outputs if o.address not in local]

    involved_wallets = dict.fromkeys(
        local.wallet_id(item.address) for item in [*own_inputs, *own_outputs]
    )
    involved_wallets.pop(None, None)

    hours_balance: Decimal | None = None
    if not own_inputs:
        tx_type = OldTransactionType.INCOMING
        balance = _sum(own_outputs)
        relevant = [o.address for o in own_outputs]
        if has_hours:
            hours_balance = _sum(own_outputs, hours=True)
    elif len(own_inputs) != len(inputs):
        tx_type = OldTransactionType.MIXED_OR_UNKNOWN
        balance = ZERO
        relevant = [i.address for i in own_inputs]
    elif not external_outputs:
        input_addresses = {i.address for i in inputs}
        moved = [o for o in outputs if o.address not in input_addresses]
        if len(involved_wallets) > 1:
            tx_type = OldTransactionType.MOVED_BETWEEN_WALLETS
        else:
            tx_type = OldTransactionType.MOVED_BETWEEN_ADDRESSES
        balance = _sum(moved)
        relevant = [o.address for o in moved]
        if has_hours:
            hours_balance = _sum(moved, hours=True)
    else:
        tx_type = OldTransactionType.OUTGOING
        balance = -_sum(external_outputs)
        relevant = [o.address for o in external_outputs]
        if has_hours:
            hours_balance = -_sum(external_outputs, hours=True)

    return OldTransaction(
        id=tx_id,
        inputs=inputs,
        outputs=outputs,
        fee=fee,
        balance=balance,
        relevant_addresses=list(dict.fromkeys(relevant)),
        timestamp=timestamp,
        confirmed=confirmations >= confirmations_needed,
        confirmations=confirmations,
        type=tx_type,
        involved_local_wallets=", ".join(local.labels.get(w, w) for w in involved_wallets),
        number_of_involved_local_wallets=len(involved_wallets),
        hours_balance=hours_balance,
    )
