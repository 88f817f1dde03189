"""
Wallet, balance and transaction data models.

Wallet data owned by the persistence layer and request objects built by the
caller are validated pydantic models. Objects the operators build and keep
updating in place (wallets with balance, internal balance snapshots,
transactions) are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

ZERO = Decimal(0)


class WalletType(str, Enum):
    DETERMINISTIC = "deterministic"
    BIP44 = "bip44"
    XPUB = "xpub"


class AddressBase(BaseModel):
    address: str = Field(..., min_length=1)
    # True for change addresses generated by bip44 wallets
    is_change: bool = False


class WalletBase(BaseModel):
    """Wallet as stored by the persistence layer. Operators only read it."""

    id: str = Field(..., min_length=1)
    label: str = ""
    coin: str
    addresses: list[AddressBase] = Field(default_factory=list)
    encrypted: bool = False
    wallet_type: WalletType = WalletType.DETERMINISTIC
    is_hardware: bool = False

    def address_strings(self) -> list[str]:
        return [a.address for a in self.addresses]


@dataclass
class AddressWithBalance:
    address: str
    coins: Decimal = ZERO
    hours: Decimal = ZERO
    is_change: bool = False


@dataclass
class WalletWithBalance:
    """Wallet plus its balance, updated in place by the balance operator."""

    id: str
    label: str
    coin: str
    addresses: list[AddressWithBalance] = field(default_factory=list)
    coins: Decimal = ZERO
    hours: Decimal = ZERO
    encrypted: bool = False
    wallet_type: WalletType = WalletType.DETERMINISTIC
    is_hardware: bool = False

    @classmethod
    def from_base(cls, wallet: WalletBase) -> WalletWithBalance:
        return cls(
            id=wallet.id,
            label=wallet.label,
            coin=wallet.coin,
            addresses=[
                AddressWithBalance(address=a.address, is_change=a.is_change)
                for a in wallet.addresses
            ],
            encrypted=wallet.encrypted,
            wallet_type=wallet.wallet_type,
            is_hardware=wallet.is_hardware,
        )


@dataclass
class AddressBalance:
    """Balance of one address, operator internal."""

    current: Decimal = ZERO
    predicted: Decimal = ZERO
    current_hours: Decimal = ZERO
    predicted_hours: Decimal = ZERO


@dataclass
class WalletBalance:
    """Balance of a wallet, operator internal. Totals are the sums of the addresses."""

    current: Decimal = ZERO
    predicted: Decimal = ZERO
    current_hours: Decimal = ZERO
    predicted_hours: Decimal = ZERO
    addresses: dict[str, AddressBalance] = field(default_factory=dict)

    def add(self, address: str, balance: AddressBalance) -> None:
        self.addresses[address] = balance
        self.current += balance.current
        self.predicted += balance.predicted
        self.current_hours += balance.current_hours
        self.predicted_hours += balance.predicted_hours

    @property
    def has_pending_transactions(self) -> bool:
        return self.current != self.predicted


@dataclass(frozen=True)
class ProgressEvent:
    """Synchronization state of the blockchain."""

    current_block: int
    highest_block: int
    synchronized: bool


@dataclass(frozen=True)
class BasicBlockInfo:
    seq: int
    timestamp: int
    hash: str


@dataclass(frozen=True)
class CoinSupply:
    current_supply: str
    total_supply: str
    current_coinhour_supply: str = ""
    total_coinhour_supply: str = ""


@dataclass
class Input:
    hash: str
    address: str
    coins: Decimal
    hours: Decimal | None = None


@dataclass
class Output:
    hash: str
    address: str
    coins: Decimal
    hours: Decimal | None = None
    confirmations: int | None = None


@dataclass
class AddressWithOutputs:
    address: str
    outputs: list[Output] = field(default_factory=list)


@dataclass
class WalletWithOutputs:
    id: str
    label: str
    addresses: list[AddressWithOutputs] = field(default_factory=list)


@dataclass
class GeneratedTransaction:
    """Transaction built by a spending operator, ready to be signed or sent."""

    inputs: list[Input]
    outputs: list[Output]
    fee: Decimal
    # Wallet label or addresses sending the coins
    from_: str
    # Destination addresses, comma separated
    to: str
    encoded: str
    inner_hash: str
    coins_to_send: Decimal
    hours_to_send: Decimal | None = None
    wallet: WalletBase | None = None
    signed: bool = False
    note: str | None = None


class OldTransactionType(str, Enum):
    INCOMING = "Incoming"
    OUTGOING = "Outgoing"
    MOVED_BETWEEN_ADDRESSES = "MovedBetweenAddresses"
    MOVED_BETWEEN_WALLETS = "MovedBetweenWallets"
    # Entries of this type carry no balance
    MIXED_OR_UNKNOWN = "MixedOrUnknown"


@dataclass
class OldTransaction:
    """Transaction from the history."""

    id: str
    inputs: list[Input]
    outputs: list[Output]
    fee: Decimal
    balance: Decimal
    relevant_addresses: list[str]
    timestamp: int
    confirmed: bool
    confirmations: int
    type: OldTransactionType
    involved_local_wallets: str = ""
    number_of_involved_local_wallets: int = 0
    hours_balance: Decimal | None = None
    note: str | None = None


@dataclass
class PendingTransaction:
    id: str
    timestamp: int
    coins: Decimal
    hours: Decimal | None = None
    # Ids of the local wallets involved, empty if the transaction is not from the user
    wallet_ids: list[str] = field(default_factory=list)


@dataclass
class PendingTransactionsResponse:
    user: list[PendingTransaction] = field(default_factory=list)
    all: list[PendingTransaction] = field(default_factory=list)


# Address -> whether it was ever used on the chain
AddressesHistoryResponse = dict[str, bool]


def _check_amount(value: str, name: str) -> str:
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"Invalid {name}: {value!r}") from e
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Invalid {name}: {value!r}")
    return value


class TransactionDestination(BaseModel):
    address: str = Field(..., min_length=1)
    coins: str
    # Only needed when hours are distributed manually
    hours: str | None = None

    @field_validator("coins")
    @classmethod
    def validate_coins(cls, v: str) -> str:
        return _check_amount(v, "coins")

    @field_validator("hours")
    @classmethod
    def validate_hours(cls, v: str | None) -> str | None:
        return None if v is None else _check_amount(v, "hours")


class HoursDistributionType(str, Enum):
    # Every destination gets an explicit amount of hours
    MANUAL = "manual"
    # The node calculates the hours sent to each output
    AUTO = "auto"


class HoursDistributionOptions(BaseModel):
    type: HoursDistributionType
    mode: Literal["share"] | None = None
    share_factor: str | None = None

    @model_validator(mode="after")
    def validate_auto_options(self) -> HoursDistributionOptions:
        if self.type == HoursDistributionType.AUTO:
            if self.mode is None:
                self.mode = "share"
            if self.share_factor is None:
                raise ValueError("share_factor is required for automatic hours distribution")
            factor = Decimal(_check_amount(self.share_factor, "share_factor"))
            if factor > 1:
                raise ValueError("share_factor must be between 0 and 1")
        return self

    def to_request(self) -> dict[str, str]:
        """Shape the node expects in the hours_selection field."""
        data = {"type": self.type.value}
        if self.type == HoursDistributionType.AUTO:
            data["mode"] = self.mode or "share"
            data["share_factor"] = self.share_factor or "0"
        return data


@dataclass(frozen=True)
class RecommendedFees:
    very_high: Decimal
    high: Decimal
    normal: Decimal
    low: Decimal
    very_low: Decimal
    gas_limit: int | None = None
