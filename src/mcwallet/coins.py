"""
Coin descriptors.

A Coin is the static description of one coin the wallet can work with. It
is built when the user selects a coin and replaced wholesale when another
coin is selected; it is never mutated.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class CoinFamily(str, Enum):
    """Family of blockchains sharing a transaction/account model."""

    # UTXO based, transactions also move coin hours
    FIBER = "fiber"
    # Account based, EVM-like
    ETH = "eth"


class CoinTypeFeatures(BaseModel):
    """Capabilities of a coin family, used by consumers to enable or hide options."""

    software_wallets: bool = True
    outputs: bool = True
    coin_hours: bool = True
    limited_sending_options: bool = False
    show_all_pending_transactions: bool = True

    model_config = {"frozen": True}


FAMILY_FEATURES: dict[CoinFamily, CoinTypeFeatures] = {
    CoinFamily.FIBER: CoinTypeFeatures(),
    CoinFamily.ETH: CoinTypeFeatures(
        software_wallets=False,
        outputs=False,
        coin_hours=False,
        limited_sending_options=True,
        show_all_pending_transactions=False,
    ),
}


class Coin(BaseModel):
    family: CoinFamily
    coin_name: str = Field(..., min_length=1)
    coin_symbol: str = Field(..., min_length=1)
    node_url: str
    is_local: bool = True
    confirmations_needed: int = Field(default=1, ge=1)
    decimals: int = Field(default=6, ge=0, le=36)
    hours_name: str | None = None
    hours_name_singular: str | None = None
    # Prefix for payment URIs and QR codes, must be unique per coin
    uri_specification_prefix: str = ""
    price_ticker_id: str | None = None
    explorer_url: str = ""
    dev_only: bool = False

    model_config = {"frozen": True}

    @field_validator("node_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Node URL must be an http(s) URL")
        return v.rstrip("/")

    @property
    def features(self) -> CoinTypeFeatures:
        return FAMILY_FEATURES[self.family]

    @property
    def decimals_corrector(self) -> Decimal:
        """Divisor turning the smallest unit (droplets, wei) into coins."""
        return Decimal(10) ** self.decimals

    def from_smallest_unit(self, value: int) -> Decimal:
        return Decimal(value) / self.decimals_corrector

    def to_smallest_unit(self, value: Decimal) -> int:
        return int(value * self.decimals_corrector)


def skycoin(node_url: str = "http://127.0.0.1:6420", is_local: bool = True) -> Coin:
    return Coin(
        family=CoinFamily.FIBER,
        coin_name="Skycoin",
        coin_symbol="SKY",
        node_url=node_url,
        is_local=is_local,
        confirmations_needed=1,
        decimals=6,
        hours_name="Coin Hours",
        hours_name_singular="Coin Hour",
        uri_specification_prefix="skycoin",
        price_ticker_id="sky-skycoin",
        explorer_url="https://explorer.skycoin.com",
    )


def ethereum(node_url: str = "http://127.0.0.1:8545", is_local: bool = True) -> Coin:
    return Coin(
        family=CoinFamily.ETH,
        coin_name="Ethereum",
        coin_symbol="ETH",
        node_url=node_url,
        is_local=is_local,
        confirmations_needed=12,
        decimals=18,
        uri_specification_prefix="ethereum",
        price_ticker_id="eth-ethereum",
        explorer_url="https://etherscan.io",
    )
