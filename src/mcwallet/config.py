"""
Configuration management and logging setup.
"""

from __future__ import annotations

import sys

from loguru import logger
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mcwallet.coins import Coin


class UpdatePeriods(BaseModel):
    """Effective polling periods (seconds) for one coin."""

    balance: float = Field(..., gt=0)
    balance_error: float = Field(..., gt=0)
    blockchain: float = Field(..., gt=0)
    blockchain_error: float = Field(..., gt=0)
    node_info_retry: float = Field(..., gt=0)

    model_config = {"frozen": True}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MCWALLET_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    log_level: str = "INFO"

    rpc_timeout: float = Field(default=30.0, gt=0)

    # Polling against a local node
    balance_update_period: float = 10.0
    balance_error_update_period: float = 2.0
    blockchain_update_period: float = 2.0
    blockchain_error_update_period: float = 2.0
    node_info_retry_period: float = 2.0

    # Remote/public nodes get coarser polling to reduce their load
    remote_balance_update_period: float = 600.0
    remote_balance_error_update_period: float = 60.0
    remote_blockchain_update_period: float = 120.0
    remote_blockchain_error_update_period: float = 30.0
    remote_node_info_retry_period: float = 15.0

    # How many recent blocks are scanned when building the history of eth-like coins
    eth_history_block_window: int = Field(default=100, ge=0)

    def periods_for(self, coin: Coin) -> UpdatePeriods:
        if coin.is_local:
            return UpdatePeriods(
                balance=self.balance_update_period,
                balance_error=self.balance_error_update_period,
                blockchain=self.blockchain_update_period,
                blockchain_error=self.blockchain_error_update_period,
                node_info_retry=self.node_info_retry_period,
            )
        return UpdatePeriods(
            balance=self.remote_balance_update_period,
            balance_error=self.remote_balance_error_update_period,
            blockchain=self.remote_blockchain_update_period,
            blockchain_error=self.remote_blockchain_error_update_period,
            node_info_retry=self.remote_node_info_retry_period,
        )


def get_settings() -> Settings:
    return Settings()


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level.upper(),
        colorize=True,
    )
