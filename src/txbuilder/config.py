"""
Configuration management using pydantic-settings.

Every field can be set from the environment with the ``TXBUILDER_`` prefix,
e.g. ``TXBUILDER_BTC_FEE_COLLECTOR``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from txbuilder.constants import DEFAULT_FLAT_FEE, DEFAULT_PERCENTAGE_FEE, DUST_THRESHOLD
from txbuilder.models import FeePriority, FeeSchedule


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TXBUILDER_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    network: Literal["mainnet", "testnet", "signet", "regtest"] = "mainnet"
    mempool_url: str | None = Field(
        default=None, description="Esplora API base URL, defaults to mempool.space for network"
    )
    http_timeout: float = Field(default=30.0, gt=0)

    btc_fee_collector: str = ""
    percentage_fee: Decimal = Field(default=Decimal(DEFAULT_PERCENTAGE_FEE), ge=0, le=100)
    flat_fee: int = Field(default=DEFAULT_FLAT_FEE, ge=0, description="Flat fee in sats")
    default_fee_priority: FeePriority = FeePriority.MEDIUM

    evm_rpc_url: str = "http://127.0.0.1:8545"
    chain_id: int = Field(default=1, ge=1)
    eth_fee_collector: str = ""
    evm_flat_fee: int = Field(default=0, ge=0, description="Flat token-transfer fee in wei")

    log_level: str = "INFO"

    def utxo_fee_schedule(self) -> FeeSchedule:
        return FeeSchedule(
            collector_address=self.btc_fee_collector,
            percentage_rate=str(self.percentage_fee),
            flat_fee=self.flat_fee,
            min_enforceable=DUST_THRESHOLD,
        )

    def account_fee_schedule(self) -> FeeSchedule:
        # No dust rule on the account chain; any non-zero fee gets a fee leg
        return FeeSchedule(
            collector_address=self.eth_fee_collector,
            percentage_rate=str(self.percentage_fee),
            flat_fee=self.evm_flat_fee,
            min_enforceable=1,
        )


def get_settings() -> Settings:
    return Settings()
