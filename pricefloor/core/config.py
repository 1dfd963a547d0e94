from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# share of price held back for refunds and defects
DEFAULT_BUFFER_BPS = 300


class Settings(BaseSettings):
    default_buffer_bps: int = Field(default=DEFAULT_BUFFER_BPS, ge=0, alias="DEFAULT_BUFFER_BPS")
    sell_through_threshold_days: float = Field(default=14, ge=0, alias="SELL_THROUGH_THRESHOLD_DAYS")
    default_currency: str = Field(default="USD", alias="DEFAULT_CURRENCY")
    price_param_max_cents: int = Field(default=100_000_000, ge=0, alias="PRICE_PARAM_MAX_CENTS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
