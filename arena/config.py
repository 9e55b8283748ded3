"""Application configuration via environment variables."""

from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings

from arena.utils.constants import VALID_INTERVALS

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    database_url: str = f"sqlite:///{PROJECT_ROOT / 'arena.db'}"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173"]  # Vite dev server

    # Admin endpoints (registration, manual sync)
    admin_api_key: str = "arena-admin-key-dev"

    # Upstreams
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    rpc_timeout_seconds: float = 15.0
    price_api_url: str = "https://lite-api.jup.ag/price/v2"
    quote_api_url: str = "https://lite-api.jup.ag/swap/v1/quote"
    quote_slippage_bps: int = 50

    # Valuation
    token_pricing: Literal["quote", "batch"] = "quote"
    price_cache_ttl_seconds: float = 60.0
    quote_min_interval_seconds: float = 1.1  # Jupiter free tier is ~1 req/sec
    min_value_usd: float = 0.01
    min_native_balance: float = 0.0001  # SOL

    # Sync scheduling
    sync_interval: str = "15m"
    sync_agent_delay_seconds: float = 0.5
    sync_on_startup: bool = False

    @field_validator("sync_interval")
    @classmethod
    def _check_interval(cls, value: str) -> str:
        if value in VALID_INTERVALS or (value.endswith("m") and value[:-1].isdigit() and int(value[:-1]) > 0):
            return value
        raise ValueError(f"sync_interval must be one of {VALID_INTERVALS} or \"<N>m\"")

    model_config = {"env_prefix": "ARENA_", "env_file": ".env"}


settings = Settings()
