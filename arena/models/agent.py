"""Agent model: a registered trading agent and its wallet's equity state."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class Agent(SQLModel, table=True):
    __tablename__ = "agent"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    wallet_address: str = Field(unique=True, index=True)  # base58 Solana pubkey
    avatar_url: str | None = None

    # Equity state, written only by the wallet sync engine
    initial_equity: float = 0.0  # baseline, set once on first non-zero sync
    current_equity: float = 0.0
    total_pnl: float = 0.0
    total_return: float = 0.0  # percent

    registered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_synced_at: datetime | None = None
