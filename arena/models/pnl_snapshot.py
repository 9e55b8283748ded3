"""PnlSnapshot model: append-only equity recordings per agent."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class PnlSnapshot(SQLModel, table=True):
    __tablename__ = "pnl_snapshot"

    id: int | None = Field(default=None, primary_key=True)
    agent_id: int = Field(foreign_key="agent.id", index=True)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    equity: float
    stablecoin_balance: float = 0.0
    non_stablecoin_value: float = 0.0
    total_pnl: float = 0.0
