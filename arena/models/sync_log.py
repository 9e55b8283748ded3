"""SyncLog model: one row per wallet sync attempt."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class SyncLog(SQLModel, table=True):
    __tablename__ = "sync_log"

    id: int | None = Field(default=None, primary_key=True)
    agent_id: int | None = Field(default=None, index=True)  # None when the wallet is unknown
    wallet_address: str = Field(index=True)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: str  # "success", "error"
    stage: str | None = None  # last pipeline stage reached
    equity: float | None = None
    message: str | None = None
