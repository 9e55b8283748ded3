"""Pydantic schemas for the agent and sync API."""

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

# base58 alphabet, 32-byte keys encode to 32-44 chars
_WALLET_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def validate_wallet_address(value: str) -> str:
    text = value.strip()
    if not _WALLET_RE.match(text):
        raise ValueError("must be a base58 Solana address")
    return text


class AgentRegister(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    wallet_address: str = Field(min_length=32, max_length=44)
    avatar_url: str | None = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def _trim_name(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must not be empty")
        return text

    @field_validator("wallet_address")
    @classmethod
    def _check_wallet(cls, value: str) -> str:
        return validate_wallet_address(value)


class AgentRead(BaseModel):
    id: int
    name: str
    wallet_address: str
    avatar_url: str | None
    initial_equity: float
    current_equity: float
    total_pnl: float
    total_return: float
    registered_at: datetime
    updated_at: datetime
    last_synced_at: datetime | None

    model_config = {"from_attributes": True}


class SnapshotRead(BaseModel):
    timestamp: datetime
    equity: float
    total_pnl: float

    model_config = {"from_attributes": True}


class LeaderboardEntry(AgentRead):
    latest_snapshot: SnapshotRead | None = None


class LeaderboardPage(BaseModel):
    agents: list[LeaderboardEntry]
    total: int
    limit: int
    offset: int
