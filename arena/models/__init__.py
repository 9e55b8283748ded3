"""Database models."""

from arena.models.agent import Agent
from arena.models.pnl_snapshot import PnlSnapshot
from arena.models.sync_log import SyncLog

__all__ = [
    "Agent",
    "PnlSnapshot",
    "SyncLog",
]
