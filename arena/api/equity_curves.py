"""Equity curves: per-agent snapshot series for charting.

Series are always ascending by timestamp and contain only recorded
snapshots. With ``interval`` set, the last snapshot of each bucket is kept.
"""

from datetime import datetime, timezone
from typing import Literal

import pandas as pd
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from arena.database import get_session
from arena.models.agent import Agent
from arena.models.pnl_snapshot import PnlSnapshot
from arena.utils.constants import CURVE_INTERVALS

router = APIRouter(prefix="/api/equity-curves", tags=["equity-curves"])

SNAPSHOT_FIELDS = ("timestamp", "equity", "stablecoin_balance", "non_stablecoin_value", "total_pnl")


def _epoch(ts: datetime) -> int:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return int(ts.timestamp())


def bucket_snapshots(snapshots: list[PnlSnapshot], interval: str | None) -> list[dict]:
    """Snapshot rows as dicts, optionally thinned to the last one per bucket."""
    rows = [{f: getattr(s, f) for f in SNAPSHOT_FIELDS} for s in snapshots]
    if not interval or not rows:
        return rows

    df = pd.DataFrame(rows)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df = df.sort_values("timestamp", kind="stable")
    buckets = df["timestamp"].dt.floor(CURVE_INTERVALS[interval])
    df = df.groupby(buckets, sort=True).tail(1)
    return [
        {**row, "timestamp": row["timestamp"].to_pydatetime()}
        for row in df.to_dict(orient="records")
    ]


def _snapshot_query(agent_ids: list[int] | None, start: datetime | None, end: datetime | None):
    stmt = select(PnlSnapshot)
    if agent_ids:
        stmt = stmt.where(PnlSnapshot.agent_id.in_(agent_ids))  # type: ignore[attr-defined]
    if start is not None:
        stmt = stmt.where(PnlSnapshot.timestamp >= start)
    if end is not None:
        stmt = stmt.where(PnlSnapshot.timestamp <= end)
    return stmt.order_by(PnlSnapshot.timestamp, PnlSnapshot.id)


@router.get("")
def all_equity_curves(
    agent_ids: str | None = Query(None, alias="agentIds"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    interval: Literal["15m", "1h", "1d"] | None = None,
    session: Session = Depends(get_session),
):
    """Equity curves for all (or selected) agents."""
    ids = None
    if agent_ids:
        try:
            ids = [int(x) for x in agent_ids.split(",") if x.strip()]
        except ValueError:
            raise HTTPException(status_code=422, detail="agentIds must be comma-separated integers")

    snapshots = session.exec(_snapshot_query(ids, start_date, end_date)).all()

    by_agent: dict[int, list[PnlSnapshot]] = {}
    for s in snapshots:
        by_agent.setdefault(s.agent_id, []).append(s)

    agents = {}
    if by_agent:
        rows = session.exec(select(Agent).where(Agent.id.in_(list(by_agent)))).all()  # type: ignore[attr-defined]
        agents = {a.id: a for a in rows}

    curves = []
    for agent_id, agent_snapshots in by_agent.items():
        agent = agents.get(agent_id)
        if agent is None:
            continue
        curves.append({
            "agent": {"id": agent.id, "name": agent.name, "wallet_address": agent.wallet_address},
            "data": [
                {"time": _epoch(r["timestamp"]), "value": r["equity"], "pnl": r["total_pnl"]}
                for r in bucket_snapshots(agent_snapshots, interval)
            ],
        })
    return {"curves": curves, "interval": interval}


@router.get("/{agent_id}")
def agent_equity_curve(
    agent_id: int,
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    interval: Literal["15m", "1h", "1d"] | None = None,
    session: Session = Depends(get_session),
):
    """PnL and equity series for one agent."""
    if session.get(Agent, agent_id) is None:
        raise HTTPException(status_code=404, detail="Agent not found")

    snapshots = session.exec(_snapshot_query([agent_id], start_date, end_date)).all()
    return {
        "agent_id": agent_id,
        "data": [
            {
                "time": _epoch(r["timestamp"]),
                "value": r["total_pnl"],
                "equity": r["equity"],
                "stablecoin_balance": r["stablecoin_balance"],
                "non_stablecoin_value": r["non_stablecoin_value"],
            }
            for r in bucket_snapshots(snapshots, interval)
        ],
    }
