"""Leaderboard: agents ranked by return, PnL or equity."""

from datetime import datetime, timedelta, timezone
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select, func

from arena.database import get_session
from arena.models.agent import Agent
from arena.models.pnl_snapshot import PnlSnapshot
from arena.schemas.agent import LeaderboardEntry, LeaderboardPage, SnapshotRead

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])

SORT_COLUMNS = {
    "totalReturn": Agent.total_return,
    "totalPnl": Agent.total_pnl,
    "currentEquity": Agent.current_equity,
    "registeredAt": Agent.registered_at,
}

TIME_FILTERS = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


@router.get("", response_model=LeaderboardPage)
def leaderboard(
    sort_by: Literal["totalReturn", "totalPnl", "currentEquity", "registeredAt"] = Query(
        "totalReturn", alias="sortBy"
    ),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    time_filter: Literal["day", "week", "month", "all"] = Query("all", alias="timeFilter"),
    session: Session = Depends(get_session),
):
    column = SORT_COLUMNS[sort_by]
    order = column.desc() if sort_order == "desc" else column.asc()

    stmt = select(Agent)
    count_stmt = select(func.count()).select_from(Agent)
    if time_filter in TIME_FILTERS:
        since = datetime.now(timezone.utc) - TIME_FILTERS[time_filter]
        stmt = stmt.where(Agent.registered_at >= since)
        count_stmt = count_stmt.where(Agent.registered_at >= since)

    agents = session.exec(stmt.order_by(order, Agent.id).offset(offset).limit(limit)).all()
    total = session.exec(count_stmt).one()

    entries = []
    for agent in agents:
        latest = session.exec(
            select(PnlSnapshot)
            .where(PnlSnapshot.agent_id == agent.id)
            .order_by(PnlSnapshot.timestamp.desc(), PnlSnapshot.id.desc())
            .limit(1)
        ).first()
        entry = LeaderboardEntry.model_validate(agent)
        entry.latest_snapshot = SnapshotRead.model_validate(latest) if latest else None
        entries.append(entry)

    return LeaderboardPage(agents=entries, total=total, limit=limit, offset=offset)
