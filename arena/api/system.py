"""System API: health check, scheduler status, sync logs."""

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from arena.database import get_session
from arena.models.sync_log import SyncLog
from arena.api.deps import require_api_key

router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/scheduler", dependencies=[Depends(require_api_key)])
def scheduler_status():
    """Current scheduler state with job details."""
    from arena.engine.scheduler import get_scheduler_status
    return get_scheduler_status()


@router.get("/logs", dependencies=[Depends(require_api_key)])
def sync_logs(
    wallet_address: str | None = None,
    status: str | None = None,
    limit: int = 100,
    offset: int = 0,
    session: Session = Depends(get_session),
):
    stmt = select(SyncLog).order_by(SyncLog.timestamp.desc())
    if wallet_address is not None:
        stmt = stmt.where(SyncLog.wallet_address == wallet_address)
    if status is not None:
        stmt = stmt.where(SyncLog.status == status)
    stmt = stmt.offset(offset).limit(limit)
    return session.exec(stmt).all()
