"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from arena.config import settings
from arena.database import create_db_and_tables
from arena.utils.logging import setup_logging
from arena.api import agents, sync, leaderboard, equity_curves, system

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    setup_logging()
    create_db_and_tables()
    from arena.engine.scheduler import start_scheduler, stop_scheduler, run_sync_job
    from arena.engine.wallet_sync import close_sync_service

    if settings.sync_on_startup:
        await run_sync_job()
    start_scheduler()

    yield

    stop_scheduler()
    await close_sync_service()


app = FastAPI(
    title="Agent Arena",
    description="Wallet valuation and PnL leaderboard for AI trading agents",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(agents.router)
app.include_router(sync.router)
app.include_router(leaderboard.router)
app.include_router(equity_curves.router)
app.include_router(system.router)


@app.get("/")
def root():
    return {"message": "Agent Arena API", "version": app.version}
