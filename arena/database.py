"""SQLModel database engine and session management."""

import logging

from sqlalchemy import inspect
from sqlmodel import SQLModel, create_engine, Session

from arena.config import settings

logger = logging.getLogger(__name__)

# SQLite needs check_same_thread=False; PostgreSQL does not
connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.database_url,
    echo=False,
    connect_args=connect_args,
)


def _run_migrations():
    """Run lightweight schema migrations for columns added after first release."""
    from sqlalchemy import text

    inspector = inspect(engine)

    if "agent" not in inspector.get_table_names():
        return

    columns = {col["name"] for col in inspector.get_columns("agent")}
    if "last_synced_at" not in columns:
        logger.info("Migrating: adding agent.last_synced_at")
        with engine.connect() as conn:
            conn.execute(text("ALTER TABLE agent ADD COLUMN last_synced_at TIMESTAMP"))
            conn.commit()

    if "pnl_snapshot" in inspector.get_table_names():
        snapshot_columns = {col["name"] for col in inspector.get_columns("pnl_snapshot")}
        if "usdc_balance" in snapshot_columns and "stablecoin_balance" not in snapshot_columns:
            logger.info("Migrating: renaming usdc_balance -> stablecoin_balance")
            with engine.connect() as conn:
                conn.execute(
                    text("ALTER TABLE pnl_snapshot RENAME COLUMN usdc_balance TO stablecoin_balance")
                )
                conn.commit()


def create_db_and_tables():
    """Create all tables. Called on startup."""
    import arena.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    _run_migrations()


def get_session() -> Session:
    """Dependency that yields a database session."""
    with Session(engine) as session:
        yield session
