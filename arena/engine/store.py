"""Agent/snapshot persistence used by the wallet sync engine.

The sync engine needs exactly four things from storage: look up an agent by
wallet, list agents, and write the new equity figures together with their
snapshot. The last two happen in one transaction so the agent row and the
latest snapshot can never disagree.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from arena.errors import PersistenceFailure
from arena.models.agent import Agent
from arena.models.pnl_snapshot import PnlSnapshot
from arena.models.sync_log import SyncLog

logger = logging.getLogger(__name__)


def _as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def default_avatar_url(wallet_address: str) -> str:
    return f"https://www.gravatar.com/avatar/{wallet_address.lower()[:32]}?d=identicon&s=200"


class AgentStore:
    def __init__(self, engine):
        self.engine = engine

    def find_agent_by_wallet(self, wallet_address: str) -> Agent | None:
        with Session(self.engine) as session:
            return session.exec(
                select(Agent).where(Agent.wallet_address == wallet_address)
            ).first()

    def list_agents(self) -> list[Agent]:
        with Session(self.engine) as session:
            return list(session.exec(select(Agent).order_by(Agent.id)).all())

    def register_agent(self, name: str, wallet_address: str, avatar_url: str | None = None) -> Agent:
        """Create an agent with zeroed equity fields and an identicon unless an avatar is given."""
        with Session(self.engine) as session:
            agent = Agent(
                name=name,
                wallet_address=wallet_address,
                avatar_url=avatar_url or default_avatar_url(wallet_address),
            )
            session.add(agent)
            session.commit()
            session.refresh(agent)
            return agent

    def record_sync(
        self,
        agent_id: int,
        *,
        initial_equity: float,
        current_equity: float,
        total_pnl: float,
        total_return: float,
        stablecoin_balance: float,
        non_stablecoin_value: float,
    ) -> PnlSnapshot:
        """Update the agent's equity fields and append a snapshot, atomically.

        Raises PersistenceFailure (after rollback) if either write fails or
        the agent vanished.
        """
        now = datetime.now(timezone.utc)
        try:
            with Session(self.engine) as session:
                agent = session.get(Agent, agent_id)
                if agent is None:
                    raise PersistenceFailure(f"Agent {agent_id} disappeared before persist")

                last_ts = session.exec(
                    select(PnlSnapshot.timestamp)
                    .where(PnlSnapshot.agent_id == agent_id)
                    .order_by(PnlSnapshot.timestamp.desc())
                    .limit(1)
                ).first()
                # Snapshot timestamps never go backwards for an agent
                ts = now
                if last_ts is not None and _as_utc(last_ts) > now:
                    logger.warning(
                        f"Clock behind latest snapshot for agent {agent_id}; reusing {last_ts}"
                    )
                    ts = _as_utc(last_ts)

                agent.initial_equity = initial_equity
                agent.current_equity = current_equity
                agent.total_pnl = total_pnl
                agent.total_return = total_return
                agent.updated_at = now
                agent.last_synced_at = now
                session.add(agent)

                snapshot = PnlSnapshot(
                    agent_id=agent_id,
                    timestamp=ts,
                    equity=current_equity,
                    stablecoin_balance=stablecoin_balance,
                    non_stablecoin_value=non_stablecoin_value,
                    total_pnl=total_pnl,
                )
                session.add(snapshot)
                try:
                    session.commit()
                except SQLAlchemyError:
                    session.rollback()
                    raise
                session.refresh(snapshot)
                return snapshot
        except SQLAlchemyError as e:
            logger.error(f"Persist failed for agent {agent_id}: {e}")
            raise PersistenceFailure(f"Failed to persist sync: {e}") from e

    def log_sync(
        self,
        wallet_address: str,
        status: str,
        *,
        agent_id: int | None = None,
        stage: str | None = None,
        equity: float | None = None,
        message: str | None = None,
    ):
        """Write a SyncLog row. Never raises; the sync result is what matters."""
        try:
            with Session(self.engine) as session:
                session.add(SyncLog(
                    agent_id=agent_id,
                    wallet_address=wallet_address,
                    status=status,
                    stage=stage,
                    equity=equity,
                    message=message,
                ))
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write sync log for {wallet_address}: {e}")
