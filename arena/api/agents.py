"""Agent registration and lookup."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from arena.database import get_session
from arena.engine.store import AgentStore
from arena.models.agent import Agent
from arena.schemas.agent import AgentRead, AgentRegister
from arena.api.deps import require_api_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agents", tags=["agents"])


@router.post("/admin/register", response_model=AgentRead, status_code=201,
             dependencies=[Depends(require_api_key)])
def register_agent(data: AgentRegister, session: Session = Depends(get_session)):
    """Register an agent with zeroed equity; the first sync sets its baseline."""
    store = AgentStore(session.get_bind())
    if store.find_agent_by_wallet(data.wallet_address):
        raise HTTPException(status_code=409, detail="Agent already registered")

    agent = store.register_agent(data.name, data.wallet_address, data.avatar_url)
    logger.info(f"Registered agent {agent.name} ({agent.wallet_address})")
    return agent


@router.get("/wallet/{address}", response_model=AgentRead)
def get_agent_by_wallet(address: str, session: Session = Depends(get_session)):
    agent = session.exec(select(Agent).where(Agent.wallet_address == address)).first()
    if not agent:
        raise HTTPException(status_code=404, detail="Agent not found")
    return agent


@router.get("/{agent_id}", response_model=AgentRead)
def get_agent(agent_id: int, session: Session = Depends(get_session)):
    agent = session.get(Agent, agent_id)
    if not agent:
        raise HTTPException(status_code=404, detail="Agent not found")
    return agent
