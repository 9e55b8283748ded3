"""Shared fixtures: in-memory database and fake Solana/Jupiter upstreams."""

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

import arena.models  # noqa: F401
from arena.engine.store import AgentStore
from arena.engine.wallet_sync import WalletSyncService
from arena.services.valuation import WalletValuator
from tests.fakes import WSOL, FakeChain, FakeJupiter, make_valuator


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(db_engine) -> AgentStore:
    return AgentStore(db_engine)


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def jupiter() -> FakeJupiter:
    return FakeJupiter(prices={WSOL: 150.0})


@pytest.fixture
def valuator(chain, jupiter) -> WalletValuator:
    return make_valuator(chain, jupiter)


@pytest.fixture
def service(store, valuator) -> WalletSyncService:
    return WalletSyncService(store=store, valuator=valuator, agent_delay=0.5)
