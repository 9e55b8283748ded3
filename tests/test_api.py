"""API tests: registration, sync triggers, leaderboard and equity curves."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from arena.api.deps import sync_service
from arena.config import settings
from arena.database import get_session
from arena.main import app
from arena.models.pnl_snapshot import PnlSnapshot
from tests.fakes import USDC, WALLET_A, WALLET_B, WALLET_C

ADMIN = {"X-API-Key": settings.admin_api_key}


@pytest.fixture
def client(db_engine, service):
    def _session():
        with Session(db_engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[sync_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _record(store, agent_id: int, equity: float, initial: float):
    pnl = equity - initial
    store.record_sync(
        agent_id, initial_equity=initial, current_equity=equity, total_pnl=pnl,
        total_return=pnl / initial * 100, stablecoin_balance=equity, non_stablecoin_value=0.0,
    )


def _add_snapshot(engine, agent_id: int, ts: datetime, equity: float):
    with Session(engine) as session:
        session.add(PnlSnapshot(agent_id=agent_id, timestamp=ts, equity=equity, total_pnl=equity - 100))
        session.commit()


def test_health(client):
    assert client.get("/api/system/health").json() == {"status": "ok"}


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

class TestRegister:
    def test_requires_api_key(self, client):
        resp = client.post("/api/agents/admin/register", json={"name": "a", "wallet_address": WALLET_A})
        assert resp.status_code == 401

    def test_wrong_api_key(self, client):
        resp = client.post(
            "/api/agents/admin/register",
            json={"name": "a", "wallet_address": WALLET_A},
            headers={"X-API-Key": "nope"},
        )
        assert resp.status_code == 401

    def test_registers_with_zeroed_equity(self, client):
        resp = client.post(
            "/api/agents/admin/register",
            json={"name": "  alpha ", "wallet_address": WALLET_A},
            headers=ADMIN,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["name"] == "alpha"
        assert body["initial_equity"] == body["current_equity"] == 0.0
        assert "identicon" in body["avatar_url"]

        lookup = client.get(f"/api/agents/wallet/{WALLET_A}")
        assert lookup.status_code == 200
        assert lookup.json()["id"] == body["id"]

    def test_duplicate_wallet_conflicts(self, client):
        payload = {"name": "alpha", "wallet_address": WALLET_A}
        assert client.post("/api/agents/admin/register", json=payload, headers=ADMIN).status_code == 201
        assert client.post("/api/agents/admin/register", json=payload, headers=ADMIN).status_code == 409

    def test_rejects_non_base58_wallet(self, client):
        resp = client.post(
            "/api/agents/admin/register",
            json={"name": "alpha", "wallet_address": "0" * 40},
            headers=ADMIN,
        )
        assert resp.status_code == 422


def test_unknown_agent_lookup_404(client):
    assert client.get("/api/agents/42").status_code == 404


# ---------------------------------------------------------------------------
# Sync and valuation
# ---------------------------------------------------------------------------

def test_sync_unknown_wallet_404(client):
    resp = client.post(f"/api/sync/{WALLET_A}", headers=ADMIN)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Agent not found"


def test_sync_wallet_returns_equity(client, store, chain):
    store.register_agent("alpha", WALLET_A)
    chain.wallets[WALLET_A] = {"spl": [(USDC, 42_000_000, 6)]}

    resp = client.post(f"/api/sync/{WALLET_A}", headers=ADMIN)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["stage"] == "done"
    assert body["current_equity"] == pytest.approx(42.0)
    assert [h["symbol"] for h in body["breakdown"]] == ["USDC"]


def test_sync_requires_api_key(client):
    assert client.post("/api/sync").status_code == 401


def test_sync_all_summary(client, store, chain):
    store.register_agent("alpha", WALLET_A)
    chain.wallets[WALLET_A] = {"spl": [(USDC, 1_000_000, 6)]}

    resp = client.post("/api/sync", headers=ADMIN)

    assert resp.status_code == 200
    assert resp.json()["synced"] == 1
    assert resp.json()["failed"] == 0


def test_wallet_value_does_not_persist(client, chain, db_engine):
    chain.wallets[WALLET_B] = {"lamports": 2_000_000_000, "spl": [(USDC, 5_000_000, 6)]}

    resp = client.get(f"/api/wallets/{WALLET_B}/value")

    assert resp.status_code == 200
    body = resp.json()
    assert body["total_value"] == pytest.approx(305.0)
    assert body["stablecoin_balance"] == pytest.approx(5.0)
    assert body["non_stablecoin_value"] == pytest.approx(300.0)
    assert client.get(f"/api/agents/wallet/{WALLET_B}").status_code == 404


@pytest.mark.parametrize("address", ["not-a-wallet", "0" * 40, "x" * 50])
def test_wallet_value_rejects_invalid_address(client, chain, address):
    resp = client.get(f"/api/wallets/{address}/value")

    assert resp.status_code == 422
    assert chain.calls == []


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------

def test_leaderboard_sorted_by_return(client, store):
    a = store.register_agent("alpha", WALLET_A)
    b = store.register_agent("beta", WALLET_B)
    c = store.register_agent("gamma", WALLET_C)
    _record(store, a.id, equity=110.0, initial=100.0)
    _record(store, b.id, equity=300.0, initial=200.0)
    _record(store, c.id, equity=90.0, initial=100.0)

    resp = client.get("/api/leaderboard")

    assert resp.status_code == 200
    page = resp.json()
    assert [e["name"] for e in page["agents"]] == ["beta", "alpha", "gamma"]
    assert page["total"] == 3
    assert page["agents"][0]["latest_snapshot"]["equity"] == pytest.approx(300.0)

    by_equity = client.get("/api/leaderboard", params={"sortBy": "currentEquity", "sortOrder": "asc", "limit": 2})
    assert [e["name"] for e in by_equity.json()["agents"]] == ["gamma", "alpha"]


def test_leaderboard_agent_without_snapshot(client, store):
    store.register_agent("fresh", WALLET_A)
    entry = client.get("/api/leaderboard").json()["agents"][0]
    assert entry["latest_snapshot"] is None


# ---------------------------------------------------------------------------
# Equity curves
# ---------------------------------------------------------------------------

def test_equity_curve_ascending(client, store, db_engine):
    agent = store.register_agent("alpha", WALLET_A)
    t1 = datetime(2026, 1, 5, 10, 30, tzinfo=timezone.utc)
    t2 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
    t3 = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)
    for ts, equity in ((t1, 105.0), (t2, 100.0), (t3, 120.0)):
        _add_snapshot(db_engine, agent.id, ts, equity)

    resp = client.get(f"/api/equity-curves/{agent.id}")

    assert resp.status_code == 200
    points = resp.json()["data"]
    assert [p["time"] for p in points] == sorted(int(t.timestamp()) for t in (t1, t2, t3))
    assert [p["equity"] for p in points] == [100.0, 105.0, 120.0]
    assert [p["value"] for p in points] == [0.0, 5.0, 20.0]


def test_equity_curve_interval_keeps_last_per_bucket(client, store, db_engine):
    agent = store.register_agent("alpha", WALLET_A)
    base = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
    for minute, equity in ((1, 100.0), (7, 101.0), (20, 102.0), (65, 103.0)):
        _add_snapshot(db_engine, agent.id, base.replace(hour=10 + minute // 60, minute=minute % 60), equity)

    resp = client.get(f"/api/equity-curves/{agent.id}", params={"interval": "15m"})

    assert [p["equity"] for p in resp.json()["data"]] == [101.0, 102.0, 103.0]


def test_all_equity_curves_filtered_by_agent(client, store, db_engine):
    a = store.register_agent("alpha", WALLET_A)
    b = store.register_agent("beta", WALLET_B)
    ts = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
    _add_snapshot(db_engine, a.id, ts, 100.0)
    _add_snapshot(db_engine, b.id, ts, 200.0)

    resp = client.get("/api/equity-curves", params={"agentIds": str(b.id)})

    curves = resp.json()["curves"]
    assert [c["agent"]["name"] for c in curves] == ["beta"]
    assert curves[0]["data"][0]["value"] == 200.0


def test_equity_curve_unknown_agent_404(client):
    assert client.get("/api/equity-curves/999").status_code == 404


def test_sync_logs_require_api_key(client):
    assert client.get("/api/system/logs").status_code == 401
    assert client.get("/api/system/logs", headers=ADMIN).json() == []
