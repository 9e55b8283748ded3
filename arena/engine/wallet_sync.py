"""Wallet sync: value an agent's wallet and record equity and PnL.

Per wallet the pipeline is strictly sequential:

    START -> FETCH_BALANCES -> RESOLVE_PRICES -> AGGREGATE -> PERSIST -> DONE

with FAILED reachable from any stage on an unrecoverable error (unknown
agent, persistence failure). Upstream hiccups inside fetch/pricing degrade
the valuation instead of failing it.

Syncs of the same wallet are serialized with a per-wallet lock, so the
scheduled batch and on-demand triggers never interleave their writes.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum

from arena.errors import AgentNotFound, PersistenceFailure
from arena.engine.store import AgentStore
from arena.services.valuation import PricedHolding, WalletValuation, WalletValuator

logger = logging.getLogger(__name__)

MIN_AGENT_DELAY_SECONDS = 0.5


class SyncStage(str, Enum):
    START = "start"
    FETCH_BALANCES = "fetch_balances"
    RESOLVE_PRICES = "resolve_prices"
    AGGREGATE = "aggregate"
    PERSIST = "persist"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SyncResult:
    success: bool
    current_equity: float = 0.0
    initial_equity: float = 0.0
    total_pnl: float = 0.0
    total_return: float = 0.0
    breakdown: list[PricedHolding] = field(default_factory=list)
    error: str | None = None
    stage: SyncStage = SyncStage.START

    def to_dict(self) -> dict:
        data = asdict(self)
        data["stage"] = self.stage.value
        return data


@dataclass
class AgentSyncOutcome:
    wallet: str
    name: str
    success: bool
    equity: float | None = None
    error: str | None = None


@dataclass
class BatchSyncResult:
    synced: int = 0
    failed: int = 0
    results: list[AgentSyncOutcome] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def compute_pnl(stored_initial: float, total_value: float) -> tuple[float, float, float]:
    """Return (initial_equity, total_pnl, total_return_pct).

    The first positive valuation becomes the baseline; after that the stored
    baseline is used unchanged.
    """
    initial_equity = stored_initial if stored_initial > 0 else total_value
    total_pnl = total_value - initial_equity
    total_return = (total_pnl / initial_equity) * 100 if initial_equity > 0 else 0.0
    return initial_equity, total_pnl, total_return


class WalletSyncService:
    """Drives valuation and persistence for one wallet or all of them."""

    def __init__(
        self,
        store: AgentStore,
        valuator: WalletValuator,
        agent_delay: float = MIN_AGENT_DELAY_SECONDS,
    ):
        self.store = store
        self.valuator = valuator
        self.agent_delay = agent_delay
        # Entries live only while a sync of that wallet is running or waiting
        self._wallet_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._locks_guard = asyncio.Lock()

    async def _get_wallet_lock(self, wallet_address: str) -> asyncio.Lock:
        async with self._locks_guard:
            lock = self._wallet_locks.get(wallet_address)
            if lock is None:
                lock = asyncio.Lock()
                self._wallet_locks[wallet_address] = lock
            self._lock_users[wallet_address] = self._lock_users.get(wallet_address, 0) + 1
            return lock

    async def _release_wallet_lock(self, wallet_address: str):
        async with self._locks_guard:
            users = self._lock_users.get(wallet_address, 0) - 1
            if users > 0:
                self._lock_users[wallet_address] = users
            else:
                self._lock_users.pop(wallet_address, None)
                self._wallet_locks.pop(wallet_address, None)

    async def calculate_value(self, wallet_address: str) -> WalletValuation:
        """Current valuation without touching storage."""
        return await self.valuator.calculate_value(wallet_address)

    async def sync_one(self, wallet_address: str) -> SyncResult:
        """Value one agent's wallet and persist equity, PnL and a snapshot."""
        lock = await self._get_wallet_lock(wallet_address)
        try:
            if lock.locked():
                logger.info(f"[{wallet_address}] Sync already in flight, waiting")
            async with lock:
                return await self._sync_one_locked(wallet_address)
        finally:
            await self._release_wallet_lock(wallet_address)

    async def _sync_one_locked(self, wallet_address: str) -> SyncResult:
        stage = SyncStage.START
        agent_id = None
        try:
            agent = self.store.find_agent_by_wallet(wallet_address)
            if agent is None:
                raise AgentNotFound(wallet_address)
            agent_id = agent.id

            stage = SyncStage.FETCH_BALANCES
            balances = await self.valuator.fetcher.fetch_balances(wallet_address)

            stage = SyncStage.RESOLVE_PRICES
            valuation = await self.valuator.value_balances(wallet_address, balances)

            stage = SyncStage.AGGREGATE
            total_value = valuation.total_value
            initial_equity, total_pnl, total_return = compute_pnl(agent.initial_equity, total_value)

            stage = SyncStage.PERSIST
            self.store.record_sync(
                agent.id,
                initial_equity=initial_equity,
                current_equity=total_value,
                total_pnl=total_pnl,
                total_return=total_return,
                stablecoin_balance=valuation.stablecoin_balance,
                non_stablecoin_value=valuation.non_stablecoin_value,
            )
        except AgentNotFound as e:
            logger.warning(f"[{wallet_address}] Sync skipped: {e}")
            self.store.log_sync(wallet_address, "error", stage=stage.value, message=str(e))
            return SyncResult(success=False, error=str(e), stage=SyncStage.FAILED)
        except PersistenceFailure as e:
            logger.error(f"[{wallet_address}] Sync failed at {stage.value}: {e}")
            self.store.log_sync(
                wallet_address, "error", agent_id=agent_id, stage=stage.value, message=str(e)
            )
            return SyncResult(success=False, error=str(e), stage=SyncStage.FAILED)
        except Exception as e:
            logger.error(f"[{wallet_address}] Unexpected sync error at {stage.value}: {e}", exc_info=True)
            self.store.log_sync(
                wallet_address, "error", agent_id=agent_id, stage=stage.value, message=str(e)
            )
            return SyncResult(success=False, error=str(e) or type(e).__name__, stage=SyncStage.FAILED)

        logger.info(
            f"[{agent.name}] Equity=${total_value:.2f} baseline=${initial_equity:.2f} "
            f"PnL=${total_pnl:.2f} ({total_return:.2f}%)"
        )
        self.store.log_sync(
            wallet_address, "success", agent_id=agent_id,
            stage=SyncStage.DONE.value, equity=total_value,
        )
        return SyncResult(
            success=True,
            current_equity=total_value,
            initial_equity=initial_equity,
            total_pnl=total_pnl,
            total_return=total_return,
            breakdown=valuation.breakdown,
            stage=SyncStage.DONE,
        )

    async def sync_all(self) -> BatchSyncResult:
        """Sync every registered agent, one at a time.

        A failing agent is counted and reported; it never stops the batch.
        """
        agents = self.store.list_agents()
        batch = BatchSyncResult()
        logger.info(f"Starting sync for {len(agents)} agents...")

        for i, agent in enumerate(agents):
            result = await self.sync_one(agent.wallet_address)
            if result.success:
                batch.synced += 1
                batch.results.append(AgentSyncOutcome(
                    wallet=agent.wallet_address, name=agent.name,
                    success=True, equity=result.current_equity,
                ))
            else:
                batch.failed += 1
                batch.results.append(AgentSyncOutcome(
                    wallet=agent.wallet_address, name=agent.name,
                    success=False, error=result.error,
                ))

            if i < len(agents) - 1:
                await asyncio.sleep(self.agent_delay)

        logger.info(f"Sync complete: {batch.synced} synced, {batch.failed} failed")
        return batch


# ---------------------------------------------------------------------------
# Process-wide service
# ---------------------------------------------------------------------------

_service: WalletSyncService | None = None


def build_sync_service(engine=None) -> WalletSyncService:
    """Wire a WalletSyncService from settings."""
    from arena.config import settings
    from arena.services.price_cache import PriceCache
    from arena.services.price_resolver import PriceResolver
    from arena.services.rate_limiter import RateLimiter, default_limits
    from arena.services.solana_rpc import SolanaBalanceFetcher

    if engine is None:
        from arena.database import engine

    limiter = RateLimiter(default_limits(settings.quote_min_interval_seconds))
    fetcher = SolanaBalanceFetcher(
        rpc_url=settings.solana_rpc_url,
        limiter=limiter,
        timeout=settings.rpc_timeout_seconds,
    )
    resolver = PriceResolver(
        cache=PriceCache(ttl_seconds=settings.price_cache_ttl_seconds),
        limiter=limiter,
        price_api_url=settings.price_api_url,
        quote_api_url=settings.quote_api_url,
        token_pricing=settings.token_pricing,
        slippage_bps=settings.quote_slippage_bps,
    )
    valuator = WalletValuator(
        fetcher=fetcher,
        resolver=resolver,
        min_value_usd=settings.min_value_usd,
        min_native_balance=settings.min_native_balance,
    )
    return WalletSyncService(
        store=AgentStore(engine),
        valuator=valuator,
        agent_delay=max(settings.sync_agent_delay_seconds, MIN_AGENT_DELAY_SECONDS),
    )


def get_sync_service() -> WalletSyncService:
    global _service
    if _service is None:
        _service = build_sync_service()
    return _service


async def close_sync_service():
    global _service
    if _service is not None:
        await _service.valuator.fetcher.close()
        await _service.valuator.resolver.close()
        _service = None
