"""Wallet sync and valuation API."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from arena.api.deps import require_api_key, sync_service
from arena.engine.wallet_sync import WalletSyncService
from arena.errors import AgentNotFound
from arena.schemas.agent import validate_wallet_address

router = APIRouter(prefix="/api", tags=["sync"])


@router.post("/sync", dependencies=[Depends(require_api_key)])
async def sync_all_agents(service: WalletSyncService = Depends(sync_service)):
    """Sync every registered agent. Always returns a summary."""
    result = await service.sync_all()
    return result.to_dict()


@router.post("/sync/{wallet_address}", dependencies=[Depends(require_api_key)])
async def sync_agent(wallet_address: str, service: WalletSyncService = Depends(sync_service)):
    """Sync one agent's wallet and return equity, PnL and breakdown."""
    result = await service.sync_one(wallet_address)
    if result.success:
        return result.to_dict()
    if result.error == AgentNotFound.message:
        raise HTTPException(status_code=404, detail=result.error)
    return JSONResponse(status_code=500, content=result.to_dict())


@router.get("/wallets/{wallet_address}/value")
async def wallet_value(wallet_address: str, service: WalletSyncService = Depends(sync_service)):
    """Current valuation of any wallet. Nothing is persisted."""
    try:
        wallet_address = validate_wallet_address(wallet_address)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"wallet_address {e}")
    valuation = await service.calculate_value(wallet_address)
    return valuation.to_dict()
