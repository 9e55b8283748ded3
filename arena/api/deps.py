"""Shared API dependencies."""

from fastapi import Header, HTTPException, status

from arena.config import settings
from arena.engine.wallet_sync import WalletSyncService, get_sync_service


def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
    """Admin endpoints require the shared API key in X-API-Key."""
    if not x_api_key or x_api_key != settings.admin_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )


def sync_service() -> WalletSyncService:
    return get_sync_service()
