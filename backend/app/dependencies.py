"""FastAPI dependency injection for pool services initialized at startup."""

from __future__ import annotations

from fastapi import HTTPException, Request

from app.services.pool_store import PoolStore
from app.worker import ReplenishmentController


def get_pool_store(request: Request) -> PoolStore:
    """Inject the PoolStore initialized at startup."""
    store = getattr(request.app.state, "pool_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Pool store unavailable")
    return store


def get_controller(request: Request) -> ReplenishmentController | None:
    """Inject the ReplenishmentController if available."""
    return getattr(request.app.state, "controller", None)
