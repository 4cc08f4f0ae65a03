from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.config import get_settings, build_replenish_config
from app.dependencies import get_controller, get_pool_store
from app.models.pool_entry import PatternStats, PoolStatsResponse
from app.services.pool_store import PoolStore, StoreError
from app.worker import BufferState, ReplenishmentController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pool", tags=["pool"])


@router.get("/stats", response_model=PoolStatsResponse)
async def pool_stats(
    store: PoolStore = Depends(get_pool_store),
    controller: ReplenishmentController | None = Depends(get_controller),
):
    """Per-pattern status counts and replenishment state."""
    if controller is not None:
        config = controller.config
        states = controller.states()
    else:
        config = build_replenish_config(get_settings())
        states = {}

    patterns: list[PatternStats] = []
    try:
        for target in config.targets:
            patterns.append(
                PatternStats(
                    pattern=target.pattern,
                    case_sensitive=target.case_sensitive,
                    match_mode=target.mode.value,
                    min_ready=target.min_ready,
                    state=states.get(target.pattern, BufferState.IDLE).value,
                    counts=store.status_counts(
                        target.pattern, target.case_sensitive, target.mode
                    ),
                )
            )
    except StoreError:
        logger.exception("Failed to read pool stats")
        raise HTTPException(status_code=503, detail="Pool store unavailable")

    return PoolStatsResponse(patterns=patterns)
