from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session, text

from app.db import get_session

router = APIRouter(prefix="/api", tags=["health"])

SERVICE_NAME = "vanity-pool"
SERVICE_VERSION = "0.1.0"


@router.get("/health")
async def health(request: Request):
    """Liveness: succeeds once the port is bound, regardless of search progress."""
    controller = getattr(request.app.state, "controller", None)
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "replenisher": "running" if controller is not None and controller.running else "stopped",
    }


@router.get("/health/ready")
async def readiness(session: Session = Depends(get_session)):
    try:
        session.exec(text("SELECT 1"))
    except Exception as exc:
        return JSONResponse(
            status_code=503,
            content={
                "status": "not ready",
                "service": SERVICE_NAME,
                "error": str(exc),
            },
        )

    return {
        "status": "ready",
        "service": SERVICE_NAME,
    }
