from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from sqlalchemy.engine import make_url

import app.models  # noqa: F401  register SQLModel tables

from app.config import Settings, build_replenish_config, get_settings
from app.routers import health, pool
from app.services.matcher import validate_pattern
from app.services.pool_store import PoolStore
from app.services.sealer import SecretSealer
from app.services.search import SearchWorker
from app.worker import ReplenishmentController

logger = logging.getLogger(__name__)


def _ensure_sqlite_dir(db_url: str) -> None:
    url = make_url(db_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def build_controller(settings: Settings, engine) -> ReplenishmentController:
    """Wire sealer, store, search worker and controller from settings.

    Raises ConfigurationError for unusable key material and ValueError for
    a pattern that can never match; both must abort startup.
    """
    sealer = SecretSealer(settings.vanity_encryption_key)
    config = build_replenish_config(settings)
    for target in config.targets:
        validate_pattern(target.pattern, target.case_sensitive)
    store = PoolStore(engine)
    search_worker = SearchWorker(store, sealer, config)
    return ReplenishmentController(config, store, search_worker)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    _ensure_sqlite_dir(settings.db_url)

    from app.db import create_db_and_tables, engine

    controller = build_controller(settings, engine)
    create_db_and_tables(engine)
    app.state.pool_store = controller.store
    app.state.controller = controller
    logger.info(
        "Vanity pool patterns=%s match_mode=%s case_sensitive=%s min_buffer=%d",
        ",".join(t.pattern for t in controller.config.targets),
        settings.vanity_match_mode.value,
        settings.vanity_case_sensitive,
        settings.vanity_min_buffer,
    )

    if settings.vanity_worker_enabled:
        controller.start()
    else:
        logger.info("Replenishment worker disabled (VANITY_WORKER_ENABLED=false)")

    yield

    # Shutdown: stop replenishment threads (interrupts in-progress searches)
    if controller.running:
        controller.stop()


app = FastAPI(
    title="Vanity Pool",
    description="Pre-generated vanity keypair pool with sealed secrets",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(pool.router)


def serve() -> None:
    """Console entry point: configure logging and run uvicorn on PORT."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    serve()
