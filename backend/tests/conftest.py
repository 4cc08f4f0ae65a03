from __future__ import annotations

import os
import threading

# Set test environment BEFORE importing app modules.
# app.db creates the engine at module level using get_settings().db_url,
# so we must override the env vars before any app imports.
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("VANITY_ENCRYPTION_KEY", "test-passphrase")
os.environ.setdefault("VANITY_WORKER_ENABLED", "false")
os.environ.setdefault("VANITY_PATTERNS", "SNOW,SB")
os.environ.setdefault("VANITY_MIN_BUFFER", "5")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from app.config import BufferTarget, ReplenishConfig
from app.db import get_session
from app.dependencies import get_pool_store
from app.main import app as fastapi_app
from app.services.keygen import KeypairCandidate
from app.services.pool_store import PoolStore
from app.services.sealer import SecretSealer
from app.services.search import SearchWorker


# ── Database fixtures ─────────────────────────────────────────────────


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite engine for testing.

    Uses StaticPool so every connection shares the same in-memory database.
    Recreates tables per test for full isolation.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    """Provide a fresh session per test."""
    with Session(engine) as session:
        yield session


# ── Pool fixtures ─────────────────────────────────────────────────────


@pytest.fixture(name="store")
def store_fixture(engine) -> PoolStore:
    return PoolStore(engine)


@pytest.fixture(name="sealer")
def sealer_fixture() -> SecretSealer:
    return SecretSealer("test-passphrase")


@pytest.fixture(name="replenish_config")
def replenish_config_fixture() -> ReplenishConfig:
    return ReplenishConfig(
        targets=(BufferTarget("AB", 3),),
        interval_seconds=0.01,
        progress_interval_seconds=0.0,
    )


@pytest.fixture(name="search_worker")
def search_worker_fixture(store, sealer, replenish_config) -> SearchWorker:
    return SearchWorker(store, sealer, replenish_config)


class ScriptedGenerator:
    """Keypair generator that replays a fixed list of public ids, then repeats 'x'."""

    def __init__(self, public_ids: list[str]) -> None:
        self._ids = list(public_ids)
        self._counter = 0
        self._lock = threading.Lock()
        self.calls = 0

    def __call__(self) -> KeypairCandidate:
        with self._lock:
            self.calls += 1
            if self._ids:
                public_id = self._ids.pop(0)
            else:
                self._counter += 1
                public_id = f"miss{self._counter}x"
        return KeypairCandidate(public_id=public_id, secret_key=os.urandom(64))


@pytest.fixture(name="scripted_generator")
def scripted_generator_fixture():
    return ScriptedGenerator


# ── HTTP client fixtures ──────────────────────────────────────────────


@pytest.fixture(name="client")
def client_fixture(session, store):
    """FastAPI TestClient with overridden DB session and pool store."""

    def _get_session_override():
        yield session

    def _get_pool_store_override():
        return store

    fastapi_app.dependency_overrides[get_session] = _get_session_override
    fastapi_app.dependency_overrides[get_pool_store] = _get_pool_store_override
    with TestClient(fastapi_app) as client:
        yield client
    fastapi_app.dependency_overrides.clear()
