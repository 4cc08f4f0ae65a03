from __future__ import annotations

import logging
import sqlite3
from collections.abc import Generator

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DatabaseError
from sqlmodel import Session, SQLModel, create_engine

from app.config import get_settings

logger = logging.getLogger(__name__)


@event.listens_for(Engine, "connect")
def _set_sqlite_pragmas(dbapi_connection, connection_record):
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def make_engine(db_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    return create_engine(
        db_url,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


engine = make_engine(get_settings().db_url)


def create_db_and_tables(eng: Engine | None = None) -> None:
    """Create the pool table and its indexes if absent.

    Safe to run from several processes at once: a lost create race surfaces
    as "already exists", after which a second checkfirst pass is a no-op.
    """
    eng = eng if eng is not None else engine
    try:
        SQLModel.metadata.create_all(eng)
    except DatabaseError as exc:
        message = str(exc).lower()
        if "already exists" not in message and "duplicate key" not in message:
            raise
        logger.info("Schema created concurrently by another instance, re-checking")
        SQLModel.metadata.create_all(eng)
    _run_migrations(eng)


def _run_migrations(eng: Engine) -> None:
    """Lightweight forward-only migrations for pools created by older releases."""
    columns = [c["name"] for c in inspect(eng).get_columns("vanity_mint_pool")]
    if "match_mode" not in columns:
        # Entries written before the mode was recorded were all suffix matches.
        _execute_ddl(
            eng,
            "ALTER TABLE vanity_mint_pool "
            "ADD COLUMN match_mode VARCHAR NOT NULL DEFAULT 'suffix'",
        )
    _execute_ddl(
        eng,
        "CREATE INDEX IF NOT EXISTS ix_vanity_mint_pool_target "
        "ON vanity_mint_pool (pattern, case_sensitive, match_mode)",
    )


def _execute_ddl(eng: Engine, statement: str) -> None:
    try:
        with eng.begin() as conn:
            conn.execute(text(statement))
    except DatabaseError as exc:
        message = str(exc).lower()
        if "duplicate column" not in message and "already exists" not in message:
            raise
        logger.info("Migration applied concurrently by another instance: %s", statement)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
