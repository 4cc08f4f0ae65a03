"""Durable storage for sealed vanity keypairs.

All cross-worker coordination happens through the unique constraint on
``public_id``; there is no in-process locking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from enum import Enum

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.models.pool_entry import PoolEntry, PoolEntryStatus
from app.services.matcher import MatchMode

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Persistence failure other than a duplicate public id (transient infra error)."""


class InsertOutcome(str, Enum):
    INSERTED = "inserted"
    DUPLICATE_PUBLIC_ID = "duplicate_public_id"


class PoolStore:
    """Pool persistence over a SQLAlchemy engine."""

    __slots__ = ("_engine",)

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def count_ready(
        self,
        pattern: str,
        case_sensitive: bool = True,
        mode: MatchMode = MatchMode.SUFFIX,
    ) -> int:
        """Number of ``ready`` entries found for this pattern, sensitivity and mode."""
        try:
            with Session(self._engine) as session:
                stmt = (
                    select(func.count())
                    .select_from(PoolEntry)
                    .where(PoolEntry.pattern == pattern)
                    .where(PoolEntry.case_sensitive == case_sensitive)
                    .where(PoolEntry.match_mode == MatchMode(mode).value)
                    .where(PoolEntry.status == PoolEntryStatus.READY.value)
                )
                return int(session.exec(stmt).one())
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to count ready entries for {pattern!r}: {exc}") from exc

    def status_counts(
        self,
        pattern: str,
        case_sensitive: bool = True,
        mode: MatchMode = MatchMode.SUFFIX,
    ) -> dict[str, int]:
        """Rows per status for a pattern, sensitivity and mode, zero-filled."""
        counts = {status.value: 0 for status in PoolEntryStatus}
        try:
            with Session(self._engine) as session:
                stmt = (
                    select(PoolEntry.status, func.count())
                    .where(PoolEntry.pattern == pattern)
                    .where(PoolEntry.case_sensitive == case_sensitive)
                    .where(PoolEntry.match_mode == MatchMode(mode).value)
                    .group_by(PoolEntry.status)
                )
                for status, count in session.exec(stmt).all():
                    counts[status] = int(count)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to count entries for {pattern!r}: {exc}") from exc
        return counts

    def try_insert(self, entry: PoolEntry) -> InsertOutcome:
        """Insert one entry atomically.

        Returns DUPLICATE_PUBLIC_ID if another row already holds the same
        public id. Every other failure raises StoreError.
        """
        public_id = entry.public_id
        try:
            with Session(self._engine, expire_on_commit=False) as session:
                session.add(entry)
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    if self._public_id_exists(session, public_id):
                        logger.info("Duplicate public id skipped: %s", public_id)
                        return InsertOutcome.DUPLICATE_PUBLIC_ID
                    raise
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to insert pool entry: {exc}") from exc
        return InsertOutcome.INSERTED

    @staticmethod
    def _public_id_exists(session: Session, public_id: str) -> bool:
        stmt = select(PoolEntry.id).where(PoolEntry.public_id == public_id)
        return session.exec(stmt).first() is not None

    def get_by_public_id(self, public_id: str) -> PoolEntry | None:
        try:
            with Session(self._engine) as session:
                entry = session.exec(
                    select(PoolEntry).where(PoolEntry.public_id == public_id)
                ).first()
                if entry is not None:
                    session.expunge(entry)
                return entry
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read pool entry: {exc}") from exc

    def iter_entries(self, status: str | None = None) -> Iterator[PoolEntry]:
        """Yield detached entries, optionally filtered by status."""
        try:
            with Session(self._engine) as session:
                stmt = select(PoolEntry).order_by(PoolEntry.created_at)
                if status is not None:
                    stmt = stmt.where(PoolEntry.status == status)
                entries = session.exec(stmt).all()
                for entry in entries:
                    session.expunge(entry)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read pool entries: {exc}") from exc
        yield from entries
