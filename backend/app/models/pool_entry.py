from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel
from sqlalchemy import CheckConstraint, Index
from sqlmodel import Field, SQLModel

from app.services.matcher import MatchMode


class PoolEntryStatus(str, Enum):
    READY = "ready"
    RESERVED = "reserved"
    USED = "used"


class PoolEntry(SQLModel, table=True):
    """A pre-generated vanity keypair. The secret is only ever stored sealed."""
    __tablename__ = "vanity_mint_pool"
    __table_args__ = (
        CheckConstraint(
            "status IN ('ready', 'reserved', 'used')",
            name="ck_vanity_mint_pool_status",
        ),
        CheckConstraint(
            "match_mode IN ('suffix', 'prefix', 'contains')",
            name="ck_vanity_mint_pool_match_mode",
        ),
        Index(
            "ix_vanity_mint_pool_target",
            "pattern",
            "case_sensitive",
            "match_mode",
        ),
        Index("ix_vanity_mint_pool_status", "status"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    public_id: str = Field(unique=True, nullable=False)
    sealed_secret: bytes  # nonce (12B) || tag (16B) || AES-256-GCM ciphertext
    pattern: str
    case_sensitive: bool = Field(default=True)
    match_mode: str = Field(default=MatchMode.SUFFIX.value)  # mode the entry was found under
    status: str = Field(default=PoolEntryStatus.READY.value)
    reserved_until: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    used_at: datetime | None = Field(default=None)


# --- Pydantic response schemas ---

class PoolEntryRead(BaseModel):
    """Public view of a pool entry; never includes the sealed secret."""
    id: str
    public_id: str
    pattern: str
    case_sensitive: bool
    match_mode: str
    status: str
    reserved_until: datetime | None
    created_at: datetime
    used_at: datetime | None

    model_config = {"from_attributes": True}


class PatternStats(BaseModel):
    pattern: str
    case_sensitive: bool
    match_mode: str
    min_ready: int
    state: str  # "idle" | "filling"
    counts: dict[str, int]  # status -> rows


class PoolStatsResponse(BaseModel):
    """Response for /api/pool/stats."""
    patterns: list[PatternStats]
