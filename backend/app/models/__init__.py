from __future__ import annotations

from app.models.pool_entry import PoolEntry  # noqa: F401
