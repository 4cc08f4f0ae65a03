"""Pool integrity verification.

Unseals every stored entry and checks that the secret still belongs to the
stored public id and that the id still satisfies its pattern.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from app.services.keygen import public_id_from_secret
from app.services.matcher import MatchMode, matches
from app.services.pool_store import PoolStore
from app.services.sealer import AuthenticationError, FormatError, SecretSealer

logger = logging.getLogger(__name__)


def verify_pool(
    store: PoolStore,
    sealer: SecretSealer,
    status: str | None = None,
) -> dict:
    """Verify every entry (optionally only those with ``status``).

    Each entry is matched under the mode it was stored with, so a change of
    the configured mode does not turn older entries into mismatches.

    Returns:
        Summary dict with counts and the ids of entries that failed.
    """
    checked = 0
    ok = 0
    auth_failures: list[str] = []
    format_failures: list[str] = []
    mismatches: list[str] = []

    for entry in store.iter_entries(status=status):
        checked += 1
        try:
            secret = sealer.unseal(entry.sealed_secret)
        except AuthenticationError:
            auth_failures.append(entry.id)
            continue
        except FormatError:
            format_failures.append(entry.id)
            continue

        try:
            derived = public_id_from_secret(secret)
        except ValueError:
            mismatches.append(entry.id)
            continue
        mode = MatchMode(entry.match_mode)
        if derived != entry.public_id or not matches(
            entry.public_id, entry.pattern, entry.case_sensitive, mode
        ):
            mismatches.append(entry.id)
            continue
        ok += 1

    healthy = not (auth_failures or format_failures or mismatches)
    if not healthy:
        logger.warning(
            "Pool integrity problems: auth=%d format=%d mismatch=%d of %d",
            len(auth_failures),
            len(format_failures),
            len(mismatches),
            checked,
        )
    return {
        "checked_at": datetime.now(timezone.utc).isoformat(),
        "healthy": healthy,
        "checked": checked,
        "ok": ok,
        "auth_failures": auth_failures,
        "format_failures": format_failures,
        "mismatches": mismatches,
    }
