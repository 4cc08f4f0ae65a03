#!/usr/bin/env python3
"""CLI tool for verifying every sealed entry in the vanity pool.

Unseals each entry with VANITY_ENCRYPTION_KEY and checks that the secret
re-derives to the stored public id. Exit status 1 if anything fails.
"""

from __future__ import annotations

import argparse
import json
import os
import sys

# Allow running from repo root: add backend/ to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from app.config import get_settings
from app.models.pool_entry import PoolEntryStatus
from app.services.integrity import verify_pool
from app.services.pool_store import PoolStore, StoreError
from app.services.sealer import ConfigurationError, SecretSealer


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Verify sealed secrets in the vanity pool."
    )
    parser.add_argument(
        "--status",
        choices=[s.value for s in PoolEntryStatus],
        default=None,
        help="Only check entries with this status (default: all)",
    )
    parser.add_argument(
        "--db-url",
        type=str,
        default=None,
        help="Override DB_URL",
    )
    args = parser.parse_args()

    try:
        settings = get_settings()
        sealer = SecretSealer(settings.vanity_encryption_key)
    except (ValueError, ConfigurationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # app.db builds its engine from settings on import.
    from app.db import make_engine

    store = PoolStore(make_engine(args.db_url or settings.db_url))
    try:
        report = verify_pool(store, sealer, status=args.status)
    except StoreError as e:
        print(f"Error reading pool: {e}", file=sys.stderr)
        return 1

    print(json.dumps(report, indent=2))
    return 0 if report["healthy"] else 1


if __name__ == "__main__":
    sys.exit(main())
