#!/usr/bin/env python3
"""CLI tool for recovering one pool entry's secret key.

Prints the 64-byte secret key as base-58 (the format wallets import).
Handle the output as a live private key.
"""

from __future__ import annotations

import argparse
import os
import sys

# Allow running from repo root: add backend/ to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

import base58

from app.config import get_settings
from app.services.pool_store import PoolStore, StoreError
from app.services.sealer import SealerError, SecretSealer


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Unseal the secret key of one vanity pool entry."
    )
    parser.add_argument("public_id", help="Base-58 public id of the entry")
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
        from app.db import make_engine

        store = PoolStore(make_engine(args.db_url or settings.db_url))
        entry = store.get_by_public_id(args.public_id)
    except (ValueError, SealerError, StoreError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if entry is None:
        print(f"No pool entry for {args.public_id}", file=sys.stderr)
        return 1

    try:
        secret = sealer.unseal(entry.sealed_secret)
    except SealerError as e:
        print(f"Error unsealing entry {entry.id}: {e}", file=sys.stderr)
        return 1

    print(base58.b58encode(secret).decode("ascii"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
