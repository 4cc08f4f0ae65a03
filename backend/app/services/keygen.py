"""Ed25519 keypair generation with base-58 public identifiers."""

from __future__ import annotations

from dataclasses import dataclass

import base58
from nacl.signing import SigningKey

SEED_LENGTH = 32
SECRET_KEY_LENGTH = 64  # seed || public key


@dataclass(frozen=True, slots=True)
class KeypairCandidate:
    public_id: str
    secret_key: bytes  # 64 bytes; never persisted unsealed

    def __repr__(self) -> str:
        return f"KeypairCandidate(public_id={self.public_id!r}, secret_key=<redacted>)"


def generate() -> KeypairCandidate:
    """Generate a fresh keypair from the OS CSPRNG."""
    signing_key = SigningKey.generate()
    public_bytes = signing_key.verify_key.encode()
    return KeypairCandidate(
        public_id=base58.b58encode(public_bytes).decode("ascii"),
        secret_key=signing_key.encode() + public_bytes,
    )


def public_id_from_secret(secret_key: bytes) -> str:
    """Re-derive the base-58 public identifier from a 32- or 64-byte secret.

    Raises:
        ValueError: wrong length, or a 64-byte secret whose public half does
            not belong to its seed.
    """
    if len(secret_key) not in (SEED_LENGTH, SECRET_KEY_LENGTH):
        raise ValueError(
            f"Secret key must be {SEED_LENGTH} or {SECRET_KEY_LENGTH} bytes, "
            f"got {len(secret_key)}"
        )
    public_bytes = SigningKey(secret_key[:SEED_LENGTH]).verify_key.encode()
    if len(secret_key) == SECRET_KEY_LENGTH and secret_key[SEED_LENGTH:] != public_bytes:
        raise ValueError("Secret key public half does not match its seed")
    return base58.b58encode(public_bytes).decode("ascii")
