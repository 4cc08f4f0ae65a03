"""Low-level cryptographic primitives for the vanity pool.

Pure functions with no domain knowledge, reused by the sealer service.
"""

from __future__ import annotations

import hashlib
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

NONCE_LENGTH = 12
TAG_LENGTH = 16
KEY_LENGTH = 32


def generate_nonce() -> bytes:
    """Fresh random 96-bit nonce from the OS CSPRNG."""
    return os.urandom(NONCE_LENGTH)


def aes_gcm_encrypt(key: bytes, plaintext: bytes, aad: bytes | None = None) -> bytes:
    """Encrypt plaintext with AES-256-GCM.

    Returns nonce (12 bytes) || tag (16 bytes) || ciphertext. The tag sits
    before the ciphertext so the prefix has a fixed width.
    """
    nonce = generate_nonce()
    sealed = AESGCM(key).encrypt(nonce, plaintext, aad)
    # AESGCM appends the tag; move it in front of the ciphertext.
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return nonce + tag + ciphertext


def aes_gcm_decrypt(key: bytes, data: bytes, aad: bytes | None = None) -> bytes:
    """Decrypt data produced by aes_gcm_encrypt.

    Raises cryptography.exceptions.InvalidTag on tampered data or wrong key.
    Callers must check ``len(data) >= NONCE_LENGTH + TAG_LENGTH`` first.
    """
    nonce = data[:NONCE_LENGTH]
    tag = data[NONCE_LENGTH:NONCE_LENGTH + TAG_LENGTH]
    ciphertext = data[NONCE_LENGTH + TAG_LENGTH:]
    return AESGCM(key).decrypt(nonce, ciphertext + tag, aad)


def sha256_digest(data: bytes) -> bytes:
    """Compute SHA-256. Returns the raw 32-byte digest."""
    return hashlib.sha256(data).digest()
