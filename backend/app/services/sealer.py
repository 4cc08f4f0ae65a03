"""At-rest sealing of pool secrets.

Domain-aware wrapper over AES-256-GCM: derives the symmetric key from the
operator-supplied key material and produces ``nonce || tag || ciphertext``
blobs that are the only form a secret takes outside process memory.
"""

from __future__ import annotations

import base64
import binascii
import re

from cryptography.exceptions import InvalidTag

from app.utils.crypto import (
    KEY_LENGTH,
    NONCE_LENGTH,
    TAG_LENGTH,
    aes_gcm_decrypt,
    aes_gcm_encrypt,
    sha256_digest,
)

_HEX_KEY = re.compile(r"^[A-Fa-f0-9]{64}$")
_BASE64_KEY = re.compile(r"^[A-Za-z0-9+/=]{43,45}$")

MIN_BLOB_LENGTH = NONCE_LENGTH + TAG_LENGTH


class SealerError(Exception):
    """Base class for sealing failures."""


class ConfigurationError(SealerError):
    """Raised when no usable key material is available."""


class AuthenticationError(SealerError):
    """Raised when a sealed blob fails tag verification (tampered or wrong key)."""


class FormatError(SealerError):
    """Raised when a sealed blob is too short to contain nonce and tag."""


def derive_key(key_material: str | bytes | None) -> bytes:
    """Turn operator key material into a 256-bit AES key.

    32 raw bytes, a 64-char hex string, or a base64 string decoding to 32
    bytes are used as-is. Anything else is treated as a passphrase and
    hashed with SHA-256.
    """
    if key_material is None:
        raise ConfigurationError("No key material provided")

    if isinstance(key_material, bytes):
        if not key_material:
            raise ConfigurationError("Key material is empty")
        if len(key_material) == KEY_LENGTH:
            return key_material
        return sha256_digest(key_material)

    if not key_material:
        raise ConfigurationError("Key material is empty")
    if _HEX_KEY.match(key_material):
        return bytes.fromhex(key_material)
    if _BASE64_KEY.match(key_material):
        # Unpadded material (e.g. `openssl rand -base64 32 | tr -d =`) is accepted.
        padded = key_material + "=" * (-len(key_material) % 4)
        try:
            decoded = base64.b64decode(padded, validate=True)
        except binascii.Error:
            decoded = b""
        if len(decoded) == KEY_LENGTH:
            return decoded
    return sha256_digest(key_material.encode("utf-8"))


class SecretSealer:
    """Seals and unseals secrets under one derived key.

    Only the derived key is kept, never the original key material.
    """

    __slots__ = ("_key",)

    def __init__(self, key_material: str | bytes | None) -> None:
        self._key = derive_key(key_material)

    def seal(self, secret: bytes) -> bytes:
        """Encrypt ``secret`` under a fresh nonce. Returns nonce || tag || ciphertext."""
        return aes_gcm_encrypt(self._key, bytes(secret))

    def unseal(self, blob: bytes) -> bytes:
        """Decrypt a sealed blob.

        Raises FormatError if the blob is shorter than the nonce+tag prefix,
        AuthenticationError if the tag does not verify.
        """
        if len(blob) < MIN_BLOB_LENGTH:
            raise FormatError(
                f"Sealed blob is {len(blob)} bytes; need at least {MIN_BLOB_LENGTH}"
            )
        try:
            return aes_gcm_decrypt(self._key, bytes(blob))
        except InvalidTag as exc:
            raise AuthenticationError(
                "Sealed secret failed authentication (tampered or wrong key)"
            ) from exc


def seal(secret: bytes, key_material: str | bytes | None) -> bytes:
    return SecretSealer(key_material).seal(secret)


def unseal(blob: bytes, key_material: str | bytes | None) -> bytes:
    return SecretSealer(key_material).unseal(blob)
