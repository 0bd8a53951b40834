"""Cipher key derivation.

The vault encrypts every object with one AES-256 key derived from a static
passphrase. Derivation is a plain SHA-256 of the passphrase with no salt,
so the same passphrase yields the same key across restarts and objects
written by an earlier process stay readable.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

KEY_LENGTH = 32


class MissingEncryptionKeyError(Exception):
    """Raised when no encryption passphrase is configured.

    This is a startup error. A vault without a key must not come up and
    fail later on the first request.
    """

    pass


@dataclass(frozen=True)
class CipherKey:
    """Immutable symmetric key shared by the encode and decode pipelines.

    Attributes:
        material: Raw key bytes (KEY_LENGTH long). Excluded from repr.
    """

    material: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.material) != KEY_LENGTH:
            raise ValueError(f"Cipher key must be {KEY_LENGTH} bytes, got {len(self.material)}")

    @classmethod
    def from_secret(cls, secret: str | None) -> CipherKey:
        """Derive the key from a passphrase.

        Args:
            secret: The configured passphrase.

        Returns:
            CipherKey holding SHA-256(secret).

        Raises:
            MissingEncryptionKeyError: If the secret is missing or blank.
        """
        if secret is None or not secret.strip():
            raise MissingEncryptionKeyError("file encryption key does not exist")
        return cls(material=hashlib.sha256(secret.encode("utf-8")).digest())

    @property
    def fingerprint(self) -> str:
        """Short non-reversible identifier safe for logs."""
        return hashlib.sha256(self.material).hexdigest()[:16]
