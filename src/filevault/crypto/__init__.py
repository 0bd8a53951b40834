"""Key handling for FileVault."""

from filevault.crypto.keys import KEY_LENGTH, CipherKey, MissingEncryptionKeyError

__all__ = ["KEY_LENGTH", "CipherKey", "MissingEncryptionKeyError"]
