"""FileVault storage error types.

Every failure of the save/serve/delete pipelines surfaces as one of these
typed exceptions. Nothing is retried automatically; the caller decides.
"""

from __future__ import annotations


class FileVaultError(Exception):
    """Base exception for file vault operations.

    Attributes:
        message: Human-readable error message.
        bucket: Bucket path associated with the operation (if applicable).
        name: Stored object name associated with the operation (if applicable).
    """

    def __init__(
        self,
        message: str,
        *,
        bucket: str | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.bucket = bucket
        self.name = name

    def __str__(self) -> str:
        parts = [self.message]
        if self.bucket:
            parts.append(f"bucket={self.bucket}")
        if self.name:
            parts.append(f"name={self.name}")
        return " ".join(parts)


class InvalidFileTypeError(FileVaultError):
    """Raised when a file's MIME type is not allowed for the requested category.

    Raised before any I/O happens. The message is the caller-supplied
    error message, so it is safe to show to end users.
    """

    def __init__(
        self,
        message: str = "invalid file",
        *,
        bucket: str | None = None,
        mime_type: str | None = None,
    ) -> None:
        super().__init__(message, bucket=bucket)
        self.mime_type = mime_type


class PathTraversalError(FileVaultError):
    """Raised when a bucket or object name tries to escape the storage root."""

    def __init__(
        self,
        message: str = "Invalid path: path traversal detected",
        *,
        bucket: str | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(message, bucket=bucket, name=name)


class ObjectNotFoundError(FileVaultError):
    """Raised when a stored object does not exist.

    The serve path never raises this; it reports a missing object as a
    ``None`` result so the caller can substitute a placeholder.
    """

    def __init__(
        self,
        message: str = "Object not found",
        *,
        bucket: str | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(message, bucket=bucket, name=name)


class _CausedError(FileVaultError):
    def __init__(
        self,
        message: str,
        *,
        bucket: str | None = None,
        name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, bucket=bucket, name=name)
        self.cause = cause


class StorageUnavailableError(_CausedError):
    """Raised when the filesystem cannot complete an operation.

    Covers permission errors, a full disk, or a bucket path that collides
    with an existing non-directory.
    """

    def __init__(
        self,
        message: str = "Storage unavailable",
        *,
        bucket: str | None = None,
        name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, bucket=bucket, name=name, cause=cause)


class EncryptionFailedError(_CausedError):
    """Raised when any stage of the encode pipe fails.

    The destination object may be left partially written and must be
    treated as invalid.
    """

    def __init__(
        self,
        message: str = "encryption failed",
        *,
        bucket: str | None = None,
        name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, bucket=bucket, name=name, cause=cause)


class DecodeFailedError(_CausedError):
    """Raised when a stored object cannot be decrypted or decompressed.

    Covers a short IV, a wrong key, bad padding, truncated gzip data and
    checksum mismatches. While streaming, it is raised partway through
    iteration and earlier chunks may already have been delivered.
    """

    def __init__(
        self,
        message: str = "decode failed",
        *,
        bucket: str | None = None,
        name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, bucket=bucket, name=name, cause=cause)
