"""FileVault storage data models."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class InMemorySource:
    """Upload content already held in memory (e.g. a multipart buffer)."""

    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class OnDiskSource:
    """Upload content that lives in a file on local disk."""

    path: Path

    @property
    def size(self) -> int:
        return os.path.getsize(self.path)


ByteSource = InMemorySource | OnDiskSource


@dataclass(frozen=True)
class UploadedFile:
    """A file handed to the vault for storage.

    Attributes:
        source: Where the bytes come from.
        mime_type: Declared MIME type (e.g. "image/png").
        original_filename: Client-side filename; only its extension is kept.
        size: Original byte size. Defaults to the size of the source.
    """

    source: ByteSource
    mime_type: str
    original_filename: str
    size: int | None = None

    @property
    def byte_size(self) -> int:
        if self.size is not None:
            return self.size
        return self.source.size


@dataclass(frozen=True)
class ObjectMeta:
    """Metadata recovered from a stored object's name.

    Attributes:
        mime_type: MIME type, or None if the name does not carry one.
        file_size: Original (pre-compression) byte size, or None if the
            size field is missing or not numeric.
    """

    mime_type: str | None
    file_size: int | None

    def to_headers(self) -> dict[str, str]:
        """Build Content-Type / Content-Length response headers."""
        headers: dict[str, str] = {}
        if self.mime_type:
            headers["Content-Type"] = self.mime_type
        if self.file_size is not None:
            headers["Content-Length"] = str(self.file_size)
        return headers


@dataclass(frozen=True)
class ServedObject:
    """A stored object opened for reading.

    Attributes:
        bucket: Bucket the object lives in.
        name: Stored object name.
        meta: Metadata parsed from the name, available before decoding.
        stream: Decoded content. Decode errors surface while iterating.
    """

    bucket: str
    name: str
    meta: ObjectMeta
    stream: AsyncIterator[bytes]
