"""On-disk frame layout for encrypted objects.

Every encrypted object is laid out as::

    offset 0..15   random initialization vector (IV_LENGTH bytes)
    offset 16..    AES-256-CBC ciphertext of the gzip-compressed content

The IV travels with the object, so decoding needs nothing but the key.
The two regions are read independently: a small fixed read for the IV,
then a second read that starts at IV_LENGTH.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from pathlib import Path

import aiofiles

from filevault.storage.errors import DecodeFailedError, StorageUnavailableError

IV_LENGTH = 16


def generate_iv() -> bytes:
    """Return a fresh cryptographically random IV."""
    return os.urandom(IV_LENGTH)


class PrependIV:
    """Stream stage that emits the IV once, ahead of the first chunk.

    The IV goes out with the first chunk that flows through the stage, even
    a zero-length one, and never again. A stream that yields no chunks at
    all produces no output.
    """

    def __init__(self, iv: bytes) -> None:
        if len(iv) != IV_LENGTH:
            raise ValueError(f"IV must be {IV_LENGTH} bytes, got {len(iv)}")
        self._iv = iv
        self.appended = False

    def transform(self, chunk: bytes) -> bytes:
        if not self.appended:
            self.appended = True
            return self._iv + chunk
        return chunk

    async def __call__(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        async for chunk in chunks:
            yield self.transform(chunk)


async def read_iv(path: Path) -> bytes:
    """Read the IV stored in bytes [0, IV_LENGTH) of an object.

    Raises:
        DecodeFailedError: If the object is shorter than the IV.
        StorageUnavailableError: If the object cannot be read.
    """
    try:
        async with aiofiles.open(path, "rb") as f:
            iv = await f.read(IV_LENGTH)
    except OSError as e:
        raise StorageUnavailableError(
            message=f"Failed to read object header: {e}",
            name=path.name,
            cause=e,
        ) from e

    if len(iv) != IV_LENGTH:
        raise DecodeFailedError(
            message=f"Stored object is shorter than its {IV_LENGTH}-byte IV",
            name=path.name,
        )
    return iv


async def iter_payload(
    path: Path,
    chunk_size: int,
    *,
    offset: int = IV_LENGTH,
) -> AsyncIterator[bytes]:
    """Yield the object's bytes from ``offset`` to the end, chunk by chunk."""
    async with aiofiles.open(path, "rb") as f:
        await f.seek(offset)
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            yield chunk
