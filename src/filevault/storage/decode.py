"""Decode pipeline: disk -> split IV -> AES-256-CBC decrypt -> gunzip -> consumer."""

from __future__ import annotations

import logging
import zlib
from collections.abc import AsyncIterator
from contextlib import aclosing
from pathlib import Path

from filevault.crypto.keys import CipherKey
from filevault.storage.errors import DecodeFailedError
from filevault.storage.frame import iter_payload, read_iv
from filevault.storage.streams import DEFAULT_CHUNK_SIZE, aes_decrypt, gzip_decompress

logger = logging.getLogger(__name__)


class DecodePipeline:
    """Reads objects back from disk as decoded chunk streams.

    Uses the same key as the encode pipeline. The IV comes from the object
    itself; nothing else is needed to decode.
    """

    def __init__(self, key: CipherKey, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._key = key
        self._chunk_size = chunk_size

    def build_chain(self, path: Path, iv: bytes) -> AsyncIterator[bytes]:
        """Compose the decode stages for one object, reading from offset 16."""
        payload = iter_payload(path, self._chunk_size)
        decrypted = aes_decrypt(payload, self._key, iv)
        return gzip_decompress(decrypted)

    async def open_stream(self, path: Path, *, encrypted: bool = True) -> AsyncIterator[bytes]:
        """Open a stored object for streaming.

        The IV is read eagerly; decryption and decompression run lazily as
        the returned iterator is consumed.

        Args:
            path: Location of the stored object.
            encrypted: False for objects saved without encryption. The
                name does not record this, so the caller must say so.

        Returns:
            Async iterator of decoded content chunks.

        Raises:
            DecodeFailedError: If the object is too short to hold an IV.
                While iterating, for any decryption or decompression error.
            StorageUnavailableError: If the object header cannot be read.
        """
        if not encrypted:
            return self._guard(iter_payload(path, self._chunk_size, offset=0), path)

        iv = await read_iv(path)
        return self._guard(self.build_chain(path, iv), path)

    async def _guard(self, chain: AsyncIterator[bytes], path: Path) -> AsyncIterator[bytes]:
        emitted = 0
        try:
            async with aclosing(chain) as stream:
                async for chunk in stream:
                    emitted += len(chunk)
                    yield chunk
        except (ValueError, zlib.error, OSError) as e:
            logger.warning(
                "Decode failed mid-stream: name=%s bytes_emitted=%d error=%s",
                path.name,
                emitted,
                type(e).__name__,
            )
            raise DecodeFailedError(
                message=f"decode failed: {e}",
                name=path.name,
                cause=e,
            ) from e
