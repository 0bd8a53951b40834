"""Encode pipeline: source -> gzip -> AES-256-CBC -> IV prefix -> disk."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from pathlib import Path

import aiofiles

from filevault.crypto.keys import CipherKey
from filevault.storage.errors import EncryptionFailedError, StorageUnavailableError
from filevault.storage.frame import PrependIV, generate_iv
from filevault.storage.models import ByteSource
from filevault.storage.streams import DEFAULT_CHUNK_SIZE, aes_encrypt, gzip_compress, iter_source

logger = logging.getLogger(__name__)


async def _write_chunks(chunks: AsyncIterator[bytes], dest: Path) -> int:
    """Drain a chunk stream into ``dest``; each write completes before the next pull."""
    written = 0
    async with aclosing(chunks) as stream, aiofiles.open(dest, "wb") as out:
        async for chunk in stream:
            await out.write(chunk)
            written += len(chunk)
    return written


class EncodePipeline:
    """Writes objects to disk, encrypted or raw.

    Holds the cipher key for the life of the vault. Each call builds its own
    chain of stages, so concurrent saves share nothing but the key.
    """

    def __init__(self, key: CipherKey, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._key = key
        self._chunk_size = chunk_size

    def build_chain(self, source: ByteSource, iv: bytes) -> AsyncIterator[bytes]:
        """Compose the encode stages for one object."""
        chunks = iter_source(source, self._chunk_size)
        compressed = gzip_compress(chunks)
        encrypted = aes_encrypt(compressed, self._key, iv)
        return PrependIV(iv)(encrypted)

    async def encrypt_and_save(self, source: ByteSource, dest: Path) -> None:
        """Compress, encrypt and write ``source`` to ``dest``.

        Raises:
            EncryptionFailedError: If any stage fails. ``dest`` may be left
                partially written.
        """
        iv = generate_iv()
        try:
            written = await _write_chunks(self.build_chain(source, iv), dest)
        except Exception as e:
            logger.error(
                "Encrypted write failed: name=%s error=%s",
                dest.name,
                type(e).__name__,
            )
            raise EncryptionFailedError(name=dest.name, cause=e) from e

        logger.debug("Encrypted object written: name=%s bytes_on_disk=%d", dest.name, written)

    async def save_raw(self, source: ByteSource, dest: Path) -> None:
        """Write ``source`` to ``dest`` byte for byte, without compression or encryption.

        Raises:
            StorageUnavailableError: If the source cannot be read or the
                destination cannot be written.
        """
        try:
            written = await _write_chunks(iter_source(source, self._chunk_size), dest)
        except OSError as e:
            raise StorageUnavailableError(
                message=f"Failed to write object: {e}",
                name=dest.name,
                cause=e,
            ) from e

        logger.debug("Raw object written: name=%s bytes=%d", dest.name, written)
