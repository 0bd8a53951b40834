"""Async byte-stream stages used by the encode and decode pipelines.

Each stage takes an async iterator of byte chunks and returns one. Stages
are pulled by the consumer, so a slow writer or reader naturally holds
back every stage upstream of it. No stage ever holds a whole file.
"""

from __future__ import annotations

import zlib
from collections.abc import AsyncIterator

import aiofiles
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from filevault.crypto.keys import CipherKey
from filevault.storage.models import ByteSource, InMemorySource, OnDiskSource

DEFAULT_CHUNK_SIZE = 64 * 1024

# gzip container on write; gzip or zlib header auto-detected on read
GZIP_WBITS = 16 + zlib.MAX_WBITS
AUTO_WBITS = 32 + zlib.MAX_WBITS


async def iter_source(
    source: ByteSource,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> AsyncIterator[bytes]:
    """Turn a byte source into a chunk stream."""
    if isinstance(source, InMemorySource):
        view = memoryview(source.data)
        for start in range(0, len(view), chunk_size):
            yield bytes(view[start : start + chunk_size])
    elif isinstance(source, OnDiskSource):
        async with aiofiles.open(source.path, "rb") as f:
            while True:
                chunk = await f.read(chunk_size)
                if not chunk:
                    break
                yield chunk
    else:
        raise TypeError(f"Unsupported byte source: {type(source).__name__}")


async def gzip_compress(
    chunks: AsyncIterator[bytes],
    level: int = zlib.Z_DEFAULT_COMPRESSION,
) -> AsyncIterator[bytes]:
    compressor = zlib.compressobj(level, zlib.DEFLATED, GZIP_WBITS)
    async for chunk in chunks:
        out = compressor.compress(chunk)
        if out:
            yield out
    yield compressor.flush()


async def gzip_decompress(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Inflate a gzip (or zlib) stream.

    Raises:
        zlib.error: On corrupt data, a checksum mismatch, a truncated
            stream, or trailing bytes after the end of the stream.
    """
    decompressor = zlib.decompressobj(AUTO_WBITS)
    async for chunk in chunks:
        out = decompressor.decompress(chunk)
        if out:
            yield out
    tail = decompressor.flush()
    if tail:
        yield tail
    if not decompressor.eof:
        raise zlib.error("compressed stream is truncated")
    if decompressor.unused_data:
        raise zlib.error("unexpected data after end of compressed stream")


async def aes_encrypt(
    chunks: AsyncIterator[bytes],
    key: CipherKey,
    iv: bytes,
) -> AsyncIterator[bytes]:
    """AES-256-CBC encrypt with PKCS7 padding."""
    encryptor = Cipher(algorithms.AES(key.material), modes.CBC(iv)).encryptor()
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    async for chunk in chunks:
        out = encryptor.update(padder.update(chunk))
        if out:
            yield out
    yield encryptor.update(padder.finalize()) + encryptor.finalize()


async def aes_decrypt(
    chunks: AsyncIterator[bytes],
    key: CipherKey,
    iv: bytes,
) -> AsyncIterator[bytes]:
    """AES-256-CBC decrypt and strip PKCS7 padding.

    Raises:
        ValueError: If the ciphertext is not block aligned or the padding
            is invalid (wrong key or tampered data).
    """
    decryptor = Cipher(algorithms.AES(key.material), modes.CBC(iv)).decryptor()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    async for chunk in chunks:
        out = unpadder.update(decryptor.update(chunk))
        if out:
            yield out
    tail = unpadder.update(decryptor.finalize()) + unpadder.finalize()
    if tail:
        yield tail
