"""Tests for the on-disk frame codec.

- IV is emitted exactly once, ahead of the first chunk
- A zero-length first chunk still carries the IV
- read_iv reads bytes [0, 16) and rejects short objects
- iter_payload starts at offset 16
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from filevault.storage.errors import DecodeFailedError
from filevault.storage.frame import IV_LENGTH, PrependIV, generate_iv, iter_payload, read_iv


async def _aiter(chunks: list[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


async def _collect(stream: AsyncIterator[bytes]) -> list[bytes]:
    return [chunk async for chunk in stream]


class TestPrependIV:
    def test_iv_emitted_once_before_first_chunk(self) -> None:
        iv = bytes(range(16))
        stage = PrependIV(iv)

        out = asyncio.run(_collect(stage(_aiter([b"one", b"two", b"three"]))))

        assert out == [iv + b"one", b"two", b"three"]
        assert b"".join(out).count(iv) == 1

    def test_zero_length_chunk_still_gets_iv(self) -> None:
        iv = generate_iv()
        stage = PrependIV(iv)

        out = asyncio.run(_collect(stage(_aiter([b""]))))

        assert out == [iv]

    def test_no_chunks_no_output(self) -> None:
        stage = PrependIV(generate_iv())

        assert asyncio.run(_collect(stage(_aiter([])))) == []
        assert stage.appended is False

    def test_transform_never_repeats_iv(self) -> None:
        iv = generate_iv()
        stage = PrependIV(iv)

        first = stage.transform(b"a")
        rest = [stage.transform(b"b") for _ in range(10)]

        assert first == iv + b"a"
        assert rest == [b"b"] * 10

    def test_rejects_wrong_iv_length(self) -> None:
        with pytest.raises(ValueError):
            PrependIV(b"too short")


class TestGenerateIV:
    def test_length_and_uniqueness(self) -> None:
        ivs = {generate_iv() for _ in range(100)}

        assert len(ivs) == 100
        assert all(len(iv) == IV_LENGTH for iv in ivs)


class TestReadSplit:
    def test_read_iv_and_payload_are_disjoint(self, tmp_path: Path) -> None:
        iv = bytes(range(16))
        body = b"payload-bytes" * 100
        path = tmp_path / "obj"
        path.write_bytes(iv + body)

        assert asyncio.run(read_iv(path)) == iv
        assert b"".join(asyncio.run(_collect(iter_payload(path, 64)))) == body

    def test_iter_payload_from_offset_zero(self, tmp_path: Path) -> None:
        path = tmp_path / "obj"
        path.write_bytes(b"raw content")

        out = asyncio.run(_collect(iter_payload(path, 4, offset=0)))

        assert b"".join(out) == b"raw content"
        assert out[0] == b"raw "

    def test_short_object_fails_decode(self, tmp_path: Path) -> None:
        path = tmp_path / "obj"
        path.write_bytes(b"\x00" * 10)

        with pytest.raises(DecodeFailedError):
            asyncio.run(read_iv(path))
