"""Pytest configuration and fixtures for FileVault tests."""

from __future__ import annotations

import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from filevault.config import FILEVAULT_ENCRYPTION_KEY_ENV
from filevault.crypto.keys import CipherKey
from filevault.storage.manager import FileVault

TEST_SECRET = "test-passphrase-for-filevault"


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every test a known passphrase and tracing switched off.

    Tests that need a missing key or tracing override these.
    """
    monkeypatch.setenv(FILEVAULT_ENCRYPTION_KEY_ENV, TEST_SECRET)
    for var in (
        "FILEVAULT_STORAGE_ROOT",
        "FILEVAULT_PLACEHOLDER_PATH",
        "FILEVAULT_CHUNK_SIZE",
        "FILEVAULT_OTEL_ENABLED",
        "FILEVAULT_OTEL_TEST_CAPTURE",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def storage_root() -> Iterator[Path]:
    """Create a temporary storage root."""
    with tempfile.TemporaryDirectory(prefix="filevault_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def cipher_key() -> CipherKey:
    return CipherKey.from_secret(TEST_SECRET)


@pytest.fixture
def vault(storage_root: Path, cipher_key: CipherKey) -> FileVault:
    """Vault with a small chunk size so multi-chunk paths are exercised."""
    return FileVault(storage_root, cipher_key, chunk_size=1024)
