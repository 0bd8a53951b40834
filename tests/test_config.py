"""Tests for FileVault settings loading."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from filevault.config import (
    FILEVAULT_CHUNK_SIZE_ENV,
    FILEVAULT_ENCRYPTION_KEY_ENV,
    FILEVAULT_HOST_ENV,
    FILEVAULT_PLACEHOLDER_PATH_ENV,
    FILEVAULT_PORT_ENV,
    FILEVAULT_STORAGE_ROOT_ENV,
    ConfigError,
    load_settings,
)
from filevault.storage.streams import DEFAULT_CHUNK_SIZE


class TestLoadSettings:
    def test_defaults(self) -> None:
        settings = load_settings({})

        assert settings.storage_root == Path(tempfile.gettempdir()) / "filevault"
        assert settings.placeholder_path == settings.storage_root / "uploads" / "file-not-found.png"
        assert settings.encryption_key == ""
        assert settings.chunk_size == DEFAULT_CHUNK_SIZE
        assert settings.host == "127.0.0.1"
        assert settings.port == 8000

    def test_overrides(self, tmp_path: Path) -> None:
        settings = load_settings(
            {
                FILEVAULT_STORAGE_ROOT_ENV: str(tmp_path),
                FILEVAULT_ENCRYPTION_KEY_ENV: "s3cret",
                FILEVAULT_PLACEHOLDER_PATH_ENV: str(tmp_path / "missing.png"),
                FILEVAULT_CHUNK_SIZE_ENV: "4096",
                FILEVAULT_HOST_ENV: "0.0.0.0",
                FILEVAULT_PORT_ENV: "9000",
            }
        )

        assert settings.storage_root == tmp_path
        assert settings.placeholder_path == tmp_path / "missing.png"
        assert settings.encryption_key == "s3cret"
        assert settings.chunk_size == 4096
        assert settings.host == "0.0.0.0"
        assert settings.port == 9000

    def test_placeholder_follows_root(self, tmp_path: Path) -> None:
        settings = load_settings({FILEVAULT_STORAGE_ROOT_ENV: str(tmp_path)})

        assert settings.placeholder_path == tmp_path / "uploads" / "file-not-found.png"

    def test_key_not_in_repr(self) -> None:
        settings = load_settings({FILEVAULT_ENCRYPTION_KEY_ENV: "do-not-print"})

        assert "do-not-print" not in repr(settings)

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(FILEVAULT_CHUNK_SIZE_ENV, "2048")

        assert load_settings().chunk_size == 2048

    @pytest.mark.parametrize("value", ["abc", "0", "-5", "1.5"])
    def test_bad_chunk_size(self, value: str) -> None:
        with pytest.raises(ConfigError, match=FILEVAULT_CHUNK_SIZE_ENV):
            load_settings({FILEVAULT_CHUNK_SIZE_ENV: value})

    def test_bad_port(self) -> None:
        with pytest.raises(ConfigError):
            load_settings({FILEVAULT_PORT_ENV: "http"})
