"""FileVault configuration.

Settings come from environment variables. The encryption passphrase is
never given a default: a vault built without one refuses to start.

Environment Variables:
    FILEVAULT_STORAGE_ROOT: Root directory holding all buckets
        (default: tempfile.gettempdir() / filevault)
    FILEVAULT_ENCRYPTION_KEY: Passphrase the cipher key is derived from (required)
    FILEVAULT_PLACEHOLDER_PATH: Asset served when a requested object is missing
        (default: {root}/uploads/file-not-found.png)
    FILEVAULT_CHUNK_SIZE: Stream chunk size in bytes (default: 65536)
    FILEVAULT_HOST: Bind address for ``filevault serve`` (default: 127.0.0.1)
    FILEVAULT_PORT: Bind port for ``filevault serve`` (default: 8000)
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from filevault.storage.streams import DEFAULT_CHUNK_SIZE

FILEVAULT_STORAGE_ROOT_ENV = "FILEVAULT_STORAGE_ROOT"
FILEVAULT_ENCRYPTION_KEY_ENV = "FILEVAULT_ENCRYPTION_KEY"
FILEVAULT_PLACEHOLDER_PATH_ENV = "FILEVAULT_PLACEHOLDER_PATH"
FILEVAULT_CHUNK_SIZE_ENV = "FILEVAULT_CHUNK_SIZE"
FILEVAULT_HOST_ENV = "FILEVAULT_HOST"
FILEVAULT_PORT_ENV = "FILEVAULT_PORT"

DEFAULT_BUCKET = "uploads"
PLACEHOLDER_FILENAME = "file-not-found.png"


class ConfigError(Exception):
    """Raised when an environment variable holds an unusable value."""

    pass


@dataclass(frozen=True)
class VaultSettings:
    """Vault configuration. Immutable once loaded."""

    storage_root: Path
    placeholder_path: Path
    encryption_key: str = field(default="", repr=False)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    host: str = "127.0.0.1"
    port: int = 8000


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> VaultSettings:
    """Load settings from the environment.

    Args:
        environ: Mapping to read instead of ``os.environ`` (for tests).

    Raises:
        ConfigError: If a numeric setting is malformed.
    """
    env = os.environ if environ is None else environ

    root_raw = env.get(FILEVAULT_STORAGE_ROOT_ENV, "").strip()
    storage_root = Path(root_raw) if root_raw else Path(tempfile.gettempdir()) / "filevault"

    placeholder_raw = env.get(FILEVAULT_PLACEHOLDER_PATH_ENV, "").strip()
    placeholder_path = (
        Path(placeholder_raw)
        if placeholder_raw
        else storage_root / DEFAULT_BUCKET / PLACEHOLDER_FILENAME
    )

    return VaultSettings(
        storage_root=storage_root,
        placeholder_path=placeholder_path,
        encryption_key=env.get(FILEVAULT_ENCRYPTION_KEY_ENV, ""),
        chunk_size=_get_int(env, FILEVAULT_CHUNK_SIZE_ENV, DEFAULT_CHUNK_SIZE),
        host=env.get(FILEVAULT_HOST_ENV, "").strip() or "127.0.0.1",
        port=_get_int(env, FILEVAULT_PORT_ENV, 8000),
    )
