"""FileVault FastAPI application factory."""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from filevault.api.errors import (
    FileVaultHttpError,
    filevault_http_error_handler,
    generic_exception_handler,
    http_exception_handler,
    request_validation_error_handler,
    storage_error_handler,
)
from filevault.api.middleware.request_id import RequestIdMiddleware
from filevault.api.routes.files import router as files_router
from filevault.api.routes.health import router as health_router
from filevault.config import VaultSettings, load_settings
from filevault.observability.tracing import configure_tracing, instrument_fastapi
from filevault.storage.errors import FileVaultError
from filevault.storage.manager import FileVault

FILEVAULT_VERSION = "1.0.0"


def create_app(
    vault: FileVault | None = None,
    *,
    settings: VaultSettings | None = None,
    placeholder_path: Path | None = None,
) -> FastAPI:
    """Create and configure the FileVault FastAPI application.

    The vault (and with it the cipher key) is built here, so a missing
    encryption passphrase stops the app before it serves any request.

    Args:
        vault: Optional pre-built vault for testing. If None, built from settings.
        settings: Optional settings. If None, loaded from the environment.
        placeholder_path: Optional override for the not-found placeholder asset.

    Returns:
        Configured FastAPI application instance.

    Raises:
        MissingEncryptionKeyError: If no vault is given and no passphrase is set.
    """
    if settings is None:
        settings = load_settings()
    if vault is None:
        vault = FileVault.from_settings(settings)

    app = FastAPI(
        title="FileVault API",
        description="Encrypted, compressed file storage with streaming retrieval",
        version=FILEVAULT_VERSION,
    )

    app.state.vault = vault
    app.state.placeholder_path = placeholder_path or settings.placeholder_path

    configure_tracing()

    app.add_middleware(RequestIdMiddleware)

    instrument_fastapi(app)

    app.add_exception_handler(FileVaultHttpError, filevault_http_error_handler)
    app.add_exception_handler(FileVaultError, storage_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(files_router)

    return app
