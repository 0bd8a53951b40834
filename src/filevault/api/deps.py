"""FastAPI dependencies for FileVault routes."""

from __future__ import annotations

from pathlib import Path

from fastapi import Request

from filevault.storage.manager import FileVault


def get_vault(request: Request) -> FileVault:
    """Get the vault from app state."""
    return request.app.state.vault


def get_placeholder_path(request: Request) -> Path | None:
    """Get the not-found placeholder asset path from app state."""
    return request.app.state.placeholder_path
