"""File routes for the FileVault API.

- POST   /v1/buckets/{bucket}/files          (uploadFile)
- GET    /v1/buckets/{bucket}/files/{name}   (downloadFile)
- DELETE /v1/buckets/{bucket}/files/{name}   (deleteFile)

Downloads stream the decoded content with Content-Type and Content-Length
taken from the object name. A missing object is answered with the
placeholder asset instead of an error.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import FileResponse, Response, StreamingResponse
from pydantic import BaseModel

from filevault.api.deps import get_placeholder_path, get_vault
from filevault.api.errors import FileVaultHttpError
from filevault.storage.manager import FileVault
from filevault.storage.models import InMemorySource, UploadedFile
from filevault.storage.validation import AllowedFileType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/buckets", tags=["Files"])

DEFAULT_MIME_TYPE = "application/octet-stream"

CATEGORY_ERROR_MESSAGES: dict[AllowedFileType, str] = {
    AllowedFileType.IMAGE: "file must be a png or jpeg image",
    AllowedFileType.PDF: "file must be a pdf document",
    AllowedFileType.ANY: "invalid file",
}


class StoredFileResponse(BaseModel):
    """Response body for a successful upload."""

    bucket: str
    name: str
    size: int
    content_type: str


async def serve_response(
    vault: FileVault,
    bucket: str,
    name: str,
    placeholder: Path | None,
    *,
    encrypted: bool = True,
) -> Response:
    """Build the HTTP response for a stored object.

    Headers come from the object name, before any byte is decoded. When
    the object is missing the placeholder asset is sent with its own
    headers; only if that is missing too does the client get a 404.
    """
    served = await vault.open_object(bucket, name, encrypted=encrypted)
    if served is not None:
        return StreamingResponse(served.stream, headers=served.meta.to_headers())

    if placeholder is not None and placeholder.is_file():
        return FileResponse(placeholder)

    logger.warning("Placeholder asset missing: bucket=%s", bucket)
    raise FileVaultHttpError(
        status_code=404,
        code="NOT_FOUND",
        message="File not found",
    )


@router.post("/{bucket:path}/files", status_code=201, response_model=StoredFileResponse)
async def upload_file(
    bucket: str,
    file: Annotated[UploadFile, File()],
    vault: Annotated[FileVault, Depends(get_vault)],
    category: AllowedFileType = AllowedFileType.ANY,
    encrypt: bool = True,
) -> StoredFileResponse:
    """Store an uploaded file and return its generated name."""
    data = await file.read()
    # Parameters such as "; charset=utf-8" are not part of the stored name.
    content_type = (file.content_type or "").split(";", 1)[0].strip() or DEFAULT_MIME_TYPE
    upload = UploadedFile(
        source=InMemorySource(data),
        mime_type=content_type,
        original_filename=file.filename or "",
        size=len(data),
    )

    name = await vault.save(
        upload,
        bucket,
        category,
        error_message=CATEGORY_ERROR_MESSAGES[category],
        encrypt=encrypt,
    )

    return StoredFileResponse(bucket=bucket, name=name, size=len(data), content_type=content_type)


@router.get("/{bucket:path}/files/{name}")
async def download_file(
    bucket: str,
    name: str,
    vault: Annotated[FileVault, Depends(get_vault)],
    placeholder: Annotated[Path | None, Depends(get_placeholder_path)],
    encrypted: Annotated[bool, Query(description="False for objects saved unencrypted")] = True,
) -> Response:
    """Stream a stored file, or the placeholder asset if it does not exist."""
    return await serve_response(vault, bucket, name, placeholder, encrypted=encrypted)


@router.delete("/{bucket:path}/files/{name}", status_code=204)
async def delete_file(
    bucket: str,
    name: str,
    vault: Annotated[FileVault, Depends(get_vault)],
) -> Response:
    """Delete a stored file. Deleting a missing file also returns 204."""
    await vault.delete_file(bucket, name)
    return Response(status_code=204)
