"""FileVault storage object manager.

Stores uploads under ``{root}/{bucket}/{name}`` and serves them back:
- Bucket directories are created on demand
- Bucket and name are checked for path traversal before touching disk
- Save and serve are delegated to the encode and decode pipelines
- Deleting a missing object is a no-op
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles.os

from filevault.crypto.keys import CipherKey
from filevault.storage.decode import DecodePipeline
from filevault.storage.encode import EncodePipeline
from filevault.storage.errors import (
    InvalidFileTypeError,
    PathTraversalError,
    StorageUnavailableError,
)
from filevault.storage.models import ServedObject, UploadedFile
from filevault.storage.naming import FilenameMetadataCodec, MetadataCodec, extension_of
from filevault.storage.streams import DEFAULT_CHUNK_SIZE
from filevault.storage.tracing import traced_storage_operation
from filevault.storage.validation import AllowedFileType, is_valid_file

if TYPE_CHECKING:
    from filevault.config import VaultSettings

logger = logging.getLogger(__name__)

_SAFE_BUCKET_PATTERN = re.compile(r"^[a-zA-Z0-9_\-./]+$")
_SAFE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-.+]+$")


def _is_path_traversal(bucket: str) -> bool:
    """Check whether a bucket path could escape the storage root.

    Detects:
    - ".." segments
    - Backslashes and null bytes
    - Home-relative paths and Windows drive letters
    - Characters outside the safe set
    """
    if "\x00" in bucket or "\\" in bucket:
        return True
    if bucket.startswith("~"):
        return True
    if len(bucket) >= 2 and bucket[1] == ":":
        return True
    if any(segment == ".." for segment in bucket.split("/")):
        return True
    return not _SAFE_BUCKET_PATTERN.match(bucket)


class FileVault:
    """Encrypted, compressed file storage on the local filesystem.

    Objects are laid out as::

        {root}/{bucket}/{uuid}_{size}_{category}_{subtype}.{ext}

    The cipher key is derived once by the caller and handed in; both
    pipelines share it read-only.
    """

    def __init__(
        self,
        root: str | Path,
        cipher_key: CipherKey,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        codec: MetadataCodec | None = None,
    ) -> None:
        """Initialize the vault.

        Args:
            root: Storage root directory; buckets live below it.
            cipher_key: Key shared by the encode and decode pipelines.
            chunk_size: Stream chunk size in bytes.
            codec: Metadata codec (defaults to the filename scheme).
        """
        self._root = Path(root).resolve()
        self._encoder = EncodePipeline(cipher_key, chunk_size=chunk_size)
        self._decoder = DecodePipeline(cipher_key, chunk_size=chunk_size)
        self._codec = codec or FilenameMetadataCodec()
        logger.debug(
            "FileVault initialized: root=%s key_fingerprint=%s",
            self._root,
            cipher_key.fingerprint,
        )

    @classmethod
    def from_settings(cls, settings: VaultSettings) -> FileVault:
        """Build a vault from settings, deriving the key immediately.

        Raises:
            MissingEncryptionKeyError: If no passphrase is configured.
        """
        return cls(
            settings.storage_root,
            CipherKey.from_secret(settings.encryption_key),
            chunk_size=settings.chunk_size,
        )

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "filesystem"

    @property
    def root(self) -> Path:
        return self._root

    def resolve_bucket(self, bucket: str) -> Path:
        """Map a bucket path onto a directory under the root.

        Leading and trailing slashes are ignored, so "/uploads" and
        "uploads" name the same bucket.

        Raises:
            PathTraversalError: If the bucket is empty or unsafe.
        """
        relative = bucket.strip("/")
        if not relative or _is_path_traversal(relative):
            raise PathTraversalError(
                message="Invalid bucket: path traversal or unsafe characters detected",
                bucket=bucket,
            )
        bucket_dir = self._root / relative
        return self._ensure_within_root(bucket_dir, bucket=bucket)

    def resolve_object(self, bucket: str, name: str) -> Path:
        """Map bucket and object name onto a file path under the root.

        Raises:
            PathTraversalError: If either part is unsafe.
        """
        if name in (".", "..") or not _SAFE_NAME_PATTERN.match(name):
            raise PathTraversalError(
                message="Invalid object name",
                bucket=bucket,
                name=name,
            )
        path = self.resolve_bucket(bucket) / name
        return self._ensure_within_root(path, bucket=bucket, name=name)

    def _ensure_within_root(self, path: Path, *, bucket: str, name: str | None = None) -> Path:
        resolved = path.resolve()
        try:
            resolved.relative_to(self._root)
        except ValueError as e:
            raise PathTraversalError(
                message="Path resolves outside storage root",
                bucket=bucket,
                name=name,
            ) from e
        return resolved

    async def _ensure_bucket(self, bucket_dir: Path, bucket: str) -> None:
        try:
            await aiofiles.os.makedirs(bucket_dir, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                message=f"Failed to create bucket directory: {e}",
                bucket=bucket,
                cause=e,
            ) from e

    @traced_storage_operation("save")
    async def save(
        self,
        upload: UploadedFile,
        bucket: str,
        allowed_type: AllowedFileType | str,
        error_message: str = "invalid file",
        encrypt: bool = True,
    ) -> str:
        """Store an upload and return its generated name.

        Args:
            upload: The file to store.
            bucket: Bucket path under the root.
            allowed_type: Category the MIME type must belong to.
            error_message: Message for the InvalidFileTypeError.
            encrypt: If False, store the bytes unchanged.

        Returns:
            The stored object name; it is the only retrieval key.

        Raises:
            InvalidFileTypeError: If the MIME type is not allowed.
            PathTraversalError: If the bucket is unsafe, or the MIME type puts
                characters into the name that serve and delete would reject.
            StorageUnavailableError: If the bucket cannot be prepared or a
                raw write fails.
            EncryptionFailedError: If the encode pipe fails.
        """
        if not is_valid_file(allowed_type, upload.mime_type):
            logger.info(
                "Upload rejected: bucket=%s mime_type=%s allowed=%s",
                bucket,
                upload.mime_type,
                AllowedFileType(allowed_type).value,
            )
            raise InvalidFileTypeError(error_message, bucket=bucket, mime_type=upload.mime_type)

        bucket_dir = self.resolve_bucket(bucket)

        try:
            original_size = upload.byte_size
        except OSError as e:
            raise StorageUnavailableError(
                message=f"Failed to read upload source: {e}",
                bucket=bucket,
                cause=e,
            ) from e

        name = self._codec.build_name(
            original_size,
            upload.mime_type,
            extension_of(upload.original_filename),
        )

        # Validated exactly as open_object and delete_file validate it.
        dest = self.resolve_object(bucket, name)

        await self._ensure_bucket(bucket_dir, bucket)

        if encrypt:
            await self._encoder.encrypt_and_save(upload.source, dest)
        else:
            await self._encoder.save_raw(upload.source, dest)

        logger.info(
            "Stored object: bucket=%s name=%s size=%d encrypted=%s",
            bucket,
            name,
            original_size,
            encrypt,
        )
        return name

    @traced_storage_operation("open")
    async def open_object(
        self,
        bucket: str,
        name: str,
        *,
        encrypted: bool = True,
    ) -> ServedObject | None:
        """Open a stored object for streaming.

        Args:
            bucket: Bucket path under the root.
            name: Stored object name returned by ``save``.
            encrypted: Whether the object was saved with encryption.

        Returns:
            ServedObject with name-derived metadata and a decoded stream,
            or None if the object does not exist.

        Raises:
            PathTraversalError: If bucket or name is unsafe.
            DecodeFailedError: If the object header is corrupt; later,
                while iterating the stream, for corrupt content.
        """
        path = self.resolve_object(bucket, name)
        if not await aiofiles.os.path.isfile(path):
            logger.info("Object not found: bucket=%s name=%s", bucket, name)
            return None

        meta = self._codec.parse_meta(name)
        stream = await self._decoder.open_stream(path, encrypted=encrypted)
        return ServedObject(bucket=bucket, name=name, meta=meta, stream=stream)

    async def exists(self, bucket: str, name: str) -> bool:
        """Return True if the object is present on disk."""
        return await aiofiles.os.path.isfile(self.resolve_object(bucket, name))

    @traced_storage_operation("delete")
    async def delete_file(self, bucket: str, name: str) -> None:
        """Delete a stored object. A missing object is not an error.

        Raises:
            PathTraversalError: If bucket or name is unsafe.
            StorageUnavailableError: If the file exists but cannot be removed.
        """
        path = self.resolve_object(bucket, name)
        if not await aiofiles.os.path.exists(path):
            return

        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageUnavailableError(
                message=f"Failed to delete object: {e}",
                bucket=bucket,
                name=name,
                cause=e,
            ) from e

        logger.info("Deleted object: bucket=%s name=%s", bucket, name)
