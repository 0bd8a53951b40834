"""FileVault storage.

Encrypted, compressed object storage on the local filesystem. Objects are
written through a streaming gzip -> AES-256-CBC pipeline with the IV stored
in the first 16 bytes, and their MIME type and original size are carried
in the object name.

Environment Variables:
    FILEVAULT_OTEL_ENABLED: "1" to emit OpenTelemetry spans for storage
        operations (default: disabled)
"""

from filevault.storage.errors import (
    DecodeFailedError,
    EncryptionFailedError,
    FileVaultError,
    InvalidFileTypeError,
    ObjectNotFoundError,
    PathTraversalError,
    StorageUnavailableError,
)
from filevault.storage.manager import FileVault
from filevault.storage.models import (
    ByteSource,
    InMemorySource,
    ObjectMeta,
    OnDiskSource,
    ServedObject,
    UploadedFile,
)
from filevault.storage.validation import AllowedFileType, is_valid_file

__all__ = [
    "AllowedFileType",
    "ByteSource",
    "DecodeFailedError",
    "EncryptionFailedError",
    "FileVault",
    "FileVaultError",
    "InMemorySource",
    "InvalidFileTypeError",
    "ObjectMeta",
    "ObjectNotFoundError",
    "OnDiskSource",
    "PathTraversalError",
    "ServedObject",
    "StorageUnavailableError",
    "UploadedFile",
    "is_valid_file",
]
