"""Stored object naming.

A stored object's name is both its storage key and its only metadata
record::

    {uuid4}_{original_size}_{mime_category}_{mime_subtype}.{extension}

Serving reads the MIME type and original size straight from the name, so
response headers are known before a single byte is decrypted. Parsing is
positional and deliberately lenient: names that were not produced by
``build_name`` give garbage or ``None`` fields rather than errors.
"""

from __future__ import annotations

import re
import uuid
from abc import ABC, abstractmethod

from filevault.storage.models import ObjectMeta

DEFAULT_EXTENSION = "bin"

_SAFE_EXTENSION_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")


def extension_of(original_filename: str) -> str:
    """Return the extension of a client filename, without the dot.

    Falls back to DEFAULT_EXTENSION when there is none or when it holds
    anything but ASCII letters, digits and "-"; the extension ends up in
    the stored name and must survive name validation on serve and delete.
    """
    _, dot, ext = original_filename.rpartition(".")
    if not dot or not _SAFE_EXTENSION_PATTERN.match(ext):
        return DEFAULT_EXTENSION
    return ext


def build_name(original_size: int, mime_type: str, extension: str) -> str:
    """Build a fresh, unique stored object name.

    Args:
        original_size: Byte size of the content before compression.
        mime_type: MIME type such as "image/png".
        extension: File extension without the dot.

    Returns:
        Name of the form ``{token}_{size}_{category}_{subtype}.{extension}``.
    """
    token = uuid.uuid4()
    return f"{token}_{original_size}_{mime_type.replace('/', '_', 1)}.{extension}"


def parse_meta(name: str) -> ObjectMeta:
    """Recover MIME type and original size from a stored object name.

    Everything from the first "." on is dropped, the stem is split on "_",
    the last two fields form the MIME type and the third from last is the
    size.
    """
    stem = name.split(".", 1)[0]
    fields = stem.split("_")

    mime_type = f"{fields[-2]}/{fields[-1]}" if len(fields) >= 2 else None

    file_size: int | None = None
    if len(fields) >= 3:
        try:
            file_size = int(fields[-3])
        except ValueError:
            file_size = None

    return ObjectMeta(mime_type=mime_type, file_size=file_size)


class MetadataCodec(ABC):
    """Maps object metadata to and from stored object names.

    Pipelines talk to this interface only, so an index-backed metadata
    store can replace the filename scheme without touching them.
    """

    @abstractmethod
    def build_name(self, original_size: int, mime_type: str, extension: str) -> str: ...

    @abstractmethod
    def parse_meta(self, name: str) -> ObjectMeta: ...


class FilenameMetadataCodec(MetadataCodec):
    """Metadata codec that keeps everything in the object name."""

    def build_name(self, original_size: int, mime_type: str, extension: str) -> str:
        return build_name(original_size, mime_type, extension)

    def parse_meta(self, name: str) -> ObjectMeta:
        return parse_meta(name)
