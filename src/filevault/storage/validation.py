"""Upload MIME type allow-lists."""

from __future__ import annotations

from enum import Enum


class AllowedFileType(str, Enum):
    """Category of files a bucket accepts."""

    IMAGE = "image"
    PDF = "pdf"
    ANY = "any"


VALID_IMAGE_TYPES = frozenset({"image/png", "image/jpeg", "image/jpg"})
VALID_PDF_TYPES = frozenset({"application/pdf"})

_ALLOW_LISTS: dict[AllowedFileType, frozenset[str]] = {
    AllowedFileType.IMAGE: VALID_IMAGE_TYPES,
    AllowedFileType.PDF: VALID_PDF_TYPES,
}


def is_valid_file(allowed_type: AllowedFileType | str, mime_type: str) -> bool:
    """Check a MIME type against the allow-list of a category.

    Raises:
        ValueError: If ``allowed_type`` is not a known category.
    """
    category = AllowedFileType(allowed_type)
    if category is AllowedFileType.ANY:
        return True
    return mime_type in _ALLOW_LISTS[category]
