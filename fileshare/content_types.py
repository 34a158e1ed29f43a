"""Upload content-type allow-list and name-based type detection."""

import mimetypes
from typing import Optional

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Prefix match: "image/" covers every image subtype, and the office prefix
# covers docx/xlsx/pptx.
ALLOWED_CONTENT_TYPES = (
    "image/",
    "application/pdf",
    "text/",
    "application/msword",
    "application/vnd.openxmlformats-officedocument",
    "application/vnd.ms-excel",
    "application/vnd.ms-powerpoint",
    "video/",
    "audio/",
    "application/zip",
    "application/x-zip-compressed",
    "application/x-rar-compressed",
    "application/x-7z-compressed",
    "application/json",
    "application/octet-stream",
)

CONTENT_TYPE_EXAMPLES = {
    "PNG Image": "image/png",
    "JPEG Image": "image/jpeg",
    "PDF Document": "application/pdf",
    "Word Doc": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "Excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "Text File": "text/plain",
    "ZIP Archive": "application/zip",
}


def normalize_content_type(content_type: Optional[str]) -> str:
    """
    Lower-case a declared content type and drop its parameters.

    A missing declaration is treated as generic binary, as browsers do for
    unknown files.
    """
    if not content_type:
        return DEFAULT_CONTENT_TYPE
    base = content_type.split(";", 1)[0].strip().lower()
    return base or DEFAULT_CONTENT_TYPE


def is_allowed_content_type(content_type: Optional[str]) -> bool:
    normalized = normalize_content_type(content_type)
    return any(normalized.startswith(allowed) for allowed in ALLOWED_CONTENT_TYPES)


def guess_content_type(file_name: str) -> str:
    """Content type of a stored file, from its name."""
    guessed, _ = mimetypes.guess_type(file_name, strict=False)
    return guessed or DEFAULT_CONTENT_TYPE
