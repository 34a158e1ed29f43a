"""Utility helper functions for the file share server."""

import uuid
from typing import List
from urllib.parse import quote

from common.types import StoredFile


def generate_request_id() -> str:
    """
    Generate a new request identifier.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def content_disposition(disposition: str, filename: str) -> str:
    """
    Build a Content-Disposition header value.

    Non-ASCII names get an RFC 5987 filename* parameter next to an ASCII
    fallback.

    Args:
        disposition: 'attachment' or 'inline'
        filename: Suggested file name

    Returns:
        Header value
    """
    fallback = filename.encode('ascii', 'replace').decode('ascii')
    fallback = fallback.replace('\\', '_').replace('"', "'")
    if fallback == filename:
        return f'{disposition}; filename="{fallback}"'
    return f"{disposition}; filename=\"{fallback}\"; filename*=utf-8''{quote(filename, safe='')}"


def newest_first(files: List[StoredFile]) -> List[StoredFile]:
    """
    Order files for display: most recently modified first.

    Args:
        files: Files from a store listing

    Returns:
        New sorted list
    """
    return sorted(files, key=lambda f: (f.modified_at, f.storage_name), reverse=True)
