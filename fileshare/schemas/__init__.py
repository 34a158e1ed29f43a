"""Pydantic schemas for API requests and responses."""

from fileshare.schemas.files import (
    StoredFileResponse,
    ListFilesResponse,
    UploadResponse,
    DeleteFileResponse
)
from fileshare.schemas.info import (
    ServerInfoResponse,
    MimeTypesResponse
)
from fileshare.schemas.common import ErrorResponse

__all__ = [
    "StoredFileResponse",
    "ListFilesResponse",
    "UploadResponse",
    "DeleteFileResponse",
    "ServerInfoResponse",
    "MimeTypesResponse",
    "ErrorResponse"
]
