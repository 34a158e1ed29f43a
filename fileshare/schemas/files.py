"""Pydantic schemas for file operation endpoints."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from common.types import StoredFile


class StoredFileResponse(BaseModel):
    """Response model for one stored file."""
    model_config = ConfigDict(populate_by_name=True)

    storage_name: str = Field(alias="storageName")
    display_name: str = Field(alias="displayName")
    size: int
    modified_at: datetime = Field(alias="modifiedAt")
    content_type: str = Field(alias="contentType")
    is_image: bool = Field(alias="isImage")
    is_pdf: bool = Field(alias="isPDF")

    @classmethod
    def from_stored(cls, stored: StoredFile) -> "StoredFileResponse":
        return cls(
            storage_name=stored.storage_name,
            display_name=stored.display_name,
            size=stored.size_bytes,
            modified_at=stored.modified_at,
            content_type=stored.content_type,
            is_image=stored.is_image,
            is_pdf=stored.is_pdf,
        )


class ListFilesResponse(BaseModel):
    """Response model for file listing."""
    files: List[StoredFileResponse]


class UploadResponse(BaseModel):
    """Response model for an upload batch."""
    message: str
    files: List[StoredFileResponse]


class DeleteFileResponse(BaseModel):
    """Response model for file deletion."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    storage_name: str = Field(alias="storageName")
