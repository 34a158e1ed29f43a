"""File operation API routes."""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from common.constants import ARCHIVE_FILE_NAME
from fileshare.context import ShareContext, get_context
from fileshare.file_store import DownloadHandle, UploadEntry
from fileshare.schemas.common import ErrorResponse
from fileshare.schemas.files import (
    DeleteFileResponse,
    ListFilesResponse,
    StoredFileResponse,
    UploadResponse
)
from fileshare.utils import content_disposition, newest_first

router = APIRouter(prefix="/api", tags=["Files"])

NOT_FOUND = {404: {"model": ErrorResponse}}


async def _run_blocking(func, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func, *args)


def _file_response(handle: DownloadHandle, disposition: str) -> StreamingResponse:
    return StreamingResponse(
        handle.iter_chunks(),
        media_type=handle.content_type,
        headers={
            "Content-Disposition": content_disposition(disposition, handle.display_name),
            "Content-Length": str(handle.size_bytes)
        },
        background=BackgroundTask(handle.close)
    )


@router.get("/files", response_model=ListFilesResponse)
async def list_files(context: ShareContext = Depends(get_context)):
    """
    List stored files, most recently modified first.
    """
    files = await _run_blocking(context.store.list_files)
    return ListFilesResponse(
        files=[StoredFileResponse.from_stored(f) for f in newest_first(files)]
    )


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}}
)
async def upload_files(
    files: Optional[List[UploadFile]] = File(None),
    context: ShareContext = Depends(get_context)
):
    """
    Upload one or more files as a single batch.

    Parameters:
        - files: One or more parts of a multipart/form-data body

    Returns:
        - message: Summary
        - files: Metadata of every stored file

    Raises:
        - 400: No files, too many files, or a disallowed content type
        - 413: A file exceeds the size limit
        - 500: Storage failure
    """
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files uploaded"
        )

    entries = [
        UploadEntry(
            display_name=upload.filename or "",
            stream=upload.file,
            content_type=upload.content_type,
            declared_size=getattr(upload, "size", None)
        )
        for upload in files
    ]

    try:
        stored = await _run_blocking(context.store.add_batch, entries)
    finally:
        for upload in files:
            await upload.close()

    return UploadResponse(
        message=f"{len(stored)} file(s) uploaded successfully",
        files=[StoredFileResponse.from_stored(s) for s in stored]
    )


@router.get("/download/{storage_name}", responses=NOT_FOUND)
async def download_file(storage_name: str, context: ShareContext = Depends(get_context)):
    """
    Download a stored file as an attachment named after its display name.
    """
    handle = await _run_blocking(context.store.resolve_for_download, storage_name)
    return _file_response(handle, "attachment")


@router.get("/preview/{storage_name}", responses=NOT_FOUND)
async def preview_file(storage_name: str, context: ShareContext = Depends(get_context)):
    """
    Serve a stored file inline for in-browser preview.
    """
    handle = await _run_blocking(context.store.resolve_for_download, storage_name)
    return _file_response(handle, "inline")


@router.delete("/delete/{storage_name}", response_model=DeleteFileResponse, responses=NOT_FOUND)
async def delete_file(storage_name: str, context: ShareContext = Depends(get_context)):
    """
    Delete a stored file.

    Raises:
        - 404: File not found
    """
    await _run_blocking(context.store.remove, storage_name)
    return DeleteFileResponse(message="File deleted successfully", storage_name=storage_name)


@router.get("/download-all")
async def download_all(context: ShareContext = Depends(get_context)):
    """
    Stream every stored file as one ZIP archive.
    """
    return StreamingResponse(
        context.archive_builder.stream(),
        media_type="application/zip",
        headers={"Content-Disposition": content_disposition("attachment", ARCHIVE_FILE_NAME)}
    )
