"""Server information routes."""

import asyncio

from fastapi import APIRouter, Depends

from fileshare.content_types import ALLOWED_CONTENT_TYPES, CONTENT_TYPE_EXAMPLES
from fileshare.context import ShareContext, get_context
from fileshare.network import get_local_ip
from fileshare.schemas.info import MimeTypesResponse, ServerInfoResponse

router = APIRouter(prefix="/api", tags=["Info"])


@router.get("/server-info", response_model=ServerInfoResponse)
async def server_info(context: ShareContext = Depends(get_context)):
    """
    Connection details for other devices on the network.
    """
    loop = asyncio.get_running_loop()
    local_ip = await loop.run_in_executor(None, get_local_ip)
    port = context.settings.port
    discovery_port = context.discovery.port if context.discovery else None
    return ServerInfoResponse(
        server_url=f"http://{local_ip}:{port}",
        local_ip=local_ip,
        port=port,
        service_name=context.settings.service_name,
        discovery_port=discovery_port
    )


@router.get("/mimetypes", response_model=MimeTypesResponse)
async def mime_types():
    """
    Content types accepted for upload.
    """
    return MimeTypesResponse(
        allowed_mime_types=list(ALLOWED_CONTENT_TYPES),
        examples=CONTENT_TYPE_EXAMPLES
    )
