"""Pydantic schemas for server information endpoints."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ServerInfoResponse(BaseModel):
    """Response model for server connection info."""
    model_config = ConfigDict(populate_by_name=True)

    server_url: str = Field(alias="serverUrl")
    local_ip: str = Field(alias="localIP")
    port: int
    service_name: str = Field(alias="serviceName")
    discovery_port: Optional[int] = Field(default=None, alias="discoveryPort")


class MimeTypesResponse(BaseModel):
    """Response model for the upload allow-list."""
    model_config = ConfigDict(populate_by_name=True)

    allowed_mime_types: List[str] = Field(alias="allowedMimeTypes")
    examples: Dict[str, str]
