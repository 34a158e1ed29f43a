"""Shared data type definitions (StoredFile, ChangeEvent, DiscoveryAnnouncement)."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Tuple


class ChangeAction(str, Enum):
    """Kind of committed store mutation."""
    UPLOAD = "upload"
    DELETE = "delete"


@dataclass(frozen=True)
class StoredFile:
    """
    One file in the shared directory.
    """
    storage_name: str
    display_name: str
    size_bytes: int
    modified_at: datetime
    content_type: str

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def is_pdf(self) -> bool:
        return self.content_type == "application/pdf"


@dataclass(frozen=True)
class ChangeEvent:
    """
    Notification describing one committed mutation to the store.
    """
    action: ChangeAction
    affected: Tuple[str, ...] = field(default_factory=tuple)

    def to_message(self) -> dict:
        """Wire form pushed to viewers."""
        return {
            "event": "files-updated",
            "action": self.action.value,
            "affected": list(self.affected),
        }


@dataclass(frozen=True)
class DiscoveryAnnouncement:
    """
    Connection info returned to a discovery query.
    """
    service: str
    name: str
    address: str
    port: int

    @property
    def url(self) -> str:
        return f"http://{self.address}:{self.port}"

    def to_payload(self) -> dict:
        return {
            "service": self.service,
            "name": self.name,
            "ip": self.address,
            "port": self.port,
            "url": self.url,
        }
