"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal, Optional, Union


@dataclass(frozen=True)
class DiscoverCommand:
    """Broadcast a discovery query."""

    command: Literal["discover"] = "discover"


@dataclass(frozen=True)
class ListCommand:
    """List shared files."""

    command: Literal["list"] = "list"


@dataclass(frozen=True)
class UploadCommand:
    """Upload local files as one batch."""

    file_list: tuple[str, ...]
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class DownloadCommand:
    """Download one file by storage name."""

    storage_name: str
    output_path: Optional[str] = None
    command: Literal["download"] = "download"


@dataclass(frozen=True)
class DeleteCommand:
    """Delete one file by storage name."""

    storage_name: str
    command: Literal["delete"] = "delete"


@dataclass(frozen=True)
class DownloadAllCommand:
    """Download the whole share as a ZIP archive."""

    output_path: Optional[str] = None
    command: Literal["download-all"] = "download-all"


@dataclass(frozen=True)
class ServerCommand:
    """Show or switch the server in use."""

    server_url: Optional[str] = None
    command: Literal["server"] = "server"


CommandRequest = Union[
    DiscoverCommand,
    ListCommand,
    UploadCommand,
    DownloadCommand,
    DeleteCommand,
    DownloadAllCommand,
    ServerCommand,
]
