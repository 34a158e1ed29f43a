"""Configuration settings for the file share server."""

import os
from dataclasses import dataclass
from pathlib import Path

from common.constants import (
    DEFAULT_HTTP_PORT,
    DEFAULT_SERVICE_NAME,
    DEFAULT_UPLOAD_DIR,
    DISCOVERY_PORT,
    MAX_FILES_PER_UPLOAD,
    MAX_UPLOAD_BYTES,
    SUBSCRIBER_BUFFER_SIZE,
)


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SHARE_HOST = os.environ.get("SHARE_HOST", "0.0.0.0")

SHARE_PORT = int(os.environ.get("SHARE_PORT", str(DEFAULT_HTTP_PORT)))

SHARE_UPLOAD_DIR = os.environ.get("SHARE_UPLOAD_DIR", DEFAULT_UPLOAD_DIR)

SHARE_MAX_UPLOAD_BYTES = int(os.environ.get("SHARE_MAX_UPLOAD_BYTES", str(MAX_UPLOAD_BYTES)))

SHARE_MAX_FILES_PER_UPLOAD = int(os.environ.get("SHARE_MAX_FILES_PER_UPLOAD", str(MAX_FILES_PER_UPLOAD)))

SHARE_DISCOVERY_ENABLED = _env_bool("SHARE_DISCOVERY_ENABLED", True)

SHARE_DISCOVERY_PORT = int(os.environ.get("SHARE_DISCOVERY_PORT", str(DISCOVERY_PORT)))

SHARE_SUBSCRIBER_BUFFER = int(os.environ.get("SHARE_SUBSCRIBER_BUFFER", str(SUBSCRIBER_BUFFER_SIZE)))

SHARE_SERVICE_NAME = os.environ.get("SHARE_SERVICE_NAME", DEFAULT_SERVICE_NAME)


@dataclass(frozen=True)
class ServerSettings:
    """Runtime settings for one server instance."""
    upload_dir: Path
    host: str = SHARE_HOST
    port: int = SHARE_PORT
    max_upload_bytes: int = SHARE_MAX_UPLOAD_BYTES
    max_files_per_upload: int = SHARE_MAX_FILES_PER_UPLOAD
    discovery_enabled: bool = SHARE_DISCOVERY_ENABLED
    discovery_port: int = SHARE_DISCOVERY_PORT
    subscriber_buffer: int = SHARE_SUBSCRIBER_BUFFER
    service_name: str = SHARE_SERVICE_NAME

    @classmethod
    def from_env(cls) -> "ServerSettings":
        """Build settings from SHARE_* environment variables."""
        return cls(upload_dir=Path(SHARE_UPLOAD_DIR).resolve())

    @property
    def max_request_bytes(self) -> int:
        """Ceiling for a whole upload request, multipart overhead included."""
        return self.max_upload_bytes * self.max_files_per_upload + 1024 * 1024
