"""Project-wide constants (ports, limits, discovery protocol)."""

DEFAULT_HTTP_PORT: int = 3000
DEFAULT_UPLOAD_DIR: str = "./uploads"

MAX_UPLOAD_BYTES: int = 100 * 1024 * 1024  # 100 MiB per file
MAX_FILES_PER_UPLOAD: int = 10
COPY_CHUNK_SIZE: int = 1024 * 1024

INCOMING_DIR_NAME: str = ".incoming"
STORAGE_NAME_SEPARATOR: str = "~"
PLACEHOLDER_FILE_NAME: str = "file"
MAX_DISPLAY_NAME_LENGTH: int = 200

ARCHIVE_FILE_NAME: str = "shared-files.zip"

SUBSCRIBER_BUFFER_SIZE: int = 64

DISCOVERY_PORT: int = 41234
DISCOVERY_TOKEN: bytes = b"FILE_SHARE_DISCOVERY"
DISCOVERY_SERVICE_ID: str = "file-share"
DEFAULT_SERVICE_NAME: str = "LAN File Share"
DISCOVERY_TIMEOUT_SECONDS: float = 2.0
MAX_DATAGRAM_SIZE: int = 4096
ADDRESS_REFRESH_SECONDS: float = 30.0
