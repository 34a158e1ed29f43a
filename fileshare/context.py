"""Process-scoped service state with explicit startup and shutdown."""

import logging
from typing import Optional

from fastapi import Request

from fileshare.archive_builder import ArchiveBuilder
from fileshare.config import ServerSettings
from fileshare.discovery_responder import DiscoveryResponder
from fileshare.file_store import FileStore
from fileshare.notifier import ChangeNotifier

logger = logging.getLogger(__name__)


class ShareContext:
    """
    Owns the store, the change notifier, the archive builder and the
    discovery responder for one server instance.
    """

    def __init__(self, settings: ServerSettings):
        self.settings = settings
        self.notifier = ChangeNotifier(buffer_size=settings.subscriber_buffer)
        self.store = FileStore(
            root=settings.upload_dir,
            notifier=self.notifier,
            max_upload_bytes=settings.max_upload_bytes,
            max_files_per_upload=settings.max_files_per_upload,
        )
        self.archive_builder = ArchiveBuilder(self.store)
        self.discovery: Optional[DiscoveryResponder] = None
        if settings.discovery_enabled:
            self.discovery = DiscoveryResponder(
                service_port=settings.port,
                service_name=settings.service_name,
                port=settings.discovery_port,
            )

    async def start(self) -> None:
        """Prepare the shared directory and bind the discovery socket."""
        self.store.ensure_directories()
        self.store.purge_incoming()
        logger.info(f"Shared directory: {self.store.root}")

        if self.discovery:
            try:
                await self.discovery.start()
            except OSError as e:
                logger.error(f"Failed to start discovery on UDP port {self.settings.discovery_port}: {e}")
                logger.info("Continuing without network discovery")
                self.discovery = None

    async def stop(self) -> None:
        """Close the discovery socket and drop every viewer."""
        if self.discovery:
            await self.discovery.stop()
        self.notifier.close()


def get_context(request: Request) -> ShareContext:
    """FastAPI dependency returning the running ShareContext."""
    return request.app.state.context
