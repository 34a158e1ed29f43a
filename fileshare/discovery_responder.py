"""UDP responder that answers local-network discovery queries."""

import asyncio
import json
import logging
import socket
from typing import Callable, Optional, Tuple

from common.constants import (
    ADDRESS_REFRESH_SECONDS,
    DEFAULT_SERVICE_NAME,
    DISCOVERY_PORT,
    DISCOVERY_SERVICE_ID,
    DISCOVERY_TOKEN,
)
from common.types import DiscoveryAnnouncement
from fileshare.network import LOOPBACK_ADDRESS, get_local_ip

logger = logging.getLogger(__name__)


class DiscoveryProtocol(asyncio.DatagramProtocol):
    """
    Answers each exact-match query with a unicast announcement.

    Every datagram is handled inside its own callback with a non-blocking
    sendto. The announcement callable must not block.
    """

    def __init__(self, announce: Callable[[], DiscoveryAnnouncement], token: bytes = DISCOVERY_TOKEN):
        self._announce = announce
        self._token = token
        self.transport: Optional[asyncio.DatagramTransport] = None
        self.replies_sent = 0

    def connection_made(self, transport) -> None:
        self.transport = transport

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        if data != self._token:
            logger.debug(f"Ignoring unrecognized datagram from {addr[0]}:{addr[1]} ({len(data)} bytes)")
            return

        try:
            announcement = self._announce()
            payload = json.dumps(announcement.to_payload()).encode("utf-8")
            self.transport.sendto(payload, addr)
        except OSError as e:
            logger.debug(f"Discovery reply to {addr[0]}:{addr[1]} failed: {e}")
            return

        self.replies_sent += 1
        logger.info(f"Discovery response sent to {addr[0]}:{addr[1]}")

    def error_received(self, exc: Exception) -> None:
        logger.debug(f"Discovery socket error: {exc}")


class DiscoveryResponder:
    """
    Listens on the well-known discovery port and tells clients where the
    HTTP service is. Independent of the file store.

    The advertised address is looked up in the default executor when the
    responder starts and again every refresh_interval seconds, so answering
    a query never waits on address detection.
    """

    def __init__(
        self,
        service_port: int,
        service_name: str = DEFAULT_SERVICE_NAME,
        port: int = DISCOVERY_PORT,
        host: str = "0.0.0.0",
        address_provider: Callable[[], str] = get_local_ip,
        refresh_interval: float = ADDRESS_REFRESH_SECONDS,
    ):
        """
        Args:
            service_port: HTTP port advertised to clients
            service_name: Human-readable name in announcements
            port: UDP port to listen on (0 picks a free port)
            host: Bind address
            address_provider: Returns the address to advertise; may block
            refresh_interval: Seconds between address lookups while running
        """
        if refresh_interval <= 0:
            raise ValueError(f"refresh_interval must be positive: {refresh_interval}")
        self.service_port = service_port
        self.service_name = service_name
        self.requested_port = port
        self.host = host
        self.address_provider = address_provider
        self.refresh_interval = refresh_interval
        self.address: Optional[str] = None
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._protocol: Optional[DiscoveryProtocol] = None
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._transport is not None

    @property
    def port(self) -> Optional[int]:
        """Bound UDP port, or None when stopped."""
        if self._transport is None:
            return None
        return self._transport.get_extra_info("sockname")[1]

    @property
    def replies_sent(self) -> int:
        return self._protocol.replies_sent if self._protocol else 0

    def announcement(self) -> DiscoveryAnnouncement:
        """Connection info for this instance, from the last address lookup."""
        return DiscoveryAnnouncement(
            service=DISCOVERY_SERVICE_ID,
            name=self.service_name,
            address=self.address or LOOPBACK_ADDRESS,
            port=self.service_port,
        )

    async def refresh_address(self) -> str:
        """Run the address provider off the event loop and cache its result."""
        loop = asyncio.get_running_loop()
        address = await loop.run_in_executor(None, self.address_provider)
        if address != self.address:
            logger.info(f"Advertising address {address} for discovery")
        self.address = address
        return address

    async def _refresh_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.refresh_interval)
                await self.refresh_address()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error refreshing discovery address: {e}", exc_info=True)

    async def start(self) -> None:
        """Bind the socket, look up the address and start answering queries."""
        if self._transport is not None:
            logger.warning("Discovery responder already running")
            return

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind((self.host, self.requested_port))
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise

        try:
            await self.refresh_address()
        except Exception:
            sock.close()
            raise

        loop = asyncio.get_running_loop()
        self._transport, self._protocol = await loop.create_datagram_endpoint(
            lambda: DiscoveryProtocol(self.announcement),
            sock=sock,
        )
        self._refresh_task = asyncio.create_task(self._refresh_loop())
        logger.info(f"Network discovery service started on UDP port {self.port}")

    async def stop(self) -> None:
        """Stop address refreshes and close the socket."""
        if self._transport is None:
            return
        if self._refresh_task:
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass
            self._refresh_task = None
        self._transport.close()
        self._transport = None
        logger.info("Network discovery service stopped")
