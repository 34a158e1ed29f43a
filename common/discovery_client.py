"""UDP broadcast discovery of file share servers on the local network."""

import json
import logging
import socket
import time
from typing import List, Optional

from common.constants import (
    DISCOVERY_PORT,
    DISCOVERY_SERVICE_ID,
    DISCOVERY_TIMEOUT_SECONDS,
    DISCOVERY_TOKEN,
    MAX_DATAGRAM_SIZE,
)
from common.types import DiscoveryAnnouncement

logger = logging.getLogger(__name__)


def parse_announcement(payload: bytes) -> Optional[DiscoveryAnnouncement]:
    """
    Parse one discovery reply.

    Args:
        payload: Raw datagram received from a responder

    Returns:
        DiscoveryAnnouncement, or None if the payload is not a valid reply
    """
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None

    if not isinstance(data, dict) or data.get("service") != DISCOVERY_SERVICE_ID:
        return None

    address = data.get("ip")
    port = data.get("port")
    if not isinstance(address, str) or not address:
        return None
    if isinstance(port, bool) or not isinstance(port, int) or port <= 0 or port > 65535:
        return None

    return DiscoveryAnnouncement(
        service=DISCOVERY_SERVICE_ID,
        name=str(data.get("name", "")),
        address=address,
        port=port,
    )


def discover_servers(
    timeout: float = DISCOVERY_TIMEOUT_SECONDS,
    port: int = DISCOVERY_PORT,
    broadcast_address: str = "255.255.255.255",
) -> List[DiscoveryAnnouncement]:
    """
    Broadcast a discovery query and collect every answer until the timeout.

    Args:
        timeout: Seconds to wait for replies
        port: Responder port
        broadcast_address: Destination address (broadcast, or a single host)

    Returns:
        Announcements de-duplicated by URL, sorted for determinism.

    Raises:
        ValueError: If port or timeout is invalid
        OSError: If the query cannot be sent
    """
    if port <= 0 or port > 65535:
        raise ValueError(f"Invalid port number: {port}")
    if timeout <= 0:
        raise ValueError(f"Invalid timeout: {timeout}")

    found = {}
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.sendto(DISCOVERY_TOKEN, (broadcast_address, port))
        logger.debug(f"Discovery query sent to {broadcast_address}:{port}")

        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            sock.settimeout(remaining)
            try:
                payload, sender = sock.recvfrom(MAX_DATAGRAM_SIZE)
            except socket.timeout:
                break

            announcement = parse_announcement(payload)
            if announcement is None:
                logger.debug(f"Ignoring malformed discovery reply from {sender[0]}:{sender[1]}")
                continue
            found.setdefault(announcement.url, announcement)
    finally:
        sock.close()

    servers = [found[url] for url in sorted(found)]
    logger.info(f"Discovery: {len(servers)} server(s) found {[s.url for s in servers]}")
    return servers
