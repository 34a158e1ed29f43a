"""Local network address detection."""

import ipaddress
import logging
import socket
from typing import Optional

import psutil

logger = logging.getLogger(__name__)

LOOPBACK_ADDRESS = '127.0.0.1'


def is_lan_address(ip: Optional[str]) -> bool:
    """True for an IPv4 address other devices on the network can reach."""
    try:
        address = ipaddress.IPv4Address(ip)
    except ValueError:
        return False
    return not (address.is_loopback or address.is_link_local or address.is_unspecified)


def _route_address() -> Optional[str]:
    # Connecting a UDP socket selects the interface of the default route
    # without sending any packet.
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        s.connect(('10.255.255.255', 1))
        return s.getsockname()[0]
    except OSError:
        return None
    finally:
        s.close()


def _interface_address() -> Optional[str]:
    for name, addrs in sorted(psutil.net_if_addrs().items()):
        for addr in addrs:
            if addr.family == socket.AF_INET and is_lan_address(addr.address):
                logger.debug(f"Using address {addr.address} of interface {name}")
                return addr.address
    return None


def get_local_ip() -> str:
    """
    Get this host's non-loopback IPv4 address on the local network.

    Tries the default route first, then the configured interfaces. Falls
    back to 127.0.0.1 only when the host has no usable address at all.
    Makes no DNS lookups.
    """
    ip = _route_address()
    if is_lan_address(ip):
        return ip

    ip = _interface_address()
    if ip:
        return ip

    logger.warning("No local network address found, advertising loopback")
    return LOOPBACK_ADDRESS
