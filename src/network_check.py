"""
Local network connectivity heuristic

LAN protocols (SSDP, Govee multicast) only work when this host sits on a
private network. The check associates a UDP socket with a multicast address
(no packet is sent) and inspects the local address the kernel picked.
"""

import ipaddress
import logging
import socket
from typing import Callable, Optional

from bridge_errors import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_PROBE_ADDRESS = ('239.255.255.250', 1900)

PRIVATE_NETWORKS = (
    ipaddress.IPv4Network('10.0.0.0/8'),
    ipaddress.IPv4Network('172.16.0.0/12'),
    ipaddress.IPv4Network('192.168.0.0/16'),
)


def is_private_ipv4(address: str) -> bool:
    """True for addresses in 10/8, 172.16/12 or 192.168/16"""
    try:
        ip = ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return any(ip in network for network in PRIVATE_NETWORKS)


def is_on_local_network(
    probe_address: tuple = DEFAULT_PROBE_ADDRESS,
    socket_factory: Callable = socket.socket,
) -> bool:
    """
    Check whether this host has a private IPv4 address on the route to the LAN

    Raises NetworkError when no socket can be created at all. Any failure after
    that point reports False.
    """
    try:
        sock = socket_factory(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind(('0.0.0.0', 0))
    except OSError as e:
        raise NetworkError(f"Failed to check network: {e}") from e

    try:
        local_ip = _associated_local_address(sock, probe_address)
    finally:
        sock.close()

    if local_ip is None:
        return False

    result = is_private_ipv4(local_ip)
    logger.debug(f"Local address {local_ip} private={result}")
    return result


def _associated_local_address(sock, probe_address: tuple) -> Optional[str]:
    try:
        sock.connect(probe_address)
        host = sock.getsockname()[0]
    except OSError as e:
        logger.debug(f"Could not determine local address: {e}")
        return None
    # unassociated sockets report 0.0.0.0
    if not host or host == '0.0.0.0':
        return None
    return host
