"""
Govee LAN discovery via multicast scan probe

A JSON scan probe goes to the multicast group on the request port; devices
answer with a JSON envelope on the reserved listen port.
"""

import asyncio
import json
import logging
import socket
import struct
from typing import Any, Callable, Dict, List, Optional, Tuple

from bridge_errors import NetworkError
from .models import DeviceDescriptor
from .session import DiscoverySession

logger = logging.getLogger(__name__)

SCAN_PROBE = {"msg": {"cmd": "scan", "data": {"account_topic": "reserve"}}}

# reply field -> descriptor detail key
DETAIL_FIELDS = (
    ("ip", "ip"),
    ("device", "mac_address"),
    ("device", "device_id"),
    ("sku", "model"),
    ("deviceName", "name"),
    ("bleVersionHard", "ble_version"),
    ("wifiVersionHard", "wifi_version"),
)


def reply_data(reply: Any) -> Dict[str, Any]:
    """Return msg.data of a reply envelope, or an empty dict"""
    if not isinstance(reply, dict):
        return {}
    msg = reply.get("msg")
    if not isinstance(msg, dict):
        return {}
    data = msg.get("data")
    return data if isinstance(data, dict) else {}


def build_descriptor(reply: Any, source: Tuple[str, int]) -> DeviceDescriptor:
    """Normalize a decoded scan reply; every field is optional"""
    data = reply_data(reply)
    details = {}
    for reply_key, detail_key in DETAIL_FIELDS:
        if reply_key in data:
            details[detail_key] = data[reply_key]

    return DeviceDescriptor(
        source_address=source[0],
        source_port=source[1],
        identifier=data.get("device"),
        model=data.get("sku"),
        display_name=data.get("deviceName"),
        raw_payload=reply,
        details=details,
        discovery_method="govee_multicast",
    )


def parse_reply(data: bytes, source: Tuple[str, int]) -> Optional[DeviceDescriptor]:
    """Decode one datagram; None when it is not JSON"""
    text = data.decode('utf-8', errors='replace')
    try:
        reply = json.loads(text)
    except ValueError:
        logger.debug(f"Discarding malformed reply from {source[0]}: {text[:120]!r}")
        return None
    return build_descriptor(reply, source)


class GoveeDiscovery:
    """Multicast scan for Govee LAN devices"""

    def __init__(self, config: dict, socket_factory: Callable = socket.socket):
        self.config = config
        self.multicast_group = config.get('multicast_group', '239.255.255.250')
        self.request_port = config.get('request_port', 4001)
        self.listen_port = config.get('listen_port', 4002)
        self.default_timeout_ms = config.get('discovery_timeout_ms', 3000)
        self.poll_seconds = config.get('receive_poll_ms', 100) / 1000.0
        self.buffer_size = config.get('buffer_size', 2048)
        self.socket_factory = socket_factory

    async def discover(self, timeout_ms: Optional[int] = None) -> List[DeviceDescriptor]:
        """Run a scan on a worker thread and return the devices that answered"""
        timeout_seconds = (timeout_ms or self.default_timeout_ms) / 1000.0
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.discover_blocking, timeout_seconds)

    def discover_blocking(self, timeout_seconds: float) -> List[DeviceDescriptor]:
        session = self._open_session(timeout_seconds)
        with session:
            self._send_probe(session.sock)
            logger.info(f"Sent Govee scan probe to {self.multicast_group}:{self.request_port}, listening on UDP {self.listen_port}")

            while not session.expired():
                try:
                    received = session.receive()
                except OSError as e:
                    logger.warning(f"Error receiving Govee scan replies: {e}")
                    break
                if received is None:
                    continue

                data, addr = received
                device = parse_reply(data, addr)
                if device and session.add(device):
                    logger.debug(f"Govee reply from {addr[0]}: {device.model} {device.identifier}")

        logger.info(f"Govee discovery complete: {len(session.devices)} device(s) in {session.elapsed:.1f}s")
        return session.devices

    def _open_session(self, timeout_seconds: float) -> DiscoverySession:
        try:
            sock = self.socket_factory(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as e:
            raise NetworkError(f"Failed to create UDP socket: {e}") from e

        try:
            sock.bind(('0.0.0.0', self.listen_port))
        except OSError as e:
            sock.close()
            raise NetworkError(f"Failed to bind to UDP {self.listen_port}: {e}") from e

        try:
            membership = struct.pack(
                '4s4s',
                socket.inet_aton(self.multicast_group),
                socket.inet_aton('0.0.0.0')
            )
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
        except OSError as e:
            sock.close()
            raise NetworkError(f"Failed to join multicast group: {e}") from e

        return DiscoverySession(sock, timeout_seconds, self.poll_seconds, self.buffer_size)

    def _send_probe(self, sock) -> None:
        message = json.dumps(SCAN_PROBE).encode('utf-8')
        try:
            sock.sendto(message, (self.multicast_group, self.request_port))
        except OSError as e:
            raise NetworkError(f"Failed to send discovery probe: {e}") from e
