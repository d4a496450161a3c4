"""
Roku discovery via SSDP M-SEARCH with device-info enrichment
"""

import asyncio
import dataclasses
import logging
import socket
from typing import Callable, Dict, List, Optional, Tuple

import aiohttp

from bridge_errors import NetworkError
from http_helper import create_device_session
from .models import DeviceDescriptor
from .session import DiscoverySession

logger = logging.getLogger(__name__)

# device-info leaf tag -> descriptor detail key
DEVICE_INFO_TAGS = (
    ("serial-number", "serial_number"),
    ("device-id", "device_id"),
    ("model-name", "model_name"),
)
FRIENDLY_NAME_TAGS = ("user-device-name", "friendly-device-name")


def build_search_message(multicast_group: str, port: int, search_target: str, mx: int = 3) -> str:
    return (
        "M-SEARCH * HTTP/1.1\r\n"
        f"HOST: {multicast_group}:{port}\r\n"
        'MAN: "ssdp:discover"\r\n'
        f"MX: {mx}\r\n"
        f"ST: {search_target}\r\n"
        "\r\n"
    )


def parse_ssdp_response(text: str, search_target: str) -> Optional[Tuple[str, Optional[str]]]:
    """
    Return (location, usn) from an SSDP reply, or None if the reply does not
    mention the search target or carries no LOCATION header
    """
    if search_target not in text:
        return None

    location = ""
    usn = None
    for line in text.splitlines():
        line = line.strip()
        lowered = line.lower()
        if lowered.startswith("location:"):
            location = line[len("location:"):].strip()
        elif lowered.startswith("usn:"):
            usn = line[len("usn:"):].strip()

    if not location:
        return None
    return location, usn


def extract_ip_from_url(url: str) -> Optional[str]:
    """Host part of a URL such as http://192.168.1.100:8060/"""
    start = url.find("://")
    if start < 0:
        return None
    rest = url[start + 3:]
    ends = [pos for pos in (rest.find(":"), rest.find("/")) if pos >= 0]
    if not ends:
        return None
    host = rest[:min(ends)]
    return host or None


def extract_xml_tag(xml: str, tag: str) -> Optional[str]:
    """Text between the first <tag> and the following </tag>"""
    start_tag = f"<{tag}>"
    end_tag = f"</{tag}>"
    start = xml.find(start_tag)
    if start < 0:
        return None
    content_start = start + len(start_tag)
    end = xml.find(end_tag, content_start)
    if end < 0:
        return None
    return xml[content_start:end].strip()


def parse_device_info(xml: str) -> Dict[str, Optional[str]]:
    info = {key: extract_xml_tag(xml, tag) for tag, key in DEVICE_INFO_TAGS}
    info["friendly_name"] = None
    for tag in FRIENDLY_NAME_TAGS:
        name = extract_xml_tag(xml, tag)
        if name is not None:
            info["friendly_name"] = name
            break
    return info


class RokuDiscovery:
    """SSDP search for Roku players, enriched through the ECP device-info query"""

    def __init__(self, config: dict, socket_factory: Callable = socket.socket):
        self.config = config
        self.multicast_group = config.get('multicast_group', '239.255.255.250')
        self.ssdp_port = config.get('ssdp_port', 1900)
        self.search_target = config.get('search_target', 'roku:ecp')
        self.mx = config.get('mx', 3)
        self.default_timeout = config.get('discovery_timeout_seconds', 3)
        self.poll_seconds = config.get('receive_poll_ms', 100) / 1000.0
        self.buffer_size = config.get('buffer_size', 2048)
        self.ecp_port = config.get('ecp_port', 8060)
        self.device_info_path = config.get('device_info_path', '/query/device-info')
        self.enrichment_timeout = config.get('enrichment_timeout_seconds', 2)
        self.enrichment_concurrency = config.get('enrichment_concurrency', 8)
        self.socket_factory = socket_factory

    async def discover(self, timeout_seconds: Optional[float] = None) -> List[DeviceDescriptor]:
        """Search the LAN, then enrich every hit with its device-info"""
        timeout = timeout_seconds or self.default_timeout
        loop = asyncio.get_running_loop()
        devices = await loop.run_in_executor(None, self.search_blocking, timeout)

        if devices:
            logger.info(f"Found {len(devices)} Roku device(s), fetching details...")
            devices = await self.enrich(devices)
        return devices

    def search_blocking(self, timeout_seconds: float) -> List[DeviceDescriptor]:
        session = self._open_session(timeout_seconds)
        with session:
            message = build_search_message(self.multicast_group, self.ssdp_port, self.search_target, self.mx)
            try:
                session.sock.sendto(message.encode('utf-8'), (self.multicast_group, self.ssdp_port))
            except OSError as e:
                raise NetworkError(f"Failed to send SSDP request: {e}") from e
            logger.info(f"Sent SSDP M-SEARCH for {self.search_target}")

            while not session.expired():
                try:
                    received = session.receive()
                except OSError as e:
                    logger.warning(f"SSDP receive error: {e}")
                    break
                if received is None:
                    continue

                data, addr = received
                device = self._parse_reply(data, addr)
                if device:
                    session.add(device)

        logger.info(f"SSDP search complete: {len(session.devices)} device(s) in {session.elapsed:.1f}s")
        return session.devices

    def _open_session(self, timeout_seconds: float) -> DiscoverySession:
        try:
            sock = self.socket_factory(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as e:
            raise NetworkError(f"Failed to create UDP socket: {e}") from e
        try:
            sock.bind(('0.0.0.0', 0))
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        except OSError as e:
            sock.close()
            raise NetworkError(f"Failed to bind UDP socket: {e}") from e
        return DiscoverySession(sock, timeout_seconds, self.poll_seconds, self.buffer_size)

    def _parse_reply(self, data: bytes, addr: Tuple[str, int]) -> Optional[DeviceDescriptor]:
        text = data.decode('utf-8', errors='replace')
        parsed = parse_ssdp_response(text, self.search_target)
        if not parsed:
            return None
        location, usn = parsed
        ip = extract_ip_from_url(location)
        if not ip:
            logger.debug(f"Unusable LOCATION from {addr[0]}: {location}")
            return None

        return DeviceDescriptor(
            source_address=ip,
            source_port=addr[1],
            identifier=usn,
            raw_payload=text,
            details={
                "ip": ip,
                "location": location,
                "usn": usn,
                "serial_number": None,
                "device_id": None,
                "model_name": None,
                "friendly_name": None,
            },
            discovery_method="roku_ssdp",
        )

    async def enrich(self, devices: List[DeviceDescriptor]) -> List[DeviceDescriptor]:
        """Best-effort device-info fetch per device; failures leave fields unset"""
        semaphore = asyncio.Semaphore(self.enrichment_concurrency)

        async def enrich_one(device: DeviceDescriptor) -> DeviceDescriptor:
            async with semaphore:
                info = await self.fetch_device_info(device.source_address)
            if info is None:
                return device
            details = dict(device.details)
            details.update(info)
            logger.info(f"[OK] {device.source_address} - Serial: {info.get('serial_number')}")
            return dataclasses.replace(
                device,
                model=info.get("model_name"),
                display_name=info.get("friendly_name"),
                details=details,
            )

        return list(await asyncio.gather(*(enrich_one(device) for device in devices)))

    async def fetch_device_info(self, ip: str) -> Optional[Dict[str, Optional[str]]]:
        url = f"http://{ip}:{self.ecp_port}{self.device_info_path}"
        try:
            async with create_device_session(self.enrichment_timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.debug(f"HTTP {response.status} for {url}")
                        return None
                    xml = await response.text(errors='replace')
        except (aiohttp.ClientError, asyncio.TimeoutError, LookupError) as e:
            logger.debug(f"Device info fetch failed for {ip}: {e}")
            return None
        return parse_device_info(xml)
