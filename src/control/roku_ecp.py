"""
Local HTTP client for Roku External Control Protocol (ECP) endpoints
"""

import asyncio
import logging
from typing import Dict, Optional
from urllib.parse import quote

import aiohttp

from bridge_errors import InvalidInputError, NetworkError, require_text
from discovery.roku_discovery import parse_device_info
from http_helper import create_device_session

logger = logging.getLogger(__name__)


def build_url(host: str, endpoint: str, default_port: int = 8060) -> str:
    """
    Build an ECP URL from a bare IP, host:port or full base URL
    """
    trimmed = require_text(host, "Roku IP address")

    lowered = trimmed.lower()
    if lowered.startswith("https://"):
        scheme, remainder = "https://", trimmed[len("https://"):]
    elif lowered.startswith("http://"):
        scheme, remainder = "http://", trimmed[len("http://"):]
    else:
        scheme, remainder = "http://", trimmed

    host_port = remainder.split("/")[0]
    if not host_port:
        raise InvalidInputError("Invalid Roku address")
    if ":" not in host_port:
        host_port = f"{host_port}:{default_port}"

    path = endpoint if endpoint.startswith("/") else f"/{endpoint}"
    return f"{scheme}{host_port}{path}"


class RokuHttpClient:
    """GET/POST against local device URLs; one short-lived session per call"""

    def __init__(self, config: dict):
        self.timeout_seconds = config.get('request_timeout_seconds', 6)
        self.ecp_port = config.get('ecp_port', 8060)

    async def get(self, url: str) -> str:
        url = require_text(url, "url")
        try:
            async with create_device_session(self.timeout_seconds) as session:
                async with session.get(url) as response:
                    text = await response.text(errors='replace')
                    if response.status >= 400:
                        raise NetworkError(f"HTTP {response.status} for {url}", response.status, text)
                    return text
        except aiohttp.ClientError as e:
            raise NetworkError(f"GET {url} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"GET {url} timed out after {self.timeout_seconds}s") from e

    async def post(self, url: str, body: Optional[str] = None) -> None:
        url = require_text(url, "url")
        data = body if body else None
        try:
            async with create_device_session(self.timeout_seconds) as session:
                async with session.post(url, data=data) as response:
                    if response.status >= 400:
                        text = await response.text(errors='replace')
                        raise NetworkError(f"HTTP {response.status} for {url}", response.status, text)
        except aiohttp.ClientError as e:
            raise NetworkError(f"POST {url} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"POST {url} timed out after {self.timeout_seconds}s") from e

    async def keypress(self, host: str, key: str) -> None:
        key = require_text(key, "key")
        await self.post(build_url(host, f"/keypress/{quote(key, safe='')}", self.ecp_port))
        logger.info(f"Roku keypress {key} sent to {host}")

    async def launch(self, host: str, app_id: str, content_id: Optional[str] = None) -> None:
        app_id = require_text(app_id, "app id")
        endpoint = f"/launch/{quote(app_id, safe='')}"
        if content_id:
            endpoint += f"?contentID={quote(str(content_id), safe='')}"
        await self.post(build_url(host, endpoint, self.ecp_port))
        logger.info(f"Roku app {app_id} launched on {host}")

    async def device_info(self, host: str) -> Dict[str, Optional[str]]:
        xml = await self.get(build_url(host, "/query/device-info", self.ecp_port))
        return parse_device_info(xml)
