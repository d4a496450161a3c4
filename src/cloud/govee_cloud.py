"""
Govee cloud API client

Used when a device cannot be controlled over the LAN, or to read the state the
cloud has synced. The API key is supplied per call and never stored.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from bridge_errors import InvalidError, NetworkError, require_text
from http_helper import create_cloud_session

logger = logging.getLogger(__name__)

class GoveeCloudClient:
    """Authenticated calls to /v1/devices, /v1/devices/control and /v1/devices/state"""

    def __init__(self, config: Dict[str, Any]):
        self.base_url = config.get('base_url', 'https://developer-api.govee.com').rstrip('/')
        self.timeout_seconds = config.get('timeout_seconds', 10)
        self.api_key_header = config.get('api_key_header', 'Govee-API-Key')
        self.ssl_verify = config.get('ssl_verify', True)
        self.ca_cert_path = config.get('ca_cert_path')

    def _session(self) -> aiohttp.ClientSession:
        return create_cloud_session(self.timeout_seconds, self.ssl_verify, self.ca_cert_path)

    def _headers(self, api_key: str) -> Dict[str, str]:
        return {self.api_key_header: require_text(api_key, "API key")}

    async def list_devices(self, api_key: str) -> Any:
        """GET /v1/devices"""
        headers = self._headers(api_key)
        return await self._get_json("/v1/devices", headers, None, "fetch devices")

    async def get_device_state(self, api_key: str, device: str, model: str) -> Any:
        """GET /v1/devices/state?device=...&model=..."""
        headers = self._headers(api_key)
        params = {
            "device": require_text(device, "device"),
            "model": require_text(model, "model"),
        }
        return await self._get_json("/v1/devices/state", headers, params, "get device state")

    async def send_command(self, api_key: str, device: str, model: str, command: Any) -> Any:
        """
        PUT /v1/devices/control

        Error bodies are sometimes plain text, so a non-JSON body is wrapped as
        {"raw_response": ..., "status_code": ...} instead of failing the parse.
        """
        headers = self._headers(api_key)
        payload = {
            "device": require_text(device, "device"),
            "model": require_text(model, "model"),
            "cmd": command,
        }
        url = f"{self.base_url}/v1/devices/control"

        try:
            async with self._session() as session:
                async with session.put(url, json=payload, headers=headers) as response:
                    status = response.status
                    text = await response.text(errors='replace')
        except aiohttp.ClientError as e:
            raise NetworkError(f"Failed to send command: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Failed to send command: timed out after {self.timeout_seconds}s") from e

        try:
            body = json.loads(text)
            detail = json.dumps(body, ensure_ascii=False)
        except ValueError:
            body = {"raw_response": text, "status_code": status}
            detail = text

        if not 200 <= status < 300:
            logger.warning(f"Cloud command for {device} rejected with HTTP {status}")
            raise NetworkError(f"API returned error {status}: {detail}", status, text)

        logger.info(f"Cloud command sent to {model} {device}")
        return body

    async def _get_json(self, path: str, headers: Dict[str, str], params: Optional[Dict[str, str]], action: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with self._session() as session:
                async with session.get(url, headers=headers, params=params) as response:
                    status = response.status
                    text = await response.text(errors='replace')
        except aiohttp.ClientError as e:
            raise NetworkError(f"Failed to {action}: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Failed to {action}: timed out after {self.timeout_seconds}s") from e

        if not 200 <= status < 300:
            logger.warning(f"Cloud {path} returned HTTP {status}")
            raise NetworkError(f"API returned error {status}: {text}", status, text)

        try:
            return json.loads(text)
        except ValueError as e:
            raise InvalidError(f"Invalid JSON response: {e}") from e
