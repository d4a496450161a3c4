# HTTP Helper for device and cloud connections
# Session configuration for local LAN devices (plain HTTP) and the vendor cloud API (HTTPS)

import aiohttp
import ssl
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

def create_device_session(timeout_seconds: float = 6) -> aiohttp.ClientSession:
    """
    Create aiohttp session for local device connections
    Certificates are not checked: LAN devices serve plain HTTP or self-signed HTTPS
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=2,           # Max 2 connections per device IP
        ssl=False,
        force_close=True,           # One-shot sessions, no keep-alive
        enable_cleanup_closed=True
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )

def create_cloud_session(
    timeout_seconds: float = 10,
    ssl_verify: bool = True,
    ca_cert_path: str = None
) -> aiohttp.ClientSession:
    """
    Create aiohttp session for the cloud control API
    """
    ssl_context = ssl.create_default_context()

    if not ssl_verify:
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
        logger.warning("SSL verification disabled for cloud session")
    elif ca_cert_path:
        ca_path = Path(ca_cert_path)
        if ca_path.exists():
            ssl_context.load_verify_locations(ca_path)
            logger.debug(f"Loaded custom CA certificate: {ca_path}")
        else:
            logger.warning(f"CA certificate not found: {ca_path}")

    connector = aiohttp.TCPConnector(
        ssl=ssl_context,
        limit=10,
        limit_per_host=5,
        force_close=True,
        enable_cleanup_closed=True
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )
