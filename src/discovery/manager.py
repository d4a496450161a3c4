"""
Discovery manager running every LAN discovery method
"""

import asyncio
import logging
import time
from typing import Dict, Optional

from bridge_errors import BridgeError
from .models import DiscoveryResult
from .govee_discovery import GoveeDiscovery
from .roku_discovery import RokuDiscovery

logger = logging.getLogger(__name__)

class DeviceDiscovery:
    """Front door for Govee multicast and Roku SSDP discovery"""

    def __init__(self, config: Dict, govee: Optional[GoveeDiscovery] = None, roku: Optional[RokuDiscovery] = None):
        self.config = config
        self.govee = govee or GoveeDiscovery(config.get('govee', {}))
        self.roku = roku or RokuDiscovery(config.get('roku', {}))

    async def discover_govee(self, timeout_ms: Optional[int] = None) -> DiscoveryResult:
        start_time = time.time()
        devices = await self.govee.discover(timeout_ms)
        return DiscoveryResult(devices, "govee_multicast", time.time() - start_time)

    async def discover_roku(self, timeout_seconds: Optional[float] = None) -> DiscoveryResult:
        start_time = time.time()
        devices = await self.roku.discover(timeout_seconds)
        return DiscoveryResult(devices, "roku_ssdp", time.time() - start_time)

    async def discover_all(self, timeout_seconds: Optional[float] = None) -> Dict[str, DiscoveryResult]:
        """
        Run both methods concurrently
        A failure in one method is reported in its result and does not affect the other
        """
        logger.info("[SEARCH] Starting combined discovery (Govee + Roku)...")
        start_time = time.time()

        timeout_ms = int(timeout_seconds * 1000) if timeout_seconds else None
        outcomes = await asyncio.gather(
            self.discover_govee(timeout_ms),
            self.discover_roku(timeout_seconds),
            return_exceptions=True
        )

        results = {}
        for method, outcome in zip(("govee_multicast", "roku_ssdp"), outcomes):
            if isinstance(outcome, BridgeError):
                logger.error(f"{method} discovery failed: {outcome}")
                results[method] = DiscoveryResult([], method, time.time() - start_time, error=str(outcome))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results[method] = outcome

        total = sum(len(r.devices) for r in results.values())
        logger.info(f"[PASS] Combined discovery: {total} device(s) in {time.time() - start_time:.1f}s")
        return results
