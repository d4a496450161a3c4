"""
Per-call discovery session: one socket, one deadline, one result list
"""

import logging
import socket
import time
from typing import List, Optional, Tuple

from .models import DeviceDescriptor

logger = logging.getLogger(__name__)


class DiscoverySession:
    """
    Owns the socket of a single discovery call and collects its replies.

    Reads use a short per-receive timeout so the outer deadline is checked
    often; results are deduplicated by source address, first seen wins.
    Never shared between calls or threads.
    """

    def __init__(self, sock, timeout_seconds: float, poll_seconds: float = 0.1, buffer_size: int = 2048):
        self.sock = sock
        self.started_at = time.monotonic()
        self.deadline = self.started_at + timeout_seconds
        self.poll_seconds = poll_seconds
        self.buffer_size = buffer_size
        self.devices: List[DeviceDescriptor] = []
        self._seen = set()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self):
        try:
            self.sock.close()
        except OSError:
            pass

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())

    def expired(self) -> bool:
        return time.monotonic() >= self.deadline

    def receive(self) -> Optional[Tuple[bytes, Tuple[str, int]]]:
        """
        Wait up to one poll interval for a datagram.

        Returns None when nothing arrived in time. Other socket errors propagate.
        """
        wait = min(self.poll_seconds, self.remaining())
        if wait <= 0:
            return None
        self.sock.settimeout(wait)
        try:
            return self.sock.recvfrom(self.buffer_size)
        except (socket.timeout, BlockingIOError):
            return None

    def add(self, device: DeviceDescriptor) -> bool:
        """Append unless a device from the same address was already recorded"""
        if device.source_address in self._seen:
            logger.debug(f"Duplicate reply from {device.source_address} ignored")
            return False
        self._seen.add(device.source_address)
        self.devices.append(device)
        return True
