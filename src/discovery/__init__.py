"""
Discovery module for LAN device discovery
"""

from .manager import DeviceDiscovery
from .models import DeviceDescriptor, DiscoveryResult
from .govee_discovery import GoveeDiscovery
from .roku_discovery import RokuDiscovery
from .session import DiscoverySession

__all__ = ['DeviceDiscovery', 'DeviceDescriptor', 'DiscoveryResult', 'GoveeDiscovery', 'RokuDiscovery', 'DiscoverySession']
