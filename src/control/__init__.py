"""
Local control module for LAN devices
"""

from .govee_lan import GoveeLanClient
from .roku_ecp import RokuHttpClient, build_url
from .models import DeviceStatus, RgbColor, ControlTarget, ControlCommand

__all__ = ['GoveeLanClient', 'RokuHttpClient', 'build_url', 'DeviceStatus', 'RgbColor', 'ControlTarget', 'ControlCommand']
