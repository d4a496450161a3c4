"""
API module for bridge commands and health
"""

from .main_api import BridgeAPI
from .command_routes import create_command_routes
from .system_routes import create_system_routes

__all__ = ['BridgeAPI', 'create_command_routes', 'create_system_routes']
