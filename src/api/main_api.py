"""
Local HTTP API for the LAN device bridge
Exposes the command dispatcher to the GUI shell
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict
import logging

from dispatch import CommandDispatcher
from .command_routes import create_command_routes
from .system_routes import create_system_routes

logger = logging.getLogger(__name__)


class BridgeAPI:
    """FastAPI application wrapping the command dispatcher"""

    def __init__(self, config: Dict, dispatcher: CommandDispatcher = None):
        self.config = config
        self.dispatcher = dispatcher or CommandDispatcher(config)
        self.app = FastAPI(
            title="LAN Device Bridge",
            description="Discovery and control of Govee lights and Roku players on the local network",
            version="1.0.0"
        )
        self._setup_middleware()
        self._setup_routes()

    def _setup_middleware(self):
        origins = self.config.get('api', {}).get('cors_origins', ['*'])
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    def _setup_routes(self):
        self.app.include_router(create_command_routes(self.dispatcher))
        self.app.include_router(create_system_routes(self.dispatcher))
