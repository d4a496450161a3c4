"""
Bridge Server - wires configuration, dispatcher and HTTP API together
"""

import logging
from typing import Optional
import uvicorn

from config_loader import load_config, setup_logging
from dispatch import CommandDispatcher
from api.main_api import BridgeAPI

logger = logging.getLogger(__name__)

class BridgeServer:
    """Runs the local HTTP API in front of the command dispatcher"""

    def __init__(self, config_path: str = "config/config.yaml"):
        self.config = load_config(config_path)
        setup_logging(self.config)

        self.dispatcher = CommandDispatcher(self.config)
        self.api = BridgeAPI(self.config, self.dispatcher)
        self._server: Optional[uvicorn.Server] = None

    async def start(self):
        """Check the network once, then serve the API until stopped"""
        logger.info("Starting LAN device bridge...")

        on_lan = await self.dispatcher.dispatch("check-wifi")
        if on_lan.ok and on_lan.result:
            logger.info("Host is on a private network - LAN discovery available")
        elif on_lan.ok:
            logger.warning("Host does not appear to be on a private network - LAN discovery will likely find nothing")
        else:
            logger.warning(f"Network check failed: {on_lan.error}")

        await self._start_api_server()

    async def stop(self):
        """Stop the API server"""
        logger.info("Stopping server...")
        if self._server:
            self._server.should_exit = True
        logger.info("Server stopped")

    async def _start_api_server(self):
        """Start the FastAPI server"""
        config = uvicorn.Config(
            self.api.app,
            host=self.config['api']['host'],
            port=self.config['api']['port'],
            log_level="info",
            access_log=False  # We handle our own logging
        )

        self._server = uvicorn.Server(config)

        logger.info(f"Starting API server on {self.config['api']['host']}:{self.config['api']['port']}")
        logger.info(f"API documentation: http://localhost:{self.config['api']['port']}/docs")

        await self._server.serve()
