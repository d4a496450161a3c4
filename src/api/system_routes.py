"""
System health API routes
"""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import Optional
from datetime import datetime, timezone
import asyncio
import logging

from bridge_errors import BridgeError

logger = logging.getLogger(__name__)

class HealthResponse(BaseModel):
    status: str
    local_network: Optional[bool]
    error: Optional[str] = None
    commands: int
    timestamp: datetime

def create_system_routes(dispatcher):
    """Create system monitoring routes"""
    router = APIRouter(prefix="/api/system", tags=["system"])

    @router.get("/health", response_model=HealthResponse)
    async def system_health():
        """Bridge health, including whether this host looks like it is on a LAN"""
        loop = asyncio.get_running_loop()
        try:
            local_network = await loop.run_in_executor(None, dispatcher.network_probe)
            error = None
        except BridgeError as e:
            logger.warning(f"Network check failed: {e}")
            local_network = None
            error = str(e)

        return HealthResponse(
            status="healthy" if local_network else "degraded",
            local_network=local_network,
            error=error,
            commands=len(dispatcher.command_names()),
            timestamp=datetime.now(timezone.utc)
        )

    return router
