"""
Command API routes
"""

from fastapi import APIRouter, Body
from typing import Any, Dict, List, Optional
import logging

from dispatch import CommandDispatcher, CommandResponse

logger = logging.getLogger(__name__)

def create_command_routes(dispatcher: CommandDispatcher):
    """Create routes that forward to the command dispatcher"""
    router = APIRouter(prefix="/api/commands", tags=["commands"])

    @router.get("", response_model=List[str])
    async def list_commands():
        """Names of every command the bridge accepts"""
        return dispatcher.command_names()

    @router.post("/{command}", response_model=CommandResponse)
    async def run_command(command: str, args: Optional[Dict[str, Any]] = Body(default=None)):
        """Run one command; errors are reported in the body, not as HTTP failures"""
        logger.debug(f"Command {command} requested")
        return await dispatcher.dispatch(command, args)

    return router
