"""
LAN Device Bridge - Main Entry Point

Usage::

    python main.py serve                       # run the HTTP API
    python main.py run discover-govee --args '{"timeout_ms": 2000}'
"""

import argparse
import asyncio
import json
import signal
import sys
import logging
import os

from config_loader import load_config, setup_logging
from dispatch import CommandDispatcher
from services.bridge_server import BridgeServer

logger = logging.getLogger(__name__)

async def serve(config_path: str) -> int:
    """Run the API server until SIGINT/SIGTERM"""

    server = None

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        if server:
            asyncio.create_task(server.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        server = BridgeServer(config_path=config_path)
        await server.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Server failed: {e}")
        return 1
    finally:
        if server:
            await server.stop()

    return 0

async def run_once(config_path: str, command: str, raw_args: str) -> int:
    """Dispatch a single command and print the response as JSON"""
    try:
        args = json.loads(raw_args) if raw_args else {}
    except ValueError as e:
        print(json.dumps({"ok": False, "command": command, "error": f"Invalid --args JSON: {e}", "error_kind": "invalid_input"}))
        return 2

    config = load_config(config_path)
    setup_logging(config)

    response = await CommandDispatcher(config).dispatch(command, args)
    print(response.model_dump_json(indent=2))
    return 0 if response.ok else 1

def main() -> int:
    parser = argparse.ArgumentParser(description="LAN device bridge for Govee lights and Roku players")
    parser.add_argument(
        "--config",
        metavar="PATH",
        default=os.environ.get('CONFIG_FILE', 'config/config.yaml'),
        help="Configuration file (default: CONFIG_FILE env var or config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="action")
    subparsers.add_parser("serve", help="Run the local HTTP API")
    run_parser = subparsers.add_parser("run", help="Run one command and print the result")
    run_parser.add_argument("command", choices=CommandDispatcher.command_names())
    run_parser.add_argument("--args", default="", help="Command arguments as a JSON object")
    options = parser.parse_args()

    logger.info(f"Using configuration file: {options.config}")
    if options.action == "run":
        return asyncio.run(run_once(options.config, options.command, options.args))
    return asyncio.run(serve(options.config))

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)
