"""
Command dispatch for the bridge

Maps every operation name the shell can invoke onto discovery, local control
or cloud control. The operation set is closed: unknown names are rejected
before any handler runs.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel

from bridge_errors import BridgeError, InvalidInputError
from cloud import GoveeCloudClient
from control import GoveeLanClient, RokuHttpClient
from discovery import DeviceDiscovery
from network_check import is_on_local_network

logger = logging.getLogger(__name__)


class BridgeCommand(str, Enum):
    LOCAL_GET = "local-get"
    LOCAL_POST = "local-post"
    DISCOVER_ROKU = "discover-roku"
    SEND_GOVEE = "send-govee"
    DISCOVER_GOVEE = "discover-govee"
    STATUS_GOVEE = "status-govee"
    CLOUD_LIST_DEVICES = "cloud-list-devices"
    CLOUD_SEND_COMMAND = "cloud-send-command"
    CLOUD_GET_STATE = "cloud-get-state"
    CHECK_WIFI = "check-wifi"
    DISCOVER_ALL = "discover-all"
    GOVEE_POWER = "govee-power"
    GOVEE_BRIGHTNESS = "govee-brightness"
    GOVEE_COLOR = "govee-color"
    ROKU_KEYPRESS = "roku-keypress"
    ROKU_LAUNCH = "roku-launch"
    ROKU_DEVICE_INFO = "roku-device-info"


class CommandResponse(BaseModel):
    ok: bool
    command: str
    result: Any = None
    error: Optional[str] = None
    error_kind: Optional[str] = None


def _required(args: Dict[str, Any], name: str) -> Any:
    if args.get(name) is None:
        raise InvalidInputError(f"Missing argument: {name}")
    return args[name]


def _optional_number(args: Dict[str, Any], name: str, kind=int):
    value = args.get(name)
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidInputError(f"Invalid {name}: {value!r}")
    if kind is int and isinstance(value, float) and not value.is_integer():
        raise InvalidInputError(f"Invalid {name}: {value!r}")
    try:
        number = kind(value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid {name}: {value!r}") from e
    if number <= 0:
        raise InvalidInputError(f"Invalid {name}: {value!r}")
    return number


def _flag(args: Dict[str, Any], name: str) -> bool:
    value = _required(args, name)
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    raise InvalidInputError(f"Invalid {name}: expected true/false, got {value!r}")


class CommandDispatcher:
    """Closed table of operation handlers"""

    def __init__(
        self,
        config: Dict,
        discovery: Optional[DeviceDiscovery] = None,
        govee_lan: Optional[GoveeLanClient] = None,
        roku_http: Optional[RokuHttpClient] = None,
        cloud: Optional[GoveeCloudClient] = None,
        network_probe: Callable[[], bool] = None,
    ):
        self.config = config
        self.discovery = discovery or DeviceDiscovery(config)
        self.govee_lan = govee_lan or GoveeLanClient(config.get('govee', {}))
        self.roku_http = roku_http or RokuHttpClient(config.get('roku', {}))
        self.cloud = cloud or GoveeCloudClient(config.get('cloud', {}))
        network = config.get('network', {})
        probe_address = (network.get('probe_address', '239.255.255.250'), network.get('probe_port', 1900))
        self.network_probe = network_probe or (lambda: is_on_local_network(probe_address))

        self._handlers: Dict[BridgeCommand, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            BridgeCommand.LOCAL_GET: self._local_get,
            BridgeCommand.LOCAL_POST: self._local_post,
            BridgeCommand.DISCOVER_ROKU: self._discover_roku,
            BridgeCommand.SEND_GOVEE: self._send_govee,
            BridgeCommand.DISCOVER_GOVEE: self._discover_govee,
            BridgeCommand.STATUS_GOVEE: self._status_govee,
            BridgeCommand.CLOUD_LIST_DEVICES: self._cloud_list_devices,
            BridgeCommand.CLOUD_SEND_COMMAND: self._cloud_send_command,
            BridgeCommand.CLOUD_GET_STATE: self._cloud_get_state,
            BridgeCommand.CHECK_WIFI: self._check_wifi,
            BridgeCommand.DISCOVER_ALL: self._discover_all,
            BridgeCommand.GOVEE_POWER: self._govee_power,
            BridgeCommand.GOVEE_BRIGHTNESS: self._govee_brightness,
            BridgeCommand.GOVEE_COLOR: self._govee_color,
            BridgeCommand.ROKU_KEYPRESS: self._roku_keypress,
            BridgeCommand.ROKU_LAUNCH: self._roku_launch,
            BridgeCommand.ROKU_DEVICE_INFO: self._roku_device_info,
        }
        missing = set(BridgeCommand) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for commands: {sorted(c.value for c in missing)}")

    @staticmethod
    def command_names():
        return [command.value for command in BridgeCommand]

    async def dispatch(self, name: str, args: Optional[Dict[str, Any]] = None) -> CommandResponse:
        """Run one operation; failures come back as an error string, never raised"""
        try:
            command = BridgeCommand(name)
        except ValueError:
            return CommandResponse(ok=False, command=name, error=f"Unknown command: {name}", error_kind=InvalidInputError.kind)

        if args is None:
            args = {}
        if not isinstance(args, dict):
            return CommandResponse(ok=False, command=name, error="Command arguments must be an object", error_kind=InvalidInputError.kind)

        try:
            result = await self._handlers[command](args)
        except BridgeError as e:
            logger.warning(f"{command.value} failed: {e}")
            return CommandResponse(ok=False, command=name, error=str(e), error_kind=e.kind)
        except Exception as e:
            logger.exception(f"Unexpected failure in {command.value}")
            return CommandResponse(ok=False, command=name, error=f"Internal error: {e}", error_kind="internal")

        return CommandResponse(ok=True, command=name, result=result)

    # ================== ROKU ==================

    async def _local_get(self, args):
        return await self.roku_http.get(_required(args, "url"))

    async def _local_post(self, args):
        await self.roku_http.post(_required(args, "url"), args.get("body"))
        return None

    async def _discover_roku(self, args):
        timeout = _optional_number(args, "timeout_secs", float)
        result = await self.discovery.discover_roku(timeout)
        return [device.to_dict() for device in result.devices]

    async def _roku_keypress(self, args):
        await self.roku_http.keypress(_required(args, "host"), _required(args, "key"))
        return None

    async def _roku_launch(self, args):
        await self.roku_http.launch(_required(args, "host"), _required(args, "app_id"), args.get("content_id"))
        return None

    async def _roku_device_info(self, args):
        return await self.roku_http.device_info(_required(args, "host"))

    # ================== GOVEE LAN ==================

    async def _send_govee(self, args):
        await self.govee_lan.send(args.get("host"), _optional_number(args, "port"), _required(args, "payload"))
        return None

    async def _discover_govee(self, args):
        timeout_ms = _optional_number(args, "timeout_ms")
        result = await self.discovery.discover_govee(timeout_ms)
        return [device.to_dict() for device in result.devices]

    async def _status_govee(self, args):
        status = await self.govee_lan.get_status(args.get("host"), _optional_number(args, "port"))
        return status.to_dict()

    async def _govee_power(self, args):
        await self.govee_lan.set_power(args.get("host"), _optional_number(args, "port"), _flag(args, "on"))
        return None

    async def _govee_brightness(self, args):
        await self.govee_lan.set_brightness(args.get("host"), _optional_number(args, "port"), _required(args, "value"))
        return None

    async def _govee_color(self, args):
        await self.govee_lan.set_color(
            args.get("host"),
            _optional_number(args, "port"),
            _required(args, "r"),
            _required(args, "g"),
            _required(args, "b"),
        )
        return None

    # ================== CLOUD ==================

    async def _cloud_list_devices(self, args):
        return await self.cloud.list_devices(args.get("api_key"))

    async def _cloud_send_command(self, args):
        return await self.cloud.send_command(
            args.get("api_key"),
            args.get("device"),
            args.get("model"),
            _required(args, "cmd"),
        )

    async def _cloud_get_state(self, args):
        return await self.cloud.get_device_state(args.get("api_key"), args.get("device"), args.get("model"))

    # ================== SYSTEM ==================

    async def _check_wifi(self, args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.network_probe)

    async def _discover_all(self, args):
        timeout = _optional_number(args, "timeout_secs", float)
        results = await self.discovery.discover_all(timeout)
        return {method: result.to_dict() for method, result in results.items()}
