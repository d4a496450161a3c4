"""
Govee LAN status queries and command datagrams

UDP gives no acknowledgement: a successful send only means the datagram left
this host. A status query that gets no answer within the window means the
device is offline, which is a normal result rather than an error.
"""

import asyncio
import json
import logging
import socket
from typing import Any, Callable, Dict, Optional

from bridge_errors import InvalidError, InvalidInputError, NetworkError
from discovery.govee_discovery import reply_data
from .models import ControlCommand, ControlTarget, DeviceStatus, RgbColor

logger = logging.getLogger(__name__)

STATUS_QUERY = {"msg": {"cmd": "devStatus", "data": {}}}

MIN_BRIGHTNESS = 1
MAX_BRIGHTNESS = 100


def _unsigned(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def parse_status_reply(data: bytes) -> DeviceStatus:
    """Interpret a devStatus reply; raises InvalidError if it is not JSON"""
    text = data.decode('utf-8', errors='replace')
    try:
        reply = json.loads(text)
    except ValueError as e:
        raise InvalidError(f"Invalid response: {e}") from e

    fields = reply_data(reply)

    power_on = None
    on_off = _unsigned(fields.get("onOff"))
    if on_off is not None:
        power_on = on_off == 1

    brightness = _unsigned(fields.get("brightness"))

    color = None
    raw_color = fields.get("color")
    if isinstance(raw_color, dict):
        channels = [_unsigned(raw_color.get(c)) for c in ("r", "g", "b")]
        if all(channel is not None for channel in channels):
            color = RgbColor(*channels)

    return DeviceStatus(reachable=True, power_on=power_on, brightness=brightness, color=color)


def encode_payload(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return json.dumps(payload)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid payload: {e}") from e


def build_command(cmd: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {"msg": {"cmd": cmd, "data": data}}


def power_command(turn_on: bool) -> Dict[str, Any]:
    return build_command("turn", {"value": 1 if turn_on else 0})


def brightness_command(value: float) -> Dict[str, Any]:
    try:
        level = round(float(value))
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid brightness: {value!r}") from e
    return build_command("brightness", {"value": max(MIN_BRIGHTNESS, min(MAX_BRIGHTNESS, level))})


def color_command(r: float, g: float, b: float) -> Dict[str, Any]:
    channels = {}
    for name, value in (("r", r), ("g", g), ("b", b)):
        try:
            channels[name] = max(0, min(255, round(float(value))))
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Invalid color channel {name}: {value!r}") from e
    return build_command("color", channels)


class GoveeLanClient:
    """Unicast control of Govee devices on the control port"""

    def __init__(self, config: dict, socket_factory: Callable = socket.socket):
        self.control_port = config.get('control_port', 4003)
        self.timeout_seconds = config.get('status_timeout_ms', 1500) / 1000.0
        self.buffer_size = config.get('buffer_size', 2048)
        self.socket_factory = socket_factory

    async def get_status(self, host: str, port: Optional[int] = None) -> DeviceStatus:
        target = ControlTarget(host, port)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.get_status_blocking, target)

    async def send(self, host: str, port: Optional[int], payload: Any) -> None:
        command = ControlCommand(ControlTarget(host, port), payload)
        message = encode_payload(command.payload)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.send_blocking, command.target, message)

    async def set_power(self, host: str, port: Optional[int], turn_on: bool) -> None:
        await self.send(host, port, power_command(turn_on))

    async def set_brightness(self, host: str, port: Optional[int], value: float) -> None:
        await self.send(host, port, brightness_command(value))

    async def set_color(self, host: str, port: Optional[int], r: float, g: float, b: float) -> None:
        await self.send(host, port, color_command(r, g, b))

    def _open_socket(self):
        try:
            sock = self.socket_factory(socket.AF_INET, socket.SOCK_DGRAM)
            sock.bind(('0.0.0.0', 0))
            sock.settimeout(self.timeout_seconds)
        except OSError as e:
            raise NetworkError(f"Failed to bind socket: {e}") from e
        return sock

    def get_status_blocking(self, target: ControlTarget) -> DeviceStatus:
        address = target.address(self.control_port)
        sock = self._open_socket()
        try:
            try:
                sock.sendto(json.dumps(STATUS_QUERY).encode('utf-8'), address)
            except OSError as e:
                raise NetworkError(f"Failed to send query: {e}") from e

            try:
                data, _ = sock.recvfrom(self.buffer_size)
            except (socket.timeout, BlockingIOError):
                logger.debug(f"No status reply from {address[0]}:{address[1]} - treating as offline")
                return DeviceStatus.offline()
            except OSError as e:
                raise NetworkError(f"Failed to receive response: {e}") from e
        finally:
            sock.close()

        return parse_status_reply(data)

    def send_blocking(self, target: ControlTarget, message: str) -> None:
        address = target.address(self.control_port)
        sock = self._open_socket()
        try:
            sock.sendto(message.encode('utf-8'), address)
        except OSError as e:
            raise NetworkError(f"Failed to send command to {address[0]}:{address[1]}: {e}") from e
        finally:
            sock.close()
        logger.debug(f"Command datagram sent to {address[0]}:{address[1]}")
