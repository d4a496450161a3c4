"""
Local control data structures
"""

from typing import Any, Dict, Optional
from dataclasses import dataclass

from bridge_errors import InvalidInputError

@dataclass(frozen=True)
class RgbColor:
    r: int
    g: int
    b: int

@dataclass(frozen=True)
class DeviceStatus:
    """Status of a LAN light; every field except reachable stays None when offline"""
    reachable: bool
    power_on: Optional[bool] = None
    brightness: Optional[int] = None
    color: Optional[RgbColor] = None

    @classmethod
    def offline(cls) -> "DeviceStatus":
        return cls(reachable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reachable": self.reachable,
            "power_on": self.power_on,
            "brightness": self.brightness,
            "color": None if self.color is None else {"r": self.color.r, "g": self.color.g, "b": self.color.b},
        }

@dataclass(frozen=True)
class ControlTarget:
    host: str
    port: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.host, str) or not self.host.strip():
            raise InvalidInputError("Missing host")
        object.__setattr__(self, "host", self.host.strip())
        if self.port is not None and (isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 < self.port < 65536):
            raise InvalidInputError(f"Invalid port: {self.port!r}")

    def address(self, default_port: int) -> tuple:
        return (self.host, self.port or default_port)

@dataclass(frozen=True)
class ControlCommand:
    """Opaque payload forwarded verbatim to a device"""
    target: ControlTarget
    payload: Any
