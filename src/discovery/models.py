"""
Discovery data structures and models
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

@dataclass(frozen=True)
class DeviceDescriptor:
    """Normalized record for one device that answered a discovery probe"""
    source_address: str
    source_port: int
    identifier: Optional[str] = None     # MAC for Govee, USN for Roku
    model: Optional[str] = None
    display_name: Optional[str] = None
    raw_payload: Any = None              # decoded reply, kept verbatim
    details: Dict[str, Any] = field(default_factory=dict)
    discovery_method: str = ""           # "govee_multicast", "roku_ssdp"

    def to_dict(self) -> Dict[str, Any]:
        record = {
            "source_address": self.source_address,
            "source_port": self.source_port,
            "identifier": self.identifier,
            "model": self.model,
            "display_name": self.display_name,
            "discovery_method": self.discovery_method,
        }
        record.update(self.details)
        record["raw_payload"] = self.raw_payload
        return record

@dataclass
class DiscoveryResult:
    """Results from one discovery method"""
    devices: List[DeviceDescriptor]
    method: str
    duration_seconds: float
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "duration_seconds": round(self.duration_seconds, 3),
            "devices": [device.to_dict() for device in self.devices],
            "error": self.error,
        }
