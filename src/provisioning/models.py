"""
Provisioning session data structures and models
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ConnectionStatus(Enum):
    """Connection notifications reported by a transport"""
    CONNECTED = "connected"
    FAILED_TO_CONNECT = "failed_to_connect"
    DISCONNECTED = "disconnected"
    UNKNOWN = "unknown"


class ProvisionStatus(Enum):
    """Provisioning notifications reported by a transport"""
    SUCCESS = "success"
    CONFIG_APPLIED = "config_applied"  # treated as success
    FAILURE = "failure"
    UNKNOWN = "unknown"


class SessionPhase(Enum):
    """Where the selected device is in the provisioning workflow"""
    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    NETWORK_SCANNING = "network_scanning"
    PROVISIONING = "provisioning"
    PROVISIONED = "provisioned"


@dataclass
class SecurityConfig:
    """Security session parameters handed to the transport on connect"""
    level: int = 1
    pop: Optional[str] = "abcd1234"
    username: Optional[str] = None  # only used by level 2

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SecurityConfig":
        security = config.get('security', {})
        level = security.get('level', 1)
        return cls(
            level=level,
            pop=security.get('pop', "abcd1234"),
            username=security.get('username', "user") if level == 2 else None,
        )


@dataclass
class DeviceHandle:
    """Transport-owned reference to a device found during discovery"""
    name: str
    address: str
    rssi: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DiscoveredDevice:
    """A device from the most recent discovery run"""
    name: str
    handle: DeviceHandle


@dataclass
class SessionSnapshot:
    """Point-in-time view of controller state"""
    discovered: List[str]
    selected: Optional[str]
    phase: SessionPhase
    operation_in_flight: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "discovered_devices": list(self.discovered),
            "selected_device": self.selected,
            "phase": self.phase.value,
            "operation_in_flight": self.operation_in_flight,
        }


@dataclass
class ControllerSettings:
    """Timeouts, retry policy and discovery filter for the controller"""
    device_prefix: str = "Smarty"
    discovery_attempts: int = 3
    discovery_retry_delay: float = 1.0
    retry_on_empty: bool = True
    connect_timeout: float = 10.0
    wifi_scan_timeout: float = 10.0
    wifi_scan_pre_delay: float = 2.0
    provision_timeout: float = 30.0
    security: SecurityConfig = field(default_factory=SecurityConfig)

    def __post_init__(self):
        if not isinstance(self.retry_on_empty, bool):
            raise ValueError(f"retry_on_empty must be true or false (got {self.retry_on_empty!r})")
        if self.discovery_attempts < 1:
            raise ValueError("discovery_attempts must be at least 1")
        for name in ('discovery_retry_delay', 'wifi_scan_pre_delay'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        for name in ('connect_timeout', 'wifi_scan_timeout', 'provision_timeout'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ControllerSettings":
        """Build settings from a loaded configuration dict"""
        prov = config.get('provisioning', {})
        return cls(
            device_prefix=prov.get('device_prefix', 'Smarty'),
            discovery_attempts=int(prov.get('discovery_attempts', 3)),
            discovery_retry_delay=float(prov.get('discovery_retry_delay_seconds', 1.0)),
            retry_on_empty=prov.get('retry_on_empty', True),
            connect_timeout=float(prov.get('connect_timeout_seconds', 10)),
            wifi_scan_timeout=float(prov.get('wifi_scan_timeout_seconds', 10)),
            wifi_scan_pre_delay=float(prov.get('wifi_scan_pre_delay_seconds', 2.0)),
            provision_timeout=float(prov.get('provision_timeout_seconds', 30)),
            security=SecurityConfig.from_config(config),
        )
