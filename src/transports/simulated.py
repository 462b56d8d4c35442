"""
In-memory device transport

Simulates provisioning-mode devices described in configuration. Used for
development without hardware and as the reference transport in tests.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from provisioning.models import ConnectionStatus, DeviceHandle, ProvisionStatus, SecurityConfig
from provisioning.transport import DeviceTransport, TransientDiscoveryError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class SimulatedDevice:
    """A fake device and how it answers each request"""
    name: str
    address: str = "00:00:00:00:00:00"
    networks: Optional[List[str]] = field(default_factory=list)
    connect_status: Optional[ConnectionStatus] = ConnectionStatus.CONNECTED  # None: never answers
    connect_delay: float = 0.0
    wifi_scan_delay: float = 0.0
    wifi_scan_error: Optional[str] = None
    provision_status: Optional[ProvisionStatus] = ProvisionStatus.SUCCESS  # None: never answers
    provision_delay: float = 0.0
    provision_error: Optional[str] = None
    pop: Optional[str] = None  # proof of possession the device expects, None accepts any

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulatedDevice":
        if not data.get('name'):
            raise ValueError("Simulated device requires a name")
        networks = data.get('networks', [])
        return cls(
            name=data['name'],
            address=data.get('address', "00:00:00:00:00:00"),
            networks=list(networks) if networks is not None else None,
            connect_status=_parse_enum(ConnectionStatus, data.get('connect_status', 'connected')),
            connect_delay=float(data.get('connect_delay_seconds', 0.0)),
            wifi_scan_delay=float(data.get('wifi_scan_delay_seconds', 0.0)),
            wifi_scan_error=data.get('wifi_scan_error'),
            provision_status=_parse_enum(ProvisionStatus, data.get('provision_status', 'success')),
            provision_delay=float(data.get('provision_delay_seconds', 0.0)),
            provision_error=data.get('provision_error'),
            pop=data.get('pop'),
        )


def _parse_enum(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        raise ValueError(f"Invalid {enum_cls.__name__} value: {value!r}")


class SimulatedTransport(DeviceTransport):
    """Answers transport requests from a list of SimulatedDevice entries"""

    name = "simulated"

    def __init__(self,
                 devices: Optional[List[SimulatedDevice]] = None,
                 discovery_failures: int = 0,
                 scan_delay: float = 0.0,
                 permissions_granted: bool = True):
        self.devices = list(devices or [])
        self.discovery_failures = discovery_failures
        self.scan_delay = scan_delay
        self.permissions_granted = permissions_granted

        self.discover_calls = 0
        self.provisioned: Dict[str, str] = {}  # device name -> ssid
        self._timers: List[asyncio.TimerHandle] = []

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SimulatedTransport":
        sim_config = config.get('simulated') or {}
        devices = [SimulatedDevice.from_dict(d) for d in sim_config.get('devices', [])]
        logger.info(f"Simulated transport with {len(devices)} device(s)")
        return cls(
            devices=devices,
            discovery_failures=int(sim_config.get('discovery_failures', 0)),
            scan_delay=float(sim_config.get('scan_delay_seconds', 0.0)),
            permissions_granted=bool(sim_config.get('permissions_granted', True)),
        )

    def _device(self, handle: DeviceHandle) -> SimulatedDevice:
        for device in self.devices:
            if device.name == handle.name:
                return device
        raise TransportError(f"Unknown device: {handle.name}")

    def _later(self, delay: float, callback: Callable, *args) -> None:
        loop = asyncio.get_running_loop()
        if delay > 0:
            self._timers.append(loop.call_later(delay, callback, *args))
        else:
            self._timers.append(loop.call_soon(callback, *args))

    async def check_permissions(self) -> bool:
        return self.permissions_granted

    async def discover(self, prefix: str) -> List[DeviceHandle]:
        self.discover_calls += 1
        if self.scan_delay > 0:
            await asyncio.sleep(self.scan_delay)

        if self.discovery_failures > 0:
            self.discovery_failures -= 1
            raise TransientDiscoveryError(f"No {prefix} devices found")

        return [
            DeviceHandle(name=device.name, address=device.address)
            for device in self.devices
            if device.name.startswith(prefix)
        ]

    def connect(self,
                handle: DeviceHandle,
                security: SecurityConfig,
                listener: Callable[[ConnectionStatus], None]) -> None:
        device = self._device(handle)
        status = device.connect_status
        if security.level > 0 and device.pop is not None and security.pop != device.pop:
            logger.warning(f"{device.name}: proof of possession mismatch")
            status = ConnectionStatus.FAILED_TO_CONNECT
        if status is None:
            logger.debug(f"{device.name}: connect request left unanswered")
            return
        self._later(device.connect_delay, listener, status)

    async def list_networks(self, handle: DeviceHandle) -> Optional[List[str]]:
        device = self._device(handle)
        if device.wifi_scan_delay > 0:
            await asyncio.sleep(device.wifi_scan_delay)
        if device.wifi_scan_error:
            raise TransportError(device.wifi_scan_error)
        return list(device.networks) if device.networks is not None else None

    def provision(self,
                  handle: DeviceHandle,
                  ssid: str,
                  passphrase: str,
                  listener: Callable[[ProvisionStatus], None],
                  error_listener: Callable[[Exception], None]) -> None:
        device = self._device(handle)
        if device.provision_error:
            self._later(device.provision_delay, error_listener, TransportError(device.provision_error))
            return
        if device.provision_status is None:
            logger.debug(f"{device.name}: provision request left unanswered")
            return
        if device.provision_status in (ProvisionStatus.SUCCESS, ProvisionStatus.CONFIG_APPLIED):
            self.provisioned[device.name] = ssid
        self._later(device.provision_delay, listener, device.provision_status)

    async def close(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers = []
