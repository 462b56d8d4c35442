"""
Device transport contract consumed by the provisioning controller
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from .models import ConnectionStatus, DeviceHandle, ProvisionStatus, SecurityConfig


class TransportError(Exception):
    """Raised by a transport when an operation fails"""


class TransientDiscoveryError(TransportError):
    """Discovery found nothing this time; a later attempt may succeed"""


class DeviceTransport(ABC):
    """
    Abstract interface for whatever actually talks to the devices.

    Discovery and network listing are coroutines with a single outcome.
    Connecting and provisioning report through listeners, which the
    transport may invoke any number of times and from any thread; the
    controller keeps only the first terminal notification.
    """

    name = "abstract"

    async def check_permissions(self) -> bool:
        """Whether the platform allows scanning at all"""
        return True

    @abstractmethod
    async def discover(self, prefix: str) -> List[DeviceHandle]:
        """
        Scan for devices whose advertised name starts with `prefix`.
        Returns handles in the order the scan reported them (possibly empty).
        Raises TransientDiscoveryError when nothing could be found and a retry
        is worthwhile, TransportError for anything else.
        """

    @abstractmethod
    def connect(self,
                handle: DeviceHandle,
                security: SecurityConfig,
                listener: Callable[[ConnectionStatus], None]) -> None:
        """Start connecting to a device. Status is reported via `listener`."""

    @abstractmethod
    async def list_networks(self, handle: DeviceHandle) -> Optional[List[str]]:
        """Ask the device for the SSIDs it can see. None means no list was returned."""

    @abstractmethod
    def provision(self,
                  handle: DeviceHandle,
                  ssid: str,
                  passphrase: str,
                  listener: Callable[[ProvisionStatus], None],
                  error_listener: Callable[[Exception], None]) -> None:
        """Send Wi-Fi credentials to the device. Outcome is reported via the listeners."""

    async def close(self) -> None:
        """Release transport resources"""
