"""
Provisioning session controller
Drives discover -> connect -> Wi-Fi scan -> provision against a device transport
"""

import asyncio
import inspect
import logging
from contextlib import contextmanager
from typing import Awaitable, Callable, List, Optional, Union

from .errors import (
    ConnectionFailed,
    ConnectionTimeout,
    DeviceDisconnected,
    DeviceNotFound,
    InvalidArgument,
    NoDeviceConnected,
    OperationInProgress,
    PermissionDenied,
    ProvisionError,
    ProvisionTimeout,
    ProvisioningError,
    ScanError,
    UnknownStatus,
    WifiScanError,
    WifiScanTimeout,
)
from .models import (
    ConnectionStatus,
    ControllerSettings,
    DeviceHandle,
    DiscoveredDevice,
    ProvisionStatus,
    SessionPhase,
    SessionSnapshot,
)
from .pending import PendingOperation
from .transport import DeviceTransport, TransientDiscoveryError

logger = logging.getLogger(__name__)

CONNECTED_RESULT = "CONNECTED"
PROVISIONED_RESULT = "SUCCESS"

PermissionCheck = Callable[[], Union[bool, Awaitable[bool]]]


class ProvisioningController:
    """Owns the discovered devices, the selected device and the provisioning workflow"""

    def __init__(self,
                 transport: DeviceTransport,
                 settings: Optional[ControllerSettings] = None,
                 permission_check: Optional[PermissionCheck] = None):
        self.transport = transport
        self.settings = settings or ControllerSettings()
        self._permission_check = permission_check or transport.check_permissions

        self._devices: List[DiscoveredDevice] = []
        self._selected: Optional[DiscoveredDevice] = None
        self._phase = SessionPhase.UNCONNECTED
        self._in_flight: Optional[str] = None

    # ================== SESSION STATE ==================

    @property
    def discovered_devices(self) -> List[DiscoveredDevice]:
        return list(self._devices)

    @property
    def selected_device(self) -> Optional[DiscoveredDevice]:
        return self._selected

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def busy(self) -> bool:
        return self._in_flight is not None

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            discovered=[d.name for d in self._devices],
            selected=self._selected.name if self._selected else None,
            phase=self._phase,
            operation_in_flight=self._in_flight,
        )

    def close(self) -> None:
        """Drop all session state"""
        logger.info("Closing provisioning session")
        self._devices = []
        self._selected = None
        self._phase = SessionPhase.UNCONNECTED

    @contextmanager
    def _operation(self, name: str):
        """Allow a single operation in flight per controller"""
        if self._in_flight is not None:
            logger.warning(f"Rejecting {name}: {self._in_flight} still in progress")
            raise OperationInProgress(f"Cannot start {name} while {self._in_flight} is in progress")
        self._in_flight = name
        try:
            yield
        finally:
            self._in_flight = None

    def _find_device(self, device_name: str) -> Optional[DiscoveredDevice]:
        for device in self._devices:
            if device.name == device_name:
                return device
        return None

    async def _permitted(self) -> bool:
        result = self._permission_check()
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    # ================== DISCOVERY ==================

    async def discover(self, name_prefix: Optional[str] = None) -> List[str]:
        """
        Scan for devices whose name starts with `name_prefix`, retrying while
        the transport reports nothing found. Replaces the discovered set.
        """
        prefix = name_prefix or self.settings.device_prefix
        attempts = self.settings.discovery_attempts

        with self._operation("discover"):
            self._devices = []

            if not await self._permitted():
                logger.warning("Discovery refused: Bluetooth/location permission not granted")
                raise PermissionDenied()

            for attempt in range(1, attempts + 1):
                logger.info(f"Discovery attempt {attempt}/{attempts} for prefix '{prefix}'")
                try:
                    handles = await self.transport.discover(prefix)
                except TransientDiscoveryError as e:
                    logger.info(f"Discovery attempt {attempt} found nothing: {e}")
                except Exception as e:
                    logger.error(f"Discovery failed: {e}")
                    raise ScanError(str(e) or None) from e
                else:
                    if handles:
                        return self._store_devices(handles)
                    if not self.settings.retry_on_empty:
                        logger.info("Discovery completed with no devices")
                        return []
                    logger.info(f"Discovery attempt {attempt} returned an empty device list")

                if attempt < attempts:
                    await asyncio.sleep(self.settings.discovery_retry_delay)

            logger.warning(f"No '{prefix}' devices found after {attempts} attempts")
            raise DeviceNotFound(
                f"No {prefix} devices found. Please ensure your device is powered on, "
                f"in range, and in provisioning mode."
            )

    def _store_devices(self, handles: List[DeviceHandle]) -> List[str]:
        self._devices = [DiscoveredDevice(name=h.name, handle=h) for h in handles]
        names = [d.name for d in self._devices]
        logger.info(f"Discovered {len(names)} device(s): {', '.join(names)}")
        return names

    # ================== CONNECT ==================

    async def connect(self, device_name: Optional[str]) -> str:
        """Select a discovered device by name and connect to it"""
        if not device_name:
            raise InvalidArgument("Missing deviceName argument")

        device = self._find_device(device_name)
        if device is None:
            logger.warning(f"Connect requested for unknown device {device_name}; "
                           f"available: {[d.name for d in self._devices]}")
            raise InvalidArgument(f"Device not found: {device_name}")

        with self._operation("connect"):
            # Selection sticks even if the connection fails, so a retry needs no rescan
            self._selected = device
            self._phase = SessionPhase.CONNECTING
            timeout = self.settings.connect_timeout
            pending = PendingOperation(f"connect({device_name})")

            def on_status(status):
                if status == ConnectionStatus.CONNECTED:
                    pending.resolve(CONNECTED_RESULT)
                elif status == ConnectionStatus.FAILED_TO_CONNECT:
                    pending.reject(ConnectionFailed())
                elif status == ConnectionStatus.DISCONNECTED:
                    pending.reject(DeviceDisconnected())
                else:
                    pending.reject(UnknownStatus(details=str(status)))

            logger.info(f"Connecting to {device_name} (security level {self.settings.security.level})")
            try:
                self.transport.connect(device.handle, self.settings.security, on_status)
            except Exception as e:
                logger.error(f"Transport refused connection to {device_name}: {e}")
                pending.reject(ConnectionFailed(str(e) or None))

            try:
                result = await pending.wait(
                    timeout,
                    lambda: ConnectionTimeout(f"Connection timed out after {timeout:g} seconds"),
                )
            except ProvisioningError as e:
                logger.error(f"Connection to {device_name} failed: {e.code} {e.message}")
                self._phase = SessionPhase.UNCONNECTED
                raise

            logger.info(f"Connected to {device_name}")
            self._phase = SessionPhase.CONNECTED
            return result

    # ================== WI-FI SCAN ==================

    async def scan_networks(self) -> List[str]:
        """List the SSIDs visible to the selected device"""
        device = self._selected
        if device is None:
            logger.warning("Wi-Fi scan requested with no device connected")
            raise NoDeviceConnected()

        with self._operation("scan_networks"):
            previous_phase = self._phase
            self._phase = SessionPhase.NETWORK_SCANNING
            timeout = self.settings.wifi_scan_timeout
            pending = PendingOperation(f"scan_networks({device.name})")

            def on_networks(networks):
                if networks is None:
                    logger.info("Device returned no Wi-Fi list")
                    pending.resolve([])
                    return
                pending.resolve([ssid for ssid in networks if ssid is not None])

            def on_error(exc):
                pending.reject(WifiScanError(str(exc) or None))

            pending.attach(self._list_networks(device.handle), on_networks, on_error)

            try:
                networks = await pending.wait(
                    timeout,
                    lambda: WifiScanTimeout(f"WiFi scan timed out after {timeout:g} seconds"),
                )
            except ProvisioningError as e:
                logger.error(f"Wi-Fi scan on {device.name} failed: {e.code} {e.message}")
                raise
            finally:
                self._phase = previous_phase

            logger.info(f"Found {len(networks)} Wi-Fi network(s) via {device.name}")
            for index, ssid in enumerate(networks, 1):
                logger.debug(f"Wi-Fi network {index}: {ssid}")
            return networks

    async def _list_networks(self, handle: DeviceHandle):
        pre_delay = self.settings.wifi_scan_pre_delay
        if pre_delay > 0:
            logger.debug(f"Waiting {pre_delay:g}s before sending Wi-Fi scan command")
            await asyncio.sleep(pre_delay)
        return await self.transport.list_networks(handle)

    # ================== PROVISION ==================

    async def provision(self, ssid: Optional[str], passphrase: Optional[str]) -> str:
        """Send Wi-Fi credentials to the selected device"""
        device = self._selected
        if ssid is None or passphrase is None or device is None:
            logger.warning("Provision requested with missing credentials or no device connected")
            raise InvalidArgument("Invalid arguments or no device connected")

        with self._operation("provision"):
            previous_phase = self._phase
            self._phase = SessionPhase.PROVISIONING
            timeout = self.settings.provision_timeout
            pending = PendingOperation(f"provision({device.name})")

            def on_status(status):
                if status in (ProvisionStatus.SUCCESS, ProvisionStatus.CONFIG_APPLIED):
                    pending.resolve(PROVISIONED_RESULT)
                elif status == ProvisionStatus.FAILURE:
                    pending.reject(ProvisionError("Provisioning failed"))
                else:
                    pending.reject(ProvisionError("Provisioning failed with unknown error",
                                                  details=str(status)))

            def on_error(exc):
                pending.reject(ProvisionError(str(exc) or None))

            logger.info(f"Provisioning {device.name} with SSID: {ssid}, Password: [HIDDEN]")
            try:
                self.transport.provision(device.handle, ssid, passphrase, on_status, on_error)
            except Exception as e:
                on_error(e)

            try:
                result = await pending.wait(
                    timeout,
                    lambda: ProvisionTimeout(f"Provisioning timed out after {timeout:g} seconds"),
                )
            except ProvisioningError as e:
                logger.error(f"Provisioning {device.name} failed: {e.code} {e.message}")
                self._phase = previous_phase
                raise

            logger.info(f"Provisioning {device.name} successful")
            self._phase = SessionPhase.PROVISIONED
            return result
