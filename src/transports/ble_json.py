"""
BLE device transport using bleak

Talks to devices exposing a JSON provisioning GATT service:

    Provisioning Service (service_uuid)
    ├── Wi-Fi Networks (networks_uuid) [READ]
    │   └── JSON: ["HomeNet", "Guest"] or [{"ssid": "HomeNet", "rssi": -40}, ...]
    ├── Wi-Fi Credentials (credentials_uuid) [WRITE]
    │   └── JSON: {"ssid": "HomeNet", "password": "secret123", "pop": "abcd1234"}
    └── Provisioning Status (status_uuid) [NOTIFY]
        └── JSON: {"status": "connecting" | "config_applied" | "success" | "failed"}
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Set

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from provisioning.models import ConnectionStatus, DeviceHandle, ProvisionStatus, SecurityConfig
from provisioning.transport import DeviceTransport, TransientDiscoveryError, TransportError

logger = logging.getLogger(__name__)

# Status notifications that are progress reports rather than outcomes
IN_PROGRESS_STATUSES = {"connecting", "pending", "applying"}

STATUS_MAP = {
    "success": ProvisionStatus.SUCCESS,
    "connected": ProvisionStatus.SUCCESS,
    "config_applied": ProvisionStatus.CONFIG_APPLIED,
    "failed": ProvisionStatus.FAILURE,
    "failure": ProvisionStatus.FAILURE,
    "error": ProvisionStatus.FAILURE,
}


def parse_network_list(payload: bytes) -> Optional[List[str]]:
    """Decode the Wi-Fi networks characteristic into SSIDs"""
    if not payload:
        return None
    try:
        data = json.loads(payload.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        raise TransportError(f"Malformed Wi-Fi list: {e}")
    if data is None:
        return None
    if not isinstance(data, list):
        raise TransportError("Malformed Wi-Fi list: expected a JSON array")

    ssids = []
    for entry in data:
        if isinstance(entry, str):
            ssids.append(entry)
        elif isinstance(entry, dict) and entry.get('ssid') is not None:
            ssids.append(str(entry['ssid']))
    return ssids


def parse_status(payload: bytes) -> Optional[ProvisionStatus]:
    """Decode a status notification. Returns None for progress-only updates."""
    try:
        data = json.loads(payload.decode('utf-8'))
    except (UnicodeDecodeError, ValueError):
        logger.warning(f"Ignoring malformed status notification: {payload!r}")
        return None
    status = str(data.get('status', '')).lower() if isinstance(data, dict) else ''
    if status in IN_PROGRESS_STATUSES:
        return None
    return STATUS_MAP.get(status, ProvisionStatus.UNKNOWN)


class BleJsonTransport(DeviceTransport):
    """bleak central speaking the JSON provisioning profile"""

    name = "ble"

    def __init__(self, config: Dict[str, Any]):
        self.service_uuid = config['service_uuid'].lower()
        self.networks_uuid = config['networks_uuid']
        self.credentials_uuid = config['credentials_uuid']
        self.status_uuid = config['status_uuid']
        self.scan_timeout = float(config.get('scan_timeout_seconds', 5))
        self.connect_timeout = float(config.get('connect_timeout_seconds', 8))

        self._clients: Dict[str, BleakClient] = {}
        self._security: Dict[str, SecurityConfig] = {}
        # Status notifications are subscribed once per connection and routed
        # to the listener of the provision request currently in progress
        self._status_listeners: Dict[str, Callable[[ProvisionStatus], None]] = {}
        self._notifying: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ================== DISCOVERY ==================

    async def discover(self, prefix: str) -> List[DeviceHandle]:
        logger.info(f"Scanning {self.scan_timeout:g}s for BLE devices named '{prefix}*'")
        try:
            found = await BleakScanner.discover(timeout=self.scan_timeout, return_adv=True)
        except OSError as e:
            # Adapter not ready yet (powered off, still initialising)
            raise TransientDiscoveryError(str(e)) from e
        except BleakError as e:
            raise TransportError(f"BLE scan failed: {e}") from e

        handles = []
        for device, adv in found.values():
            name = device.name or adv.local_name
            if not name or not name.startswith(prefix):
                continue
            service_uuids = [u.lower() for u in (adv.service_uuids or [])]
            if service_uuids and self.service_uuid not in service_uuids:
                logger.debug(f"Skipping {name}: provisioning service not advertised")
                continue
            handles.append(DeviceHandle(
                name=name,
                address=str(device.address),
                rssi=adv.rssi,
                extra={'ble_device': device},
            ))
        logger.info(f"BLE scan found {len(handles)} matching device(s)")
        return handles

    # ================== CONNECTION ==================

    def connect(self,
                handle: DeviceHandle,
                security: SecurityConfig,
                listener: Callable[[ConnectionStatus], None]) -> None:
        self._security[handle.address] = security
        self._spawn(self._connect(handle, listener))

    async def _connect(self, handle: DeviceHandle, listener: Callable[[ConnectionStatus], None]) -> None:
        previous = self._clients.pop(handle.address, None)
        self._forget_notifications(handle.address)
        if previous is not None and previous.is_connected:
            await previous.disconnect()

        def on_disconnect(_client):
            logger.info(f"{handle.name} disconnected")
            self._clients.pop(handle.address, None)
            self._forget_notifications(handle.address)
            listener(ConnectionStatus.DISCONNECTED)

        target = handle.extra.get('ble_device') or handle.address
        client = BleakClient(target, disconnected_callback=on_disconnect, timeout=self.connect_timeout)
        try:
            await client.connect()
        except (BleakError, asyncio.TimeoutError, OSError) as e:
            logger.error(f"BLE connect to {handle.name} failed: {e}")
            listener(ConnectionStatus.FAILED_TO_CONNECT)
            return

        self._clients[handle.address] = client
        listener(ConnectionStatus.CONNECTED)

    def _forget_notifications(self, address: str) -> None:
        self._notifying.discard(address)
        self._status_listeners.pop(address, None)

    def _client(self, handle: DeviceHandle) -> BleakClient:
        client = self._clients.get(handle.address)
        if client is None or not client.is_connected:
            raise TransportError(f"Device not connected: {handle.name}")
        return client

    # ================== WI-FI ==================

    async def list_networks(self, handle: DeviceHandle) -> Optional[List[str]]:
        client = self._client(handle)
        try:
            payload = await client.read_gatt_char(self.networks_uuid)
        except BleakError as e:
            raise TransportError(f"Reading Wi-Fi list failed: {e}") from e
        return parse_network_list(bytes(payload))

    def provision(self,
                  handle: DeviceHandle,
                  ssid: str,
                  passphrase: str,
                  listener: Callable[[ProvisionStatus], None],
                  error_listener: Callable[[Exception], None]) -> None:
        client = self._client(handle)
        message = {"ssid": ssid, "password": passphrase}
        security = self._security.get(handle.address)
        if security is not None and security.level > 0 and security.pop:
            message["pop"] = security.pop
            if security.username:
                message["username"] = security.username
        self._spawn(self._provision(client, handle, message, listener, error_listener))

    async def _provision(self,
                         client: BleakClient,
                         handle: DeviceHandle,
                         message: Dict[str, str],
                         listener: Callable[[ProvisionStatus], None],
                         error_listener: Callable[[Exception], None]) -> None:
        address = handle.address
        self._status_listeners[address] = listener

        def on_status(_characteristic, data: bytearray):
            status = parse_status(bytes(data))
            current = self._status_listeners.get(address)
            if status is not None and current is not None:
                current(status)

        try:
            if address not in self._notifying:
                await client.start_notify(self.status_uuid, on_status)
                self._notifying.add(address)
            await client.write_gatt_char(self.credentials_uuid, json.dumps(message).encode('utf-8'), response=True)
            logger.info(f"Credentials written to {handle.name}, waiting for status")
        except BleakError as e:
            logger.error(f"Sending credentials to {handle.name} failed: {e}")
            error_listener(TransportError(str(e)))

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        for address, client in list(self._clients.items()):
            try:
                if address in self._notifying:
                    await client.stop_notify(self.status_uuid)
                await client.disconnect()
            except BleakError as e:
                logger.warning(f"Error disconnecting {address}: {e}")
        self._clients = {}
        self._notifying = set()
        self._status_listeners = {}
