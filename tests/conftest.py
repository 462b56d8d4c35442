"""
Shared fixtures for provisioning tests
"""

import asyncio
import time
from typing import List, Optional

import pytest

from provisioning.controller import ProvisioningController
from provisioning.models import ConnectionStatus, ControllerSettings, DeviceHandle
from provisioning.transport import DeviceTransport


def handles(*names: str) -> List[DeviceHandle]:
    return [DeviceHandle(name=name, address=f"AA:BB:CC:DD:EE:{i:02X}") for i, name in enumerate(names, 1)]


class FakeTransport(DeviceTransport):
    """Scriptable transport that records every request"""

    name = "fake"

    def __init__(self):
        self.permissions = True
        # Each discover() call consumes one entry: a handle list or an exception
        self.discover_results: list = []
        self.discover_calls: list = []  # (prefix, monotonic time)

        self.connect_reply = None  # status delivered synchronously, None for silence
        self.connect_error: Optional[Exception] = None
        self.connect_calls: list = []
        self.connect_listener = None

        self.networks = None  # list, None, or exception
        self.list_delay = 0.0
        self.list_calls = 0

        self.provision_reply = None
        self.provision_calls: list = []
        self.provision_listener = None
        self.provision_error_listener = None

    async def check_permissions(self) -> bool:
        return self.permissions

    async def discover(self, prefix):
        self.discover_calls.append((prefix, time.monotonic()))
        result = self.discover_results.pop(0) if self.discover_results else []
        if isinstance(result, Exception):
            raise result
        return result

    def connect(self, handle, security, listener):
        self.connect_calls.append((handle, security))
        self.connect_listener = listener
        if self.connect_error is not None:
            raise self.connect_error
        if self.connect_reply is not None:
            listener(self.connect_reply)

    async def list_networks(self, handle):
        self.list_calls += 1
        if self.list_delay:
            await asyncio.sleep(self.list_delay)
        if isinstance(self.networks, Exception):
            raise self.networks
        return self.networks

    def provision(self, handle, ssid, passphrase, listener, error_listener):
        self.provision_calls.append((handle.name, ssid, passphrase))
        self.provision_listener = listener
        self.provision_error_listener = error_listener
        if self.provision_reply is not None:
            listener(self.provision_reply)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def fast_settings():
    return ControllerSettings(
        discovery_retry_delay=0.01,
        connect_timeout=0.2,
        wifi_scan_timeout=0.2,
        wifi_scan_pre_delay=0.0,
        provision_timeout=0.2,
    )


@pytest.fixture
def controller(transport, fast_settings):
    return ProvisioningController(transport, fast_settings)


@pytest.fixture
async def connected_controller(transport, controller):
    """Controller with Smarty-A1 discovered and connected"""
    transport.discover_results = [handles("Smarty-A1", "Smarty-B2")]
    await controller.discover()
    transport.connect_reply = ConnectionStatus.CONNECTED
    await controller.connect("Smarty-A1")
    transport.connect_reply = None
    return controller
