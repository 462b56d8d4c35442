"""
Tests for the in-memory simulated transport
"""

import asyncio

import pytest

from provisioning.models import ConnectionStatus, DeviceHandle, ProvisionStatus, SecurityConfig
from provisioning.transport import TransientDiscoveryError, TransportError
from transports import create_transport
from transports.simulated import SimulatedDevice, SimulatedTransport


def handle(name):
    return DeviceHandle(name=name, address="00:00:00:00:00:00")


class TestFromConfig:

    def test_devices_parsed(self):
        transport = SimulatedTransport.from_config({
            "type": "simulated",
            "simulated": {
                "discovery_failures": 2,
                "devices": [
                    {"name": "Smarty-A1", "networks": ["HomeNet"], "connect_status": "CONNECTED"},
                    {"name": "Smarty-B2", "connect_status": None, "provision_status": "config_applied"},
                ],
            },
        })

        assert transport.discovery_failures == 2
        assert [d.name for d in transport.devices] == ["Smarty-A1", "Smarty-B2"]
        assert transport.devices[0].connect_status == ConnectionStatus.CONNECTED
        assert transport.devices[1].connect_status is None
        assert transport.devices[1].provision_status == ProvisionStatus.CONFIG_APPLIED

    def test_device_without_name(self):
        with pytest.raises(ValueError):
            SimulatedDevice.from_dict({"networks": []})

    def test_bad_status(self):
        with pytest.raises(ValueError, match="ConnectionStatus"):
            SimulatedDevice.from_dict({"name": "Smarty-A1", "connect_status": "maybe"})

    def test_factory(self):
        transport = create_transport({"type": "simulated", "simulated": {"devices": [{"name": "Smarty-A1"}]}})

        assert isinstance(transport, SimulatedTransport)
        assert transport.name == "simulated"

    def test_factory_unknown_type(self):
        with pytest.raises(ValueError):
            create_transport({"type": "serial"})


class TestDiscover:

    async def test_prefix_filter(self):
        transport = SimulatedTransport(devices=[
            SimulatedDevice(name="Smarty-A1"),
            SimulatedDevice(name="Lamp-01"),
            SimulatedDevice(name="Smarty-B2"),
        ])

        found = await transport.discover("Smarty")

        assert [h.name for h in found] == ["Smarty-A1", "Smarty-B2"]
        assert transport.discover_calls == 1

    async def test_failures_are_transient(self):
        transport = SimulatedTransport(devices=[SimulatedDevice(name="Smarty-A1")], discovery_failures=1)

        with pytest.raises(TransientDiscoveryError):
            await transport.discover("Smarty")
        assert [h.name for h in await transport.discover("Smarty")] == ["Smarty-A1"]

    async def test_permissions(self):
        assert await SimulatedTransport().check_permissions() is True
        assert await SimulatedTransport(permissions_granted=False).check_permissions() is False


class TestConnect:

    async def test_status_delivered(self):
        transport = SimulatedTransport(devices=[SimulatedDevice(name="Smarty-A1")])
        statuses = []

        transport.connect(handle("Smarty-A1"), SecurityConfig(), statuses.append)
        await asyncio.sleep(0.01)

        assert statuses == [ConnectionStatus.CONNECTED]

    async def test_pop_mismatch(self):
        transport = SimulatedTransport(devices=[SimulatedDevice(name="Smarty-A1", pop="zzzz9999")])
        statuses = []

        transport.connect(handle("Smarty-A1"), SecurityConfig(level=1, pop="abcd1234"), statuses.append)
        await asyncio.sleep(0.01)

        assert statuses == [ConnectionStatus.FAILED_TO_CONNECT]

    async def test_pop_ignored_without_security(self):
        transport = SimulatedTransport(devices=[SimulatedDevice(name="Smarty-A1", pop="zzzz9999")])
        statuses = []

        transport.connect(handle("Smarty-A1"), SecurityConfig(level=0, pop="abcd1234"), statuses.append)
        await asyncio.sleep(0.01)

        assert statuses == [ConnectionStatus.CONNECTED]

    async def test_silent_device(self):
        transport = SimulatedTransport(devices=[SimulatedDevice(name="Smarty-A1", connect_status=None)])
        statuses = []

        transport.connect(handle("Smarty-A1"), SecurityConfig(), statuses.append)
        await asyncio.sleep(0.01)

        assert statuses == []

    async def test_unknown_device(self):
        with pytest.raises(TransportError):
            SimulatedTransport().connect(handle("Smarty-A1"), SecurityConfig(), lambda status: None)


class TestWifi:

    async def test_list_networks(self):
        transport = SimulatedTransport(devices=[
            SimulatedDevice(name="Smarty-A1", networks=["HomeNet", "Guest"]),
            SimulatedDevice(name="Smarty-B2", networks=None),
        ])

        assert await transport.list_networks(handle("Smarty-A1")) == ["HomeNet", "Guest"]
        assert await transport.list_networks(handle("Smarty-B2")) is None

    async def test_list_networks_error(self):
        transport = SimulatedTransport(devices=[SimulatedDevice(name="Smarty-A1", wifi_scan_error="radio busy")])

        with pytest.raises(TransportError, match="radio busy"):
            await transport.list_networks(handle("Smarty-A1"))

    async def test_provision_recorded(self):
        transport = SimulatedTransport(devices=[SimulatedDevice(name="Smarty-A1")])
        statuses, errors = [], []

        transport.provision(handle("Smarty-A1"), "HomeNet", "secret123", statuses.append, errors.append)
        await asyncio.sleep(0.01)

        assert statuses == [ProvisionStatus.SUCCESS]
        assert errors == []
        assert transport.provisioned == {"Smarty-A1": "HomeNet"}

    async def test_provision_failure_not_recorded(self):
        transport = SimulatedTransport(devices=[
            SimulatedDevice(name="Smarty-A1", provision_status=ProvisionStatus.FAILURE),
        ])
        statuses = []

        transport.provision(handle("Smarty-A1"), "HomeNet", "wrong", statuses.append, lambda e: None)
        await asyncio.sleep(0.01)

        assert statuses == [ProvisionStatus.FAILURE]
        assert transport.provisioned == {}

    async def test_provision_error_listener(self):
        transport = SimulatedTransport(devices=[SimulatedDevice(name="Smarty-A1", provision_error="write failed")])
        statuses, errors = [], []

        transport.provision(handle("Smarty-A1"), "HomeNet", "secret123", statuses.append, errors.append)
        await asyncio.sleep(0.01)

        assert statuses == []
        assert len(errors) == 1
        assert str(errors[0]) == "write failed"

    async def test_close_cancels_pending_replies(self):
        transport = SimulatedTransport(devices=[SimulatedDevice(name="Smarty-A1", connect_delay=0.05)])
        statuses = []

        transport.connect(handle("Smarty-A1"), SecurityConfig(), statuses.append)
        await transport.close()
        await asyncio.sleep(0.1)

        assert statuses == []
