"""
Device transports for the provisioning controller
"""

import logging
from typing import Any, Dict

from provisioning.transport import DeviceTransport

from .simulated import SimulatedDevice, SimulatedTransport

logger = logging.getLogger(__name__)

__all__ = ['create_transport', 'SimulatedDevice', 'SimulatedTransport']


def create_transport(transport_config: Dict[str, Any]) -> DeviceTransport:
    """Build the transport selected by transport.type"""
    transport_type = transport_config.get('type', 'simulated')
    if transport_type == 'simulated':
        return SimulatedTransport.from_config(transport_config)
    if transport_type == 'ble':
        # bleak pulls in platform backends, only import it when asked for
        from .ble_json import BleJsonTransport
        logger.info("Using BLE transport")
        return BleJsonTransport(transport_config['ble'])
    raise ValueError(f"Unsupported transport type: {transport_type}")
