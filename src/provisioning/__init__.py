"""
Provisioning module: session controller, transport contract and method channel
"""

from .channel import ChannelResponse, MethodChannel
from .controller import ProvisioningController
from .models import ConnectionStatus, ControllerSettings, DeviceHandle, ProvisionStatus, SecurityConfig
from .transport import DeviceTransport, TransientDiscoveryError, TransportError

__all__ = [
    'ChannelResponse', 'MethodChannel', 'ProvisioningController', 'ConnectionStatus',
    'ControllerSettings', 'DeviceHandle', 'ProvisionStatus', 'SecurityConfig',
    'DeviceTransport', 'TransientDiscoveryError', 'TransportError',
]
