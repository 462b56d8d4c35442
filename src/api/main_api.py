"""
Main FastAPI application setup

Local HTTP API for the Smarty provisioning bridge.
Exposes the provisioning method channel and session status.
"""

from fastapi import FastAPI
from typing import Dict
import logging

from provisioning.channel import MethodChannel
from provisioning.controller import ProvisioningController

# Import modular route factories
from .channel_routes import create_channel_routes
from .system_routes import create_system_routes

logger = logging.getLogger(__name__)


class ProvisioningAPI:
    """Local HTTP API around a single provisioning session"""

    def __init__(self, controller: ProvisioningController, config: Dict):
        self.controller = controller
        self.config = config
        self.channel = MethodChannel(controller)
        self.app = FastAPI(
            title="Smarty Provisioning Bridge",
            description="Discover, connect and provision Smarty devices with Wi-Fi credentials over BLE",
            version="1.0.0"
        )
        self._setup_routes()

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        channel_router = create_channel_routes(self.channel)
        system_router = create_system_routes(self.controller, self.config)

        self.app.include_router(channel_router)
        self.app.include_router(system_router)
