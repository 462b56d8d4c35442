"""
Provisioning Server - Main orchestrator for the bridge
"""

import asyncio
import logging
from typing import Optional
import uvicorn

# Local imports
from config_loader import load_config, setup_logging
from provisioning.controller import ProvisioningController
from provisioning.models import ControllerSettings
from provisioning.transport import DeviceTransport
from transports import create_transport
from api.main_api import ProvisioningAPI

logger = logging.getLogger(__name__)

class ProvisioningServer:
    """Main server wiring the transport, the session controller and the HTTP API"""

    def __init__(self, config_path: str = "config/config.yaml"):
        self.config = load_config(config_path)
        setup_logging(self.config)

        self.settings = ControllerSettings.from_config(self.config)
        self.transport: DeviceTransport = create_transport(self.config['transport'])
        self.controller = ProvisioningController(self.transport, self.settings)
        self.api = ProvisioningAPI(self.controller, self.config)

        self.running = False
        self._uvicorn: Optional[uvicorn.Server] = None

    async def start(self):
        """Start the HTTP API and serve until stopped"""
        logger.info("Starting Smarty provisioning bridge...")
        logger.info(f"Transport: {self.transport.name}, device prefix: '{self.settings.device_prefix}', "
                    f"timeouts connect={self.settings.connect_timeout:g}s "
                    f"wifi_scan={self.settings.wifi_scan_timeout:g}s "
                    f"provision={self.settings.provision_timeout:g}s")

        self.running = True
        try:
            await self._start_api_server()
        except Exception as e:
            logger.error(f"Server startup failed: {e}")
            await self.stop()
            raise

    async def _start_api_server(self):
        api_config = self.config['api']
        uv_config = uvicorn.Config(
            self.api.app,
            host=api_config['host'],
            port=api_config['port'],
            log_level=self.config['logging']['level'].lower(),
            log_config=None
        )
        self._uvicorn = uvicorn.Server(uv_config)
        logger.info(f"HTTP API listening on {api_config['host']}:{api_config['port']}")
        await self._uvicorn.serve()

    async def stop(self):
        """Stop the server and release the transport"""
        if not self.running:
            return
        logger.info("Stopping server...")
        self.running = False

        if self._uvicorn is not None:
            self._uvicorn.should_exit = True

        self.controller.close()
        await self.transport.close()
        # Give in-flight transport callbacks a chance to drain
        await asyncio.sleep(0)
        logger.info("Server stopped")
