"""
ASGI entry point for uvicorn
This module exposes the FastAPI app for use with uvicorn command line
"""

import logging
import os

from config_loader import load_config, setup_logging
from provisioning.controller import ProvisioningController
from provisioning.models import ControllerSettings
from transports import create_transport
from api.main_api import ProvisioningAPI

# Load configuration
config = load_config(os.environ.get('CONFIG_FILE', 'config/config.yaml'))
setup_logging(config)

logger = logging.getLogger(__name__)

logger.info("Initializing application components...")

transport = create_transport(config['transport'])
controller = ProvisioningController(transport, ControllerSettings.from_config(config))

# Create API (which contains the FastAPI app)
api = ProvisioningAPI(controller, config)

# Expose the FastAPI app for uvicorn
app = api.app

@app.on_event("shutdown")
async def shutdown_event():
    """Release the transport on shutdown"""
    logger.info("Shutting down application...")
    controller.close()
    await transport.close()
    logger.info("Application shut down complete")

logger.info("ASGI app ready for uvicorn")
