"""
System health and session status API routes
"""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime, timezone
import logging

from provisioning.controller import ProvisioningController

logger = logging.getLogger(__name__)

# Response models
class SessionStatusResponse(BaseModel):
    discovered_devices: List[str]
    selected_device: Optional[str]
    phase: str
    operation_in_flight: Optional[str]
    timestamp: datetime

def create_system_routes(controller: ProvisioningController, config):
    """Create system monitoring routes"""
    router = APIRouter(prefix="/api", tags=["system"])

    @router.get("/session", response_model=SessionStatusResponse)
    async def get_session_status():
        """Current discovered devices, selected device and workflow phase"""
        snapshot = controller.snapshot().to_dict()
        return SessionStatusResponse(timestamp=datetime.now(timezone.utc), **snapshot)

    @router.get("/system/health")
    async def system_health():
        """System health check"""
        return {
            "status": "healthy",
            "transport": controller.transport.name,
            "device_prefix": controller.settings.device_prefix,
            "busy": controller.busy,
            "security_level": config.get('security', {}).get('level'),
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    return router
