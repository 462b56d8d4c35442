"""
Method channel API routes
"""

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel
from typing import Any, Optional
import logging

from provisioning.channel import MethodChannel

logger = logging.getLogger(__name__)

# Response models
class ChannelResult(BaseModel):
    method: str
    success: bool
    result: Any = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    details: Any = None

def create_channel_routes(channel: MethodChannel):
    """Create the request/response channel routes"""
    router = APIRouter(prefix="/api", tags=["channel"])

    @router.post("/channel/{method}", response_model=ChannelResult)
    async def invoke_method(method: str, arguments: Any = Body(default=None)):
        """Invoke one provisioning method (startScanning, connectToDevice, scanWifiNetworks, connectAndProvision)"""
        if not channel.supports(method):
            logger.error(f"Method not implemented: {method}")
            raise HTTPException(status_code=404, detail=f"Method not implemented: {method}")

        response = await channel.invoke(method, arguments)
        if not response.success:
            logger.info(f"{method} failed: {response.error_code} {response.error_message}")
        return ChannelResult(**response.to_dict())

    @router.get("/channel")
    async def list_methods():
        """List the methods the channel understands"""
        return {"methods": list(MethodChannel.METHODS)}

    return router
