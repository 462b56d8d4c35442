"""
Method channel for the provisioning controller

Maps the four caller-facing method names onto controller operations and
turns every outcome into exactly one response.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .controller import ProvisioningController
from .errors import InvalidArgument, MethodNotImplemented, ProvisioningError

logger = logging.getLogger(__name__)


@dataclass
class ChannelResponse:
    """Single response for a single method call"""
    method: str
    success: bool
    result: Any = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    details: Any = None

    @classmethod
    def from_error(cls, method: str, error: ProvisioningError) -> "ChannelResponse":
        return cls(
            method=method,
            success=False,
            error_code=error.code,
            error_message=error.message,
            details=error.details,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "success": self.success,
            "result": self.result,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "details": self.details,
        }


class MethodChannel:
    """Dispatches named method calls to a ProvisioningController"""

    METHODS = ("startScanning", "connectToDevice", "scanWifiNetworks", "connectAndProvision")

    def __init__(self, controller: ProvisioningController):
        self.controller = controller
        self._handlers = {
            "startScanning": self._start_scanning,
            "connectToDevice": self._connect_to_device,
            "scanWifiNetworks": self._scan_wifi_networks,
            "connectAndProvision": self._connect_and_provision,
        }

    def supports(self, method: str) -> bool:
        return method in self._handlers

    async def invoke(self, method: str, arguments: Any = None) -> ChannelResponse:
        """Run one method call and return its response"""
        handler = self._handlers.get(method)
        if handler is None:
            logger.error(f"Method not implemented: {method}")
            return ChannelResponse.from_error(method, MethodNotImplemented(f"Method not implemented: {method}"))

        logger.info(f"Received method call: {method}")
        try:
            result = await handler(arguments)
        except ProvisioningError as e:
            return ChannelResponse.from_error(method, e)
        return ChannelResponse(method=method, success=True, result=result)

    @staticmethod
    def _arguments(arguments: Any) -> Dict[str, Any]:
        if arguments is None:
            return {}
        if not isinstance(arguments, dict):
            raise InvalidArgument("Invalid arguments format")
        return arguments

    @staticmethod
    def _optional_string(args: Dict[str, Any], key: str) -> Optional[str]:
        value = args.get(key)
        if value is not None and not isinstance(value, str):
            raise InvalidArgument(f"Argument {key} must be a string")
        return value

    async def _start_scanning(self, arguments: Any):
        args = self._arguments(arguments)
        return await self.controller.discover(self._optional_string(args, "prefix"))

    async def _connect_to_device(self, arguments: Any):
        args = self._arguments(arguments)
        return await self.controller.connect(self._optional_string(args, "deviceName"))

    async def _scan_wifi_networks(self, arguments: Any):
        return await self.controller.scan_networks()

    async def _connect_and_provision(self, arguments: Any):
        args = self._arguments(arguments)
        return await self.controller.provision(
            self._optional_string(args, "ssid"),
            self._optional_string(args, "password"),
        )
