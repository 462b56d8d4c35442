"""
Error taxonomy for provisioning operations

Each error carries the channel code reported back to the caller.
"""

from typing import Any, Optional


class ProvisioningError(Exception):
    """Base class for every terminal operation failure"""
    code = "PROVISIONING_ERROR"
    default_message = "Provisioning operation failed"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        return {"code": self.code, "message": self.message, "details": self.details}


class PermissionDenied(ProvisioningError):
    code = "PERMISSION_DENIED"
    default_message = "Bluetooth and location permissions are required."


class InvalidArgument(ProvisioningError):
    code = "INVALID_ARGUMENTS"
    default_message = "Invalid arguments"


class DeviceNotFound(ProvisioningError):
    code = "DEVICE_NOT_FOUND"
    default_message = "No devices found."


class ScanError(ProvisioningError):
    code = "SCAN_ERROR"
    default_message = "Unknown error occurred"


class ConnectionFailed(ProvisioningError):
    code = "CONNECTION_FAILED"
    default_message = "Failed to connect to device"


class ConnectionTimeout(ProvisioningError):
    code = "CONNECTION_TIMEOUT"
    default_message = "Connection timed out"


class DeviceDisconnected(ProvisioningError):
    code = "DEVICE_DISCONNECTED"
    default_message = "Device disconnected"


class UnknownStatus(ProvisioningError):
    code = "UNKNOWN_STATUS"
    default_message = "Unknown connection status"


class NoDeviceConnected(ProvisioningError):
    code = "NO_DEVICE_CONNECTED"
    default_message = "No device connected"


class WifiScanError(ProvisioningError):
    code = "WIFI_SCAN_ERROR"
    default_message = "Unknown error"


class WifiScanTimeout(ProvisioningError):
    code = "WIFI_SCAN_TIMEOUT"
    default_message = "WiFi scan timed out"


class ProvisionError(ProvisioningError):
    code = "PROVISION_ERROR"
    default_message = "Provisioning failed"


class ProvisionTimeout(ProvisioningError):
    code = "PROVISION_TIMEOUT"
    default_message = "Provisioning timed out"


class OperationInProgress(ProvisioningError):
    code = "BUSY"
    default_message = "Another provisioning operation is already in progress"


class MethodNotImplemented(ProvisioningError):
    code = "NOT_IMPLEMENTED"
    default_message = "Method not implemented"
