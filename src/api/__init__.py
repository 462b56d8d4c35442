"""
API module for the provisioning method channel and session status
"""

from .main_api import ProvisioningAPI
from .channel_routes import create_channel_routes
from .system_routes import create_system_routes

__all__ = ['ProvisioningAPI', 'create_channel_routes', 'create_system_routes']
