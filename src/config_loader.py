"""
Configuration loader for the Smarty provisioning bridge
Loads and validates configuration from YAML files
"""

import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

SUPPORTED_TRANSPORTS = ('simulated', 'ble')
SUPPORTED_SECURITY_LEVELS = (0, 1, 2)

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        # Validate required sections
        _validate_config(config)

        # Apply defaults
        config = _apply_defaults(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_config(config: Dict) -> None:
    """Validate that required configuration sections exist"""
    required_sections = ['transport', 'provisioning']

    for section in required_sections:
        if section not in config or config[section] is None:
            raise ValueError(f"Missing required configuration section: {section}")

    # Validate transport section
    transport = config['transport']
    transport_type = transport.get('type')
    if transport_type not in SUPPORTED_TRANSPORTS:
        raise ValueError(
            f"transport.type must be one of {', '.join(SUPPORTED_TRANSPORTS)} (got {transport_type!r})"
        )
    if transport_type == 'ble':
        _validate_ble_transport(transport.get('ble', {}))

    retry_on_empty = config['provisioning'].get('retry_on_empty', True)
    if not isinstance(retry_on_empty, bool):
        raise ValueError(f"provisioning.retry_on_empty must be true or false (got {retry_on_empty!r})")

    # Validate security section if present
    if 'security' in config:
        level = config['security'].get('level', 1)
        if level not in SUPPORTED_SECURITY_LEVELS:
            raise ValueError(f"security.level must be 0, 1 or 2 (got {level!r})")

def _validate_ble_transport(ble_config: Dict) -> None:
    """Validate BLE transport characteristic configuration"""
    required_uuids = ['service_uuid', 'networks_uuid', 'credentials_uuid', 'status_uuid']
    missing = [key for key in required_uuids if not ble_config.get(key)]
    if missing:
        raise ValueError(f"Missing required BLE transport fields: {', '.join(missing)}")

    scan_timeout = ble_config.get('scan_timeout_seconds', 5)
    if scan_timeout <= 0:
        raise ValueError("transport.ble.scan_timeout_seconds must be positive")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    # Provisioning defaults
    provisioning_defaults = {
        'device_prefix': 'Smarty',
        'discovery_attempts': 3,
        'discovery_retry_delay_seconds': 1.0,
        'retry_on_empty': True,
        'connect_timeout_seconds': 10,
        'wifi_scan_timeout_seconds': 10,
        'wifi_scan_pre_delay_seconds': 2.0,
        'provision_timeout_seconds': 30
    }
    for key, default_value in provisioning_defaults.items():
        if key not in config['provisioning']:
            config['provisioning'][key] = default_value

    # Security defaults (proof of possession sent with credentials)
    if 'security' not in config:
        config['security'] = {}
    security_defaults = {
        'level': 1,
        'pop': 'abcd1234',
        'username': 'user'
    }
    for key, default_value in security_defaults.items():
        if key not in config['security']:
            config['security'][key] = default_value

    # BLE transport defaults
    if config['transport']['type'] == 'ble':
        ble_defaults = {
            'scan_timeout_seconds': 5,
            'connect_timeout_seconds': 8
        }
        for key, default_value in ble_defaults.items():
            if key not in config['transport']['ble']:
                config['transport']['ble'][key] = default_value

    # API defaults
    if 'api' not in config:
        config['api'] = {}
    api_defaults = {
        'host': '0.0.0.0',
        'port': 8000
    }
    for key, default_value in api_defaults.items():
        if key not in config['api']:
            config['api'][key] = default_value

    # Logging defaults
    if 'logging' not in config:
        config['logging'] = {}
    logging_defaults = {
        'level': 'INFO',
        'file': 'logs/provisioning_server.log',
        'console_output': True,
        'timezone': 'UTC'
    }
    for key, default_value in logging_defaults.items():
        if key not in config['logging']:
            config['logging'][key] = default_value

    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in the configured site timezone"""

    def __init__(self, fmt=None, timezone_name: str = 'UTC'):
        super().__init__(fmt)
        self.tz = pytz.timezone(timezone_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration with timezone-aware timestamps"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')
    timezone_name = log_config.get('timezone', 'UTC')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, timezone_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, timezone={timezone_name}, console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "transport": {
            "type": "simulated",
            "simulated": {
                "devices": [
                    {
                        "name": "Smarty-A1",
                        "address": "AA:BB:CC:DD:EE:01",
                        "networks": ["HomeNet", "Guest"],
                        "connect_status": "connected",
                        "provision_status": "success"
                    }
                ]
            },
            "ble": {
                "service_uuid": "021a9004-0382-4aea-bff4-6b3f1c5adfb4",
                "networks_uuid": "021aff50-0382-4aea-bff4-6b3f1c5adfb4",
                "credentials_uuid": "021aff51-0382-4aea-bff4-6b3f1c5adfb4",
                "status_uuid": "021aff52-0382-4aea-bff4-6b3f1c5adfb4",
                "scan_timeout_seconds": 5,
                "connect_timeout_seconds": 8
            }
        },
        "provisioning": {
            "device_prefix": "Smarty",
            "discovery_attempts": 3,
            "discovery_retry_delay_seconds": 1.0,
            "retry_on_empty": True,
            "connect_timeout_seconds": 10,
            "wifi_scan_timeout_seconds": 10,
            "wifi_scan_pre_delay_seconds": 2.0,
            "provision_timeout_seconds": 30
        },
        "security": {
            "level": 1,
            "pop": "abcd1234",
            "username": "user"
        },
        "api": {
            "host": "0.0.0.0",
            "port": 8000
        },
        "logging": {
            "level": "INFO",
            "file": "logs/provisioning_server.log",
            "console_output": True,
            "timezone": "UTC"
        }
    }
