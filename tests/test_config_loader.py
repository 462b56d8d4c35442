"""
Tests for configuration loading, defaults and logging setup
"""

import logging

import pytest
import yaml

from config_loader import TimezoneFormatter, get_sample_config, load_config, setup_logging
from provisioning.models import ControllerSettings, SecurityConfig


def write_config(tmp_path, data):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestLoadConfig:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_defaults_applied(self, tmp_path):
        path = write_config(tmp_path, {"transport": {"type": "simulated"}, "provisioning": {}})

        config = load_config(path)

        prov = config["provisioning"]
        assert prov["device_prefix"] == "Smarty"
        assert prov["discovery_attempts"] == 3
        assert prov["discovery_retry_delay_seconds"] == 1.0
        assert prov["connect_timeout_seconds"] == 10
        assert prov["wifi_scan_timeout_seconds"] == 10
        assert prov["wifi_scan_pre_delay_seconds"] == 2.0
        assert prov["provision_timeout_seconds"] == 30
        assert config["security"] == {"level": 1, "pop": "abcd1234", "username": "user"}
        assert config["api"]["port"] == 8000
        assert config["logging"]["timezone"] == "UTC"

    def test_explicit_values_kept(self, tmp_path):
        path = write_config(tmp_path, {
            "transport": {"type": "simulated"},
            "provisioning": {"device_prefix": "Lamp", "wifi_scan_pre_delay_seconds": 0},
        })

        config = load_config(path)

        assert config["provisioning"]["device_prefix"] == "Lamp"
        assert config["provisioning"]["wifi_scan_pre_delay_seconds"] == 0

    @pytest.mark.parametrize("missing", ["transport", "provisioning"])
    def test_missing_section(self, tmp_path, missing):
        data = {"transport": {"type": "simulated"}, "provisioning": {}}
        del data[missing]

        with pytest.raises(ValueError, match=missing):
            load_config(write_config(tmp_path, data))

    def test_unknown_transport(self, tmp_path):
        path = write_config(tmp_path, {"transport": {"type": "usb"}, "provisioning": {}})
        with pytest.raises(ValueError, match="transport.type"):
            load_config(path)

    def test_ble_transport_requires_uuids(self, tmp_path):
        path = write_config(tmp_path, {
            "transport": {"type": "ble", "ble": {"service_uuid": "abc"}},
            "provisioning": {},
        })
        with pytest.raises(ValueError, match="networks_uuid"):
            load_config(path)

    def test_invalid_security_level(self, tmp_path):
        path = write_config(tmp_path, {
            "transport": {"type": "simulated"},
            "provisioning": {},
            "security": {"level": 3},
        })
        with pytest.raises(ValueError, match="security.level"):
            load_config(path)

    @pytest.mark.parametrize("value", ["false", 0, None])
    def test_retry_on_empty_must_be_boolean(self, tmp_path, value):
        path = write_config(tmp_path, {
            "transport": {"type": "simulated"},
            "provisioning": {"retry_on_empty": value},
        })
        with pytest.raises(ValueError, match="retry_on_empty"):
            load_config(path)

    def test_sample_config_round_trips(self, tmp_path):
        config = load_config(write_config(tmp_path, get_sample_config()))
        assert config["transport"]["type"] == "simulated"


class TestControllerSettings:

    def test_from_config(self):
        settings = ControllerSettings.from_config(get_sample_config())

        assert settings.device_prefix == "Smarty"
        assert settings.discovery_attempts == 3
        assert settings.connect_timeout == 10.0
        assert settings.provision_timeout == 30.0
        assert settings.security.pop == "abcd1234"
        # username only matters for security level 2
        assert settings.security.username is None

    def test_level_two_keeps_username(self):
        config = get_sample_config()
        config["security"]["level"] = 2

        assert ControllerSettings.from_config(config).security.username == "user"

    def test_security_defaults_without_section(self):
        settings = ControllerSettings.from_config({"provisioning": {}})

        assert settings.security.level == 1
        assert settings.security.pop == "abcd1234"
        assert settings.security.username is None

    def test_level_two_username_default(self):
        security = SecurityConfig.from_config({"security": {"level": 2}})

        assert security.pop == "abcd1234"
        assert security.username == "user"

    @pytest.mark.parametrize("kwargs", [
        {"discovery_attempts": 0},
        {"retry_on_empty": "false"},
        {"discovery_retry_delay": -1},
        {"connect_timeout": 0},
        {"wifi_scan_pre_delay": -0.5},
        {"provision_timeout": -30},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ControllerSettings(**kwargs)


class TestLogging:

    def test_timezone_formatter(self):
        formatter = TimezoneFormatter("%(asctime)s %(message)s", "UTC")
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)
        record.created = 0

        assert formatter.format(record) == "1970-01-01 00:00:00 UTC hello"

    def test_setup_logging_writes_file(self, tmp_path):
        log_file = tmp_path / "logs" / "bridge.log"
        root = logging.getLogger()
        before = list(root.handlers)
        level = root.level
        try:
            setup_logging({"logging": {"level": "DEBUG", "file": str(log_file), "console_output": False}})
            logging.getLogger("provisioning.test").info("written to file")
            for handler in root.handlers:
                handler.flush()

            assert "written to file" in log_file.read_text()
        finally:
            for handler in list(root.handlers):
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()
            root.setLevel(level)
