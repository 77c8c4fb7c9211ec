"""Tests for configuration module."""

import json
import os
import pytest
from unittest.mock import patch

from stratus.domain.entities.cloud import CloudTemplate
from stratus.domain.value_objects.discovery import LookupLocator
from stratus.infrastructure.config import (
    ProvisioningSettings,
    StratusConfig,
    TelemetryConfig,
    TimeoutConfig,
    load_config,
    parse_cloud,
)

CLOUD = {
    "name": "ec2-prod",
    "configuration": {
        "driver_class": "stratus.infrastructure.adapters.ec2_driver:EC2Driver",
        "connect_to_private_ip": False,
    },
    "provider": {"provider": "aws", "ssh_logging_level": "ERROR"},
    "templates": {
        "small": {
            "machine_memory_mb": 2048,
            "number_of_cores": 2,
            "image_id": "ami-123",
            "hardware_id": "m5.large",
            "remote_directory": "/opt/stratus",
            "username": "ubuntu",
            "options": {"region": "eu-west-1"},
            "unknown_key": "ignored",
        }
    },
}


class TestDefaultConfig:
    def test_defaults(self):
        config = load_config(path="/nonexistent/stratus.json")
        assert config.log_level == "WARNING"
        assert config.cloud.name == "default"
        assert dict(config.cloud.templates) == {}
        assert config.provisioning.template_name == ""
        assert config.timeouts.poll_interval_seconds == 1.0
        assert config.timeouts.cleanup_timeout_minutes == 5
        assert config.telemetry.endpoint == ""

    def test_all_sections_present(self):
        config = load_config(path="/nonexistent/stratus.json")
        assert isinstance(config, StratusConfig)
        assert isinstance(config.provisioning, ProvisioningSettings)
        assert isinstance(config.timeouts, TimeoutConfig)
        assert isinstance(config.telemetry, TelemetryConfig)


class TestFileConfig:
    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "stratus.json"
        config_file.write_text(json.dumps({
            "log_level": "DEBUG",
            "cloud": CLOUD,
            "provisioning": {
                "template_name": "small",
                "zones": ["web", "db"],
                "lookup_groups": ["prod"],
                "lookup_locators": ["10.0.0.1", "10.0.0.2:5000"],
            },
            "timeouts": {"poll_interval_seconds": 0.5, "cleanup_timeout_minutes": 2},
        }))

        config = load_config(path=str(config_file))
        assert config.log_level == "DEBUG"
        assert config.provisioning.template_name == "small"
        assert config.provisioning.zones == ("web", "db")
        assert config.timeouts.poll_interval_seconds == 0.5
        assert config.timeouts.cleanup_timeout_minutes == 2
        assert config.cloud.configuration.connect_to_private_ip is False

    def test_partial_config(self, tmp_path):
        config_file = tmp_path / "stratus.json"
        config_file.write_text(json.dumps({"timeouts": {"poll_interval_seconds": 3}}))

        config = load_config(path=str(config_file))
        assert config.timeouts.poll_interval_seconds == 3
        assert config.timeouts.cleanup_timeout_minutes == 5  # default preserved

    def test_invalid_json_returns_defaults(self, tmp_path):
        config_file = tmp_path / "stratus.json"
        config_file.write_text("not valid json{{{")

        config = load_config(path=str(config_file))
        assert config.log_level == "WARNING"

    def test_discovery_seed(self, tmp_path):
        config_file = tmp_path / "stratus.json"
        config_file.write_text(json.dumps({
            "provisioning": {"lookup_locators": ["10.0.0.1", "10.0.0.2:5000"]},
        }))

        seed = load_config(path=str(config_file)).provisioning.discovery_seed()
        assert seed.locators == (
            LookupLocator("10.0.0.1"),
            LookupLocator("10.0.0.2", 5000),
        )


class TestParseCloud:
    def test_templates(self):
        cloud = parse_cloud(CLOUD)
        template = cloud.get_template("small")
        assert isinstance(template, CloudTemplate)
        assert template.machine_memory_mb == 2048
        assert template.number_of_cores == 2
        assert template.options["region"] == "eu-west-1"
        assert template.bootstrap_script == "bootstrap-agent.sh"

    def test_provider_and_configuration(self):
        cloud = parse_cloud(CLOUD)
        assert cloud.name == "ec2-prod"
        assert cloud.provider.ssh_logging_level == "ERROR"
        assert cloud.configuration.driver_class.endswith("EC2Driver")

    def test_string_numbers_converted(self):
        cloud = parse_cloud({
            "templates": {"t": {"machine_memory_mb": "1024", "number_of_cores": "0.5"}}
        })
        template = cloud.get_template("t")
        assert template.machine_memory_mb == 1024
        assert template.number_of_cores == 0.5

    def test_invalid_template_rejected(self):
        with pytest.raises(ValueError, match="machine_memory_mb"):
            parse_cloud({"templates": {"t": {"machine_memory_mb": 0}}})


class TestEnvOverride:
    def test_env_overrides_file(self, tmp_path):
        config_file = tmp_path / "stratus.json"
        config_file.write_text(json.dumps({"provisioning": {"template_name": "small"}}))

        with patch.dict(os.environ, {"STRATUS_PROVISIONING_TEMPLATE_NAME": "large"}):
            config = load_config(path=str(config_file))

        assert config.provisioning.template_name == "large"

    def test_env_zones_comma_separated(self):
        with patch.dict(os.environ, {"STRATUS_PROVISIONING_ZONES": "web, db"}):
            config = load_config(path="/nonexistent/stratus.json")

        assert config.provisioning.zones == ("web", "db")

    def test_env_float_conversion(self):
        with patch.dict(os.environ, {"STRATUS_TIMEOUTS_POLL_INTERVAL_SECONDS": "0.25"}):
            config = load_config(path="/nonexistent/stratus.json")

        assert config.timeouts.poll_interval_seconds == 0.25

    def test_env_bool_conversion(self):
        with patch.dict(os.environ, {"STRATUS_TELEMETRY_INSECURE": "true"}):
            config = load_config(path="/nonexistent/stratus.json")

        assert config.telemetry.insecure is True

    def test_env_log_level(self):
        with patch.dict(os.environ, {"STRATUS_LOG_LEVEL": "DEBUG"}):
            config = load_config(path="/nonexistent/stratus.json")

        assert config.log_level == "DEBUG"

    def test_custom_prefix(self):
        with patch.dict(os.environ, {"MYAPP_PROVISIONING_TEMPLATE_NAME": "edge"}):
            config = load_config(path="/nonexistent/stratus.json", env_prefix="MYAPP")

        assert config.provisioning.template_name == "edge"

    def test_agent_environment_not_mistaken_for_config(self):
        with patch.dict(os.environ, {"STRATUS_AGENT_MODE": "agent"}):
            config = load_config(path="/nonexistent/stratus.json")

        assert config.provisioning == ProvisioningSettings()


class TestConfigImmutability:
    def test_frozen(self):
        config = load_config(path="/nonexistent/stratus.json")
        with pytest.raises(AttributeError):
            config.log_level = "DEBUG"

    def test_sub_config_frozen(self):
        config = load_config(path="/nonexistent/stratus.json")
        with pytest.raises(AttributeError):
            config.timeouts.poll_interval_seconds = 9
