"""
Configuration Module

Architectural Intent:
- One JSON document describes the cloud (provider, driver, templates) and how
  this process provisions from it (template, zones, discovery, timeouts)
- Missing file or missing sections fall back to defaults
- STRATUS_<SECTION>_<FIELD> environment variables win over the file

Design Decisions:
- Every section is a frozen dataclass; the "cloud" section becomes a
  CloudDescriptor with templates keyed by name under cloud.templates
- Values are coerced from the annotation text (this module and the cloud
  entities use postponed annotations), so env strings and JSON lists land
  as the declared types
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional
import json
import logging
import os

from stratus.domain.entities.cloud import (
    CloudConfiguration,
    CloudDescriptor,
    CloudProvider,
    CloudTemplate,
)
from stratus.domain.value_objects.discovery import DiscoverySeed

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "stratus.json"

# sections that can be overridden from the environment
_ENV_SECTIONS = ("provisioning", "timeouts", "telemetry")

_TRUE = ("true", "1", "yes", "on")


@dataclass(frozen=True)
class ProvisioningSettings:
    """Which template to provision and how new agents join the cluster."""
    template_name: str = ""
    zones: tuple[str, ...] = ()
    lookup_groups: tuple[str, ...] = ()
    lookup_locators: tuple[str, ...] = ()

    def discovery_seed(self) -> DiscoverySeed:
        return DiscoverySeed.from_strings(self.lookup_groups, self.lookup_locators)


@dataclass(frozen=True)
class TimeoutConfig:
    poll_interval_seconds: float = 1.0
    cleanup_timeout_minutes: float = 5


@dataclass(frozen=True)
class TelemetryConfig:
    """OTLP endpoint; empty disables export."""
    endpoint: str = ""
    insecure: bool = False


@dataclass(frozen=True)
class StratusConfig:
    cloud: CloudDescriptor = field(
        default_factory=lambda: CloudDescriptor(name="default")
    )
    provisioning: ProvisioningSettings = field(default_factory=ProvisioningSettings)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    log_level: str = "WARNING"


def _read_json(path: Path) -> dict:
    try:
        text = path.read_text()
    except FileNotFoundError:
        logger.debug("No config file at %s, using defaults", path)
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring unparseable config file %s: %s", path, e)
        return {}


def _apply_env(data: dict, prefix: str) -> dict:
    """Fold STRATUS_SECTION_FIELD variables into the parsed document.

    STRATUS_PROVISIONING_ZONES=web,db sets provisioning.zones;
    STRATUS_LOG_LEVEL sets log_level. Other variables are ignored.
    """
    marker = f"{prefix}_"
    for name, value in os.environ.items():
        if not name.startswith(marker):
            continue
        key = name[len(marker):].lower()
        if key == "log_level":
            data["log_level"] = value
            continue
        section, _, field_name = key.partition("_")
        if section in _ENV_SECTIONS and field_name:
            overrides = data.get(section)
            if not isinstance(overrides, dict):
                overrides = data[section] = {}
            overrides[field_name] = value
    return data


def _coerce(type_name: str, value: Any) -> Any:
    if type_name == "tuple[str, ...]":
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return tuple(value)
    if not isinstance(value, str):
        return value
    if type_name == "int":
        return int(value)
    if type_name == "float":
        return float(value)
    if type_name == "bool":
        return value.strip().lower() in _TRUE
    return value


def _section(cls, data: Optional[dict]):
    """Instantiate a section dataclass, dropping keys it does not declare."""
    data = data or {}
    kwargs = {
        f.name: _coerce(f.type, data[f.name]) for f in fields(cls) if f.name in data
    }
    unknown = set(data) - set(kwargs)
    if unknown:
        logger.debug("Ignoring unknown %s keys: %s", cls.__name__, sorted(unknown))
    return cls(**kwargs)


def parse_cloud(data: dict[str, Any]) -> CloudDescriptor:
    """Build a CloudDescriptor from the "cloud" section of a config file."""
    return CloudDescriptor(
        name=data.get("name", "default"),
        configuration=_section(CloudConfiguration, data.get("configuration")),
        provider=_section(CloudProvider, data.get("provider")),
        templates={
            name: _section(CloudTemplate, spec)
            for name, spec in data.get("templates", {}).items()
        },
    )


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "STRATUS",
) -> StratusConfig:
    """Load configuration from a JSON file and the environment.

    Environment variables beat file values, which beat defaults.

    Args:
        path: JSON config file. Defaults to stratus.json in the working directory.
        env_prefix: Prefix of overriding environment variables.
    """
    data = _apply_env(_read_json(Path(path or DEFAULT_CONFIG_FILE)), env_prefix)

    return StratusConfig(
        cloud=parse_cloud(data.get("cloud", {})),
        provisioning=_section(ProvisioningSettings, data.get("provisioning")),
        timeouts=_section(TimeoutConfig, data.get("timeouts")),
        telemetry=_section(TelemetryConfig, data.get("telemetry")),
        log_level=data.get("log_level", "WARNING"),
    )
