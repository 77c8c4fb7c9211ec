"""
Cloud Descriptor Module

Architectural Intent:
- Parsed description of a cloud: provider settings, driver configuration and
  the machine templates it offers
- Produced by the configuration layer, consumed read-only by the binding
  step and the lifecycle orchestrator
- Templates are immutable; the local directory is derived with
  with_local_directory() rather than mutated in place
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class CloudTemplate:
    """A machine template: size, image and installation layout."""
    machine_memory_mb: int
    number_of_cores: float = 1
    image_id: str = ""
    hardware_id: str = ""
    remote_directory: str = "/tmp/stratus"
    local_directory: str = ""
    username: str = "root"
    password: Optional[str] = field(default=None, repr=False)
    key_file: Optional[str] = None
    bootstrap_script: str = "bootstrap-agent.sh"
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.machine_memory_mb <= 0:
            raise ValueError(
                f"machine_memory_mb must be positive, got {self.machine_memory_mb}"
            )
        if self.number_of_cores <= 0:
            raise ValueError(
                f"number_of_cores must be positive, got {self.number_of_cores}"
            )
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    def with_local_directory(self, windows: bool = False) -> "CloudTemplate":
        """Return a copy whose local directory mirrors the remote directory.

        The provisioning process runs on a cluster machine, so the remote
        layout is also the local one. On Windows, '$' is stripped and a
        '/c/...' style path is turned into 'c:/...'.
        """
        local = self.remote_directory
        if windows:
            local = local.replace("$", "")
            if local.startswith("/"):
                local = local[1:]
            if len(local) > 1 and local[1] == "/":
                local = local[0] + ":" + local[1:]
        return replace(self, local_directory=local)


@dataclass(frozen=True)
class CloudProvider:
    """Provider level settings shared by all templates."""
    provider: str = ""
    ssh_logging_level: str = "WARNING"
    machine_name_prefix: str = "stratus-agent-"


@dataclass(frozen=True)
class CloudConfiguration:
    driver_class: str = ""
    connect_to_private_ip: bool = True


@dataclass(frozen=True)
class CloudDescriptor:
    """Root of the parsed cloud description."""
    name: str
    configuration: CloudConfiguration = field(default_factory=CloudConfiguration)
    provider: CloudProvider = field(default_factory=CloudProvider)
    templates: Mapping[str, CloudTemplate] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "templates", MappingProxyType(dict(self.templates)))

    def get_template(self, name: Optional[str]) -> Optional[CloudTemplate]:
        if not name:
            return None
        return self.templates.get(name)

    def with_template(self, name: str, template: CloudTemplate) -> "CloudDescriptor":
        templates = dict(self.templates)
        templates[name] = template
        return replace(self, templates=templates)
