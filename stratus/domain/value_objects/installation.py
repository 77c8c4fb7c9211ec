"""
InstallationRequest Value Object

Architectural Intent:
- Everything an installer needs to push and start the management agent on
  one machine
- Built once per start attempt and never mutated
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from stratus.domain.value_objects.node import NodeDetails


@dataclass(frozen=True)
class InstallationRequest:
    node: NodeDetails
    address: str
    username: str
    local_directory: str
    remote_directory: str
    bootstrap_script: str
    password: Optional[str] = field(default=None, repr=False)
    key_file: Optional[str] = None
    zones: tuple[str, ...] = ()
    locators: str = ""
    management: bool = False
    environment: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.address:
            raise ValueError("Installation address cannot be empty")
        if not self.username:
            raise ValueError("Installation username cannot be empty")
        if not self.remote_directory:
            raise ValueError("Remote directory cannot be empty")
        object.__setattr__(
            self, "environment", MappingProxyType(dict(self.environment))
        )
