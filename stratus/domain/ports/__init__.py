"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the lifecycle needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from stratus.domain.ports.cluster_registry_port import (
    ClusterRegistryPort,
    RegistryFactory,
)
from stratus.domain.ports.installer_port import InstallerPort
from stratus.domain.ports.provisioning_driver_port import (
    DriverContext,
    DriverContextAware,
    ProvisioningDriverPort,
)

__all__ = [
    "ClusterRegistryPort",
    "DriverContext",
    "DriverContextAware",
    "InstallerPort",
    "ProvisioningDriverPort",
    "RegistryFactory",
]
