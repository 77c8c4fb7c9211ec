"""
Provisioning Errors

Architectural Intent:
- Single taxonomy for every failure the lifecycle core can surface
- Collaborator errors (driver, installer, registry) are raised by adapters
  and wrapped by the orchestrator before they reach callers
- Fatal errors are never retried; timeouts and interruptions trigger rollback
"""


class StratusError(Exception):
    """Base class for all Stratus errors."""


class FatalProvisioningError(StratusError):
    """Contract violation or misconfiguration. Never retried."""


class ConfigurationError(FatalProvisioningError):
    """Missing template, empty address, or a driver that cannot be loaded."""


class MachineProvisioningError(StratusError):
    """A driver or installer step failed while starting or stopping a machine."""


class ProvisioningTimeout(StratusError, TimeoutError):
    """The lifecycle deadline passed before the current phase completed."""


class ProvisioningInterrupted(StratusError):
    """The caller cancelled a blocking wait."""


class CloudProvisioningError(StratusError):
    """Raised by provisioning drivers when a machine cannot be created or destroyed."""


class InstallerError(StratusError):
    """Raised by installers when the management agent cannot be installed."""


class AgentRegistryError(StratusError):
    """Raised by cluster registries when an agent lookup or shutdown fails."""
