"""
Installer Port

Architectural Intent:
- Port interface for pushing the management agent onto a fresh machine
- Implemented by adapters (Fabric/SSH, cloud-init, etc.)
"""

from abc import ABC, abstractmethod

from stratus.domain.value_objects.installation import InstallationRequest


class InstallerPort(ABC):

    @abstractmethod
    def install(self, request: InstallationRequest, timeout: float) -> None:
        """
        Installs and starts the agent described by the request.
        Must finish within timeout seconds. Raises InstallerError on failure.
        """
        pass
