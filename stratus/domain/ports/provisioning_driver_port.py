"""
Provisioning Driver Port

Architectural Intent:
- Port interface for cloud-specific machine creation and destruction
- One implementation per infrastructure provider, loaded by dotted path
- Retry and backoff policy belongs to the driver, never to the caller

Design Decisions:
- Timeouts are passed as positive seconds; callers never hand a driver a
  zero or negative timeout
- Drivers that want process-wide shared state (connection pools, instance
  tables) implement DriverContextAware and receive one DriverContext per
  driver class
"""

from abc import ABC, abstractmethod
from typing import Callable, Protocol, TypeVar, runtime_checkable

from stratus.domain.entities.cloud import CloudDescriptor
from stratus.domain.value_objects.node import NodeDetails

T = TypeVar("T")


@runtime_checkable
class DriverContext(Protocol):
    """Opaque state shared by every instance of one driver class."""

    def get_or_create(self, key: str, factory: Callable[[], T]) -> T: ...


@runtime_checkable
class DriverContextAware(Protocol):
    def set_driver_context(self, context: DriverContext) -> None: ...


class ProvisioningDriverPort(ABC):
    """
    Port interface for starting and stopping machines on a cloud.
    """

    @abstractmethod
    def bind_config(
        self, cloud: CloudDescriptor, template_name: str, management: bool = False
    ) -> None:
        """Binds the driver to a cloud description and one of its templates."""
        pass

    @abstractmethod
    def create_node(self, timeout: float) -> NodeDetails:
        """
        Starts a machine and returns its details.
        Raises CloudProvisioningError on failure.
        """
        pass

    @abstractmethod
    def destroy_node(self, address: str, timeout: float) -> bool:
        """
        Stops the machine with the given address.
        Returns True if the machine was shut down.
        """
        pass

    def close(self) -> None:
        """Releases driver resources. Shared context is left untouched."""
        pass
