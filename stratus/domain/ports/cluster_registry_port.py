"""
Cluster Registry Port

Architectural Intent:
- Port interface for the cluster's discovery mechanism
- Agents register themselves once started; the lifecycle core only looks
  them up and asks them to shut down

Design Decisions:
- Uses Protocol for structural typing (no inheritance needed)
- RegistryFactory builds one registry from a discovery seed; the process
  keeps a single handle (see RegistryHandleCache)
"""

from typing import Callable, Optional, Protocol, runtime_checkable

from stratus.domain.value_objects.agent import AgentHandle
from stratus.domain.value_objects.discovery import DiscoverySeed


@runtime_checkable
class ClusterRegistryPort(Protocol):

    def find_agent_by_address(self, address: str) -> Optional[AgentHandle]:
        """Return the agent running on the host address or host name, if any."""
        ...

    def shutdown_agent(self, agent: AgentHandle) -> None:
        """Ask the agent to shut down. Raises AgentRegistryError on failure."""
        ...

    def list_agents(self) -> list[AgentHandle]:
        ...


RegistryFactory = Callable[[DiscoverySeed], ClusterRegistryPort]
