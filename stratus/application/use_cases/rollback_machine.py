"""
Rollback Machine Use Case

Architectural Intent:
- Unwinds a half-started machine after start_node failed
- Always runs to completion: shuts down any agent found on the machine,
  then destroys the machine through the driver
- Never raises; the error that triggered the rollback is what callers see
"""

import logging
from dataclasses import dataclass
from typing import Optional

from stratus.domain.ports.cluster_registry_port import ClusterRegistryPort
from stratus.domain.ports.provisioning_driver_port import ProvisioningDriverPort
from stratus.domain.value_objects.node import NodeDetails

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_TIMEOUT_SECONDS = 5 * 60


@dataclass(frozen=True)
class RollbackOutcome:
    agent_shut_down: bool
    node_destroyed: bool


class RollbackMachine:
    def __init__(
        self,
        driver: ProvisioningDriverPort,
        registry: ClusterRegistryPort,
        cleanup_timeout: float = DEFAULT_CLEANUP_TIMEOUT_SECONDS,
        log: Optional[logging.Logger] = None,
    ):
        self.driver = driver
        self.registry = registry
        self.cleanup_timeout = cleanup_timeout
        self.log = log or logger

    def execute(self, node: NodeDetails, address: Optional[str]) -> RollbackOutcome:
        agent_shut_down = self._shutdown_agent(address)

        target = address or node.private_address or node.public_address
        node_destroyed = False
        try:
            self.log.info(
                "Stopping machine %s after failed provisioning (cleanup timeout %ss)",
                target,
                self.cleanup_timeout,
            )
            node_destroyed = bool(
                self.driver.destroy_node(target, self.cleanup_timeout)
            )
            if not node_destroyed:
                self.log.warning("Driver reported machine %s was not stopped", target)
        except Exception:
            self.log.warning(
                "Machine provisioning failed. An error was encountered while "
                "trying to shut down the new machine (%s)",
                node,
                exc_info=True,
            )

        return RollbackOutcome(agent_shut_down=agent_shut_down, node_destroyed=node_destroyed)

    def _shutdown_agent(self, address: Optional[str]) -> bool:
        # An agent should not be there, we only get here after it was not
        # found or never started. Shut it down if it registered late.
        if not address or not address.strip():
            return False
        try:
            agent = self.registry.find_agent_by_address(address)
            if agent is None:
                return False
            self.log.info("Shutting down agent %s on host %s", agent, address)
            self.registry.shutdown_agent(agent)
            self.log.debug("Agent on host %s successfully shut down", address)
            return True
        except Exception:
            self.log.warning(
                "Failed to shut down agent on host %s. Continuing with shutdown of machine.",
                address,
                exc_info=True,
            )
            return False
