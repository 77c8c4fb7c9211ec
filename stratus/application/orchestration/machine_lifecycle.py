"""
Machine Lifecycle Orchestration

Architectural Intent:
- Drives one machine through driver -> installer -> registry poll
- Every blocking phase receives the time left on a single Deadline and
  fails fast once it has passed
- Any failure after the machine exists is unwound by RollbackMachine before
  the original error propagates

Phase Ordering:
- Phases run strictly in sequence; each one depends on the side effect of
  the previous one (machine exists -> agent installed -> agent discoverable)
- No threads are spawned; the only waits are the installer call and the
  pause between registry polls
"""

from __future__ import annotations
import logging
import threading
import time
from typing import Callable, Optional, Sequence

from stratus.application.dtos.installation_dtos import build_installation_request
from stratus.application.use_cases.rollback_machine import (
    DEFAULT_CLEANUP_TIMEOUT_SECONDS,
    RollbackMachine,
)
from stratus.domain.entities.cloud import CloudDescriptor, CloudTemplate
from stratus.domain.errors import (
    AgentRegistryError,
    ConfigurationError,
    FatalProvisioningError,
    InstallerError,
    MachineProvisioningError,
    ProvisioningInterrupted,
    ProvisioningTimeout,
)
from stratus.domain.ports.cluster_registry_port import ClusterRegistryPort
from stratus.domain.ports.installer_port import InstallerPort
from stratus.domain.ports.provisioning_driver_port import ProvisioningDriverPort
from stratus.domain.value_objects.agent import AgentHandle
from stratus.domain.value_objects.capacity import CapacityRequirements
from stratus.domain.value_objects.deadline import Budget, Clock, Deadline
from stratus.domain.value_objects.node import NodeDetails
from stratus.infrastructure.telemetry import ProvisioningTelemetry

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 1.0
SSH_LOGGER_NAME = "paramiko"


def _outcome_of(error: BaseException) -> str:
    if isinstance(error, ProvisioningTimeout):
        return "timeout"
    if isinstance(error, (ProvisioningInterrupted, KeyboardInterrupt)):
        return "interrupted"
    return "failed"


class MachineLifecycleOrchestrator:
    """Starts and stops machines of one cloud template."""

    def __init__(
        self,
        cloud: CloudDescriptor,
        template_name: str,
        driver: ProvisioningDriverPort,
        installer: InstallerPort,
        registry: ClusterRegistryPort,
        zones: Sequence[str] = (),
        locators: str = "",
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        cleanup_timeout: float = DEFAULT_CLEANUP_TIMEOUT_SECONDS,
        telemetry: Optional[ProvisioningTelemetry] = None,
        clock: Clock = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        log: Optional[logging.Logger] = None,
    ):
        self.cloud = cloud
        self.template_name = template_name
        self.driver = driver
        self.installer = installer
        self.registry = registry
        self.zones = tuple(zones)
        self.locators = locators
        self.poll_interval = poll_interval
        self.telemetry = telemetry
        self.log = log or logger
        self._clock = clock
        self._sleep = sleep
        self._rollback = RollbackMachine(
            driver, registry, cleanup_timeout=cleanup_timeout, log=self.log
        )

    @property
    def supports_start_node(self) -> bool:
        return True

    @property
    def template(self) -> CloudTemplate:
        template = self.cloud.get_template(self.template_name)
        if template is None:
            raise ConfigurationError(
                f"Template {self.template_name!r} was not found in cloud {self.cloud.name!r}"
            )
        return template

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    def start_node(
        self, budget: Budget, cancel_event: Optional[threading.Event] = None
    ) -> AgentHandle:
        """Provision a machine, install its agent and wait for it to join.

        Raises MachineProvisioningError, FatalProvisioningError,
        ProvisioningTimeout or ProvisioningInterrupted. The machine is torn
        down before any error raised after it was created propagates.
        """
        self.log.info("Starting a new machine from template %s", self.template_name)
        deadline = Deadline.after(budget, clock=self._clock)
        started = self._clock()
        span = self.telemetry.start_span(
            "stratus.start_node", {"template": self.template_name}
        ) if self.telemetry else None

        try:
            node = self._provision_node(deadline)
            address = node.select_address(
                self.cloud.configuration.connect_to_private_ip
            )
            try:
                agent = self._bring_up_agent(node, address, deadline, cancel_event)
            except (Exception, KeyboardInterrupt) as e:
                self.log.info(
                    "%s occurred while starting machine %s: %s",
                    type(e).__name__,
                    node,
                    e,
                )
                outcome = self._rollback.execute(node, address)
                if self.telemetry:
                    self.telemetry.record_rollback(
                        self.template_name, outcome.node_destroyed
                    )
                raise
        except (Exception, KeyboardInterrupt) as e:
            self._record_start(_outcome_of(e), started, span, e)
            raise

        self._record_start("success", started, span)
        self.log.info("Machine %s joined the cluster as %s", address, agent)
        return agent

    def _provision_node(self, deadline: Deadline) -> NodeDetails:
        timeout = deadline.remaining()
        try:
            node = self.driver.create_node(timeout)
        except Exception as e:
            self.log.warning("Failed to provision machine, reason: %s", e, exc_info=True)
            raise MachineProvisioningError(f"Failed to provision machine: {e}") from e

        if node is None:
            raise FatalProvisioningError(
                f"Provisioning driver {type(self.driver).__name__} returned None "
                "when calling create_node"
            )
        self.log.info("New machine was provisioned. Machine details: %s", node)
        return node

    def _bring_up_agent(
        self,
        node: NodeDetails,
        address: Optional[str],
        deadline: Deadline,
        cancel_event: Optional[threading.Event],
    ) -> AgentHandle:
        self._check_deadline(deadline, node)

        if node.agent_running:
            self.log.info(
                "Driver provided a machine and indicated that an agent is already running"
            )
        else:
            self._install_agent(node, self._require_address(address, node), deadline)
            # installation can use up the whole budget
            self._check_deadline(deadline, node)

        # Not handled: an image that ships the agent software without a
        # running agent gets a full installation like any other machine.

        address = self._require_address(address, node)
        self.log.info("Waiting for agent on %s to join the cluster", address)
        agent = self._wait_for_agent(address, deadline, cancel_event)
        if agent is None:
            raise ProvisioningTimeout(
                "New machine was provisioned and the agent was installed, "
                f"but no agent was discovered on the new machine: {node}"
            )
        return agent

    def _check_deadline(self, deadline: Deadline, node: NodeDetails) -> None:
        if deadline.expired:
            self.log.warning(
                "Provisioning of new machine exceeded the required timeout. "
                "Shutting down the new machine (%s)",
                node,
            )
        deadline.check("New machine provisioning exceeded the required timeout")

    @staticmethod
    def _require_address(address: Optional[str], node: NodeDetails) -> str:
        if not address or not address.strip():
            raise ConfigurationError(
                f"The address of the new machine is empty! Machine details are: {node}"
            )
        return address

    def _install_agent(
        self, node: NodeDetails, address: str, deadline: Deadline
    ) -> None:
        try:
            request = build_installation_request(
                node,
                address,
                self.template,
                zones=self.zones,
                locators=self.locators,
            )
        except FileNotFoundError as e:
            raise MachineProvisioningError(
                f"Failed to create installation details for agent: {e}"
            ) from e
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid installation details for agent on {address}: {e}"
            ) from e

        self.log.info("Installing agent on %s with installation details: %s", address, request)
        self._apply_ssh_logging_level()

        timeout = deadline.remaining()
        try:
            self.installer.install(request, timeout)
        except InstallerError as e:
            raise MachineProvisioningError(
                f"Failed to install agent on newly provisioned machine: {e}"
            ) from e

    def _apply_ssh_logging_level(self) -> None:
        level = self.cloud.provider.ssh_logging_level
        try:
            logging.getLogger(SSH_LOGGER_NAME).setLevel(level.upper())
        except ValueError:
            self.log.warning("Ignoring unknown SSH logging level %r", level)

    def _wait_for_agent(
        self,
        address: str,
        deadline: Deadline,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[AgentHandle]:
        while not deadline.expired:
            if cancel_event is not None and cancel_event.is_set():
                raise ProvisioningInterrupted(
                    f"Cancelled while waiting for agent on {address}"
                )
            agent = self.registry.find_agent_by_address(address)
            if agent is not None:
                return agent
            self._pause(
                min(self.poll_interval, max(deadline.seconds_left(), 0.0)),
                cancel_event,
                address,
            )
        return None

    def _pause(
        self,
        seconds: float,
        cancel_event: Optional[threading.Event],
        address: str,
    ) -> None:
        if cancel_event is None:
            self._sleep(seconds)
        elif cancel_event.wait(seconds):
            raise ProvisioningInterrupted(
                f"Cancelled while waiting for agent on {address}"
            )

    def _record_start(
        self,
        outcome: str,
        started: float,
        span,
        error: Optional[BaseException] = None,
    ) -> None:
        if not self.telemetry:
            return
        duration_ms = (self._clock() - started) * 1000
        self.telemetry.record_start(self.template_name, outcome, duration_ms)
        self.telemetry.end_span(span, error)

    # ------------------------------------------------------------------
    # Stop
    # ------------------------------------------------------------------

    def stop_node(self, agent: AgentHandle, budget: Budget) -> bool:
        """Shut down the agent and destroy its machine.

        Returns the driver's teardown result unchanged.
        """
        address = agent.host_address
        deadline = Deadline.after(budget, clock=self._clock)
        started = self._clock()
        # fail before touching the agent once the budget is gone
        timeout = deadline.remaining()

        self.log.debug("Shutting down agent %s on host %s", agent, address)
        try:
            self.registry.shutdown_agent(agent)
            self.log.debug("Agent on host %s successfully shut down", address)
        except Exception:
            # the machine is destroyed below regardless
            self.log.warning(
                "Failed to shut down agent on host %s. Continuing with shutdown of machine.",
                address,
                exc_info=True,
            )

        try:
            self.log.debug("Shutting down machine with address %s", address)
            result = self.driver.destroy_node(address, timeout)
        except AgentRegistryError as e:
            self._record_stop(False, started)
            raise MachineProvisioningError(
                f"Failed to shut down agent {address}: {e}"
            ) from e
        except Exception as e:
            self._record_stop(False, started)
            raise MachineProvisioningError(
                f"Attempt to shut down machine with address {address} for agent "
                f"{agent.uid} has failed with error: {e}"
            ) from e

        self.log.debug("Shutdown result of machine %s was: %s", address, result)
        self._record_stop(bool(result), started)
        return result

    def _record_stop(self, success: bool, started: float) -> None:
        if self.telemetry:
            self.telemetry.record_stop(
                self.template_name, success, (self._clock() - started) * 1000
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_single_node_capacity(self) -> CapacityRequirements:
        template = self.template
        capacity = CapacityRequirements(
            memory_mb=template.machine_memory_mb,
            cpu_cores=template.number_of_cores,
        )
        self.log.info("Capacity requirements for a single machine are: %s", capacity)
        return capacity

    def get_discovered_agents(self) -> list[AgentHandle]:
        return self.registry.list_agents()

    def close(self) -> None:
        """Close the driver. The shared registry handle stays open."""
        self.driver.close()
