"""
Composition Root

Architectural Intent:
- Dependency injection composition root for the Stratus application
- Single place where the process-wide caches, adapters and use cases are
  wired together
- One ProvisioningContainer per process: it owns the only
  DriverContextRegistry and RegistryHandleCache, so every orchestrator it
  creates shares them

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Registry factory and installer are injectable for tests and embedding
"""

from dataclasses import dataclass
from typing import Callable, Optional

from stratus.application.orchestration.machine_lifecycle import (
    MachineLifecycleOrchestrator,
)
from stratus.application.use_cases.bind_orchestrator import BindOrchestrator
from stratus.domain.ports.cluster_registry_port import RegistryFactory
from stratus.domain.ports.installer_port import InstallerPort
from stratus.domain.ports.provisioning_driver_port import ProvisioningDriverPort
from stratus.infrastructure.adapters.fabric_installer import FabricInstaller
from stratus.infrastructure.agent.agent_registry import InMemoryClusterRegistry
from stratus.infrastructure.config import StratusConfig
from stratus.infrastructure.context import DriverContextRegistry, RegistryHandleCache
from stratus.infrastructure.driver_loader import create_driver
from stratus.infrastructure.telemetry import ProvisioningTelemetry, create_telemetry


@dataclass
class ProvisioningContainer:
    """DI container holding all wired dependencies."""

    config: StratusConfig
    driver_contexts: DriverContextRegistry
    registry_handles: RegistryHandleCache
    installer: InstallerPort
    telemetry: ProvisioningTelemetry
    bind_orchestrator: BindOrchestrator

    def create_orchestrator(
        self,
        template_name: Optional[str] = None,
        zones: Optional[tuple[str, ...]] = None,
    ) -> MachineLifecycleOrchestrator:
        """Bind an orchestrator for the configured (or given) template."""
        settings = self.config.provisioning
        return self.bind_orchestrator.execute(
            cloud=self.config.cloud,
            template_name=template_name or settings.template_name,
            zones=settings.zones if zones is None else zones,
            seed=settings.discovery_seed(),
            poll_interval=self.config.timeouts.poll_interval_seconds,
            cleanup_timeout=self.config.timeouts.cleanup_timeout_minutes * 60,
        )


def create_container(
    config: StratusConfig,
    registry_factory: RegistryFactory = InMemoryClusterRegistry,
    installer: Optional[InstallerPort] = None,
    driver_factory: Callable[[str], ProvisioningDriverPort] = create_driver,
    windows: Optional[bool] = None,
) -> ProvisioningContainer:
    """Create and wire all dependencies."""
    driver_contexts = DriverContextRegistry()
    registry_handles = RegistryHandleCache(registry_factory)
    installer = installer or FabricInstaller()
    telemetry = create_telemetry(
        endpoint=config.telemetry.endpoint,
        insecure=config.telemetry.insecure,
    )

    bind = BindOrchestrator(
        driver_contexts=driver_contexts,
        registry_handles=registry_handles,
        driver_factory=driver_factory,
        installer=installer,
        telemetry=telemetry,
        windows=windows,
    )

    return ProvisioningContainer(
        config=config,
        driver_contexts=driver_contexts,
        registry_handles=registry_handles,
        installer=installer,
        telemetry=telemetry,
        bind_orchestrator=bind,
    )
