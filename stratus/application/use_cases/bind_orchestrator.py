"""
Bind Orchestrator Use Case

Architectural Intent:
- Turns a cloud description and a template name into a ready
  MachineLifecycleOrchestrator
- Fails fast with ConfigurationError on anything that would otherwise only
  break at the first start_node call
- Wires the process-wide DriverContext and registry handle into the new
  orchestrator instead of letting drivers reach for globals
"""

import logging
import os
from typing import Callable, Optional, Sequence

from stratus.application.orchestration.machine_lifecycle import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    MachineLifecycleOrchestrator,
)
from stratus.application.use_cases.rollback_machine import DEFAULT_CLEANUP_TIMEOUT_SECONDS
from stratus.domain.entities.cloud import CloudDescriptor
from stratus.domain.errors import ConfigurationError
from stratus.domain.ports.installer_port import InstallerPort
from stratus.domain.ports.provisioning_driver_port import (
    DriverContextAware,
    ProvisioningDriverPort,
)
from stratus.domain.value_objects.discovery import DiscoverySeed
from stratus.infrastructure.context import DriverContextRegistry, RegistryHandleCache
from stratus.infrastructure.logging import lifecycle_logger
from stratus.infrastructure.telemetry import ProvisioningTelemetry

logger = logging.getLogger(__name__)


class BindOrchestrator:
    def __init__(
        self,
        driver_contexts: DriverContextRegistry,
        registry_handles: RegistryHandleCache,
        driver_factory: Callable[[str], ProvisioningDriverPort],
        installer: InstallerPort,
        telemetry: Optional[ProvisioningTelemetry] = None,
        windows: Optional[bool] = None,
    ):
        self.driver_contexts = driver_contexts
        self.registry_handles = registry_handles
        self.driver_factory = driver_factory
        self.installer = installer
        self.telemetry = telemetry
        self.windows = os.name == "nt" if windows is None else windows

    def execute(
        self,
        cloud: CloudDescriptor,
        template_name: Optional[str],
        zones: Sequence[str] = (),
        seed: Optional[DiscoverySeed] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        cleanup_timeout: float = DEFAULT_CLEANUP_TIMEOUT_SECONDS,
    ) -> MachineLifecycleOrchestrator:
        log = lifecycle_logger(zones)

        if not template_name:
            raise ConfigurationError("Cloud template was not set!")
        template = cloud.get_template(template_name)
        if template is None:
            raise ConfigurationError(
                f"The provided cloud template name: {template_name} "
                "was not found in the cloud configuration"
            )

        # This code runs on a cluster machine, so the local directory is the
        # remote directory.
        log.info("Remote directory is: %s", template.remote_directory)
        template = template.with_local_directory(windows=self.windows)
        if self.windows:
            log.info("Windows machine, local directory is: %s", template.local_directory)
        cloud = cloud.with_template(template_name, template)

        driver = self._create_driver(cloud, template_name)

        seed = seed or DiscoverySeed()
        registry = self.registry_handles.get_or_create(seed)
        locators = seed.locators_string()
        log.info("Locators string used for new instances will be: %s", locators)

        return MachineLifecycleOrchestrator(
            cloud=cloud,
            template_name=template_name,
            driver=driver,
            installer=self.installer,
            registry=registry,
            zones=zones,
            locators=locators,
            poll_interval=poll_interval,
            cleanup_timeout=cleanup_timeout,
            telemetry=self.telemetry,
            log=log,
        )

    def _create_driver(
        self, cloud: CloudDescriptor, template_name: str
    ) -> ProvisioningDriverPort:
        driver_class = cloud.configuration.driver_class
        if not driver_class:
            raise ConfigurationError(
                f"No provisioning driver class configured for cloud: {cloud.name}"
            )
        driver = self.driver_factory(driver_class)

        if isinstance(driver, DriverContextAware):
            driver.set_driver_context(self.driver_contexts.get_or_create(type(driver)))

        try:
            driver.bind_config(cloud, template_name, management=False)
        except Exception as e:
            driver.close()
            raise ConfigurationError(
                f"Failed to load provisioning class for cloud: {cloud.name}: {e}"
            ) from e
        return driver
