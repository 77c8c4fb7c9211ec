"""Global test configuration.

Fakes for the provisioning driver, installer and clock shared by the
application, infrastructure and integration tests.
"""

from typing import Callable, Optional

import pytest

from stratus.application.orchestration.machine_lifecycle import (
    MachineLifecycleOrchestrator,
)
from stratus.domain.entities.cloud import (
    CloudConfiguration,
    CloudDescriptor,
    CloudProvider,
    CloudTemplate,
)
from stratus.domain.errors import CloudProvisioningError
from stratus.domain.ports.installer_port import InstallerPort
from stratus.domain.ports.provisioning_driver_port import ProvisioningDriverPort
from stratus.domain.value_objects.installation import InstallationRequest
from stratus.domain.value_objects.node import NodeDetails
from stratus.infrastructure.agent.agent_registry import InMemoryClusterRegistry


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingDriver(ProvisioningDriverPort):
    def __init__(
        self,
        node: Optional[NodeDetails] = None,
        create_error: Optional[Exception] = None,
        destroy_result: bool = True,
        destroy_error: Optional[Exception] = None,
        on_create: Optional[Callable[[], None]] = None,
    ) -> None:
        self.node = node or NodeDetails(
            public_address="54.0.0.10", private_address="10.0.0.10", machine_id="m-1"
        )
        self.create_error = create_error
        self.destroy_result = destroy_result
        self.destroy_error = destroy_error
        self.on_create = on_create
        self.create_calls: list[float] = []
        self.destroy_calls: list[tuple[str, float]] = []
        self.bound: Optional[tuple[str, str, bool]] = None
        self.closed = False

    def bind_config(self, cloud, template_name, management=False):
        self.bound = (cloud.name, template_name, management)

    def create_node(self, timeout):
        self.create_calls.append(timeout)
        if self.on_create:
            self.on_create()
        if self.create_error:
            raise self.create_error
        return self.node

    def destroy_node(self, address, timeout):
        self.destroy_calls.append((address, timeout))
        if self.destroy_error:
            raise self.destroy_error
        return self.destroy_result

    def close(self):
        self.closed = True


class RecordingInstaller(InstallerPort):
    def __init__(
        self,
        error: Optional[Exception] = None,
        on_install: Optional[Callable[[InstallationRequest], None]] = None,
    ) -> None:
        self.error = error
        self.on_install = on_install
        self.calls: list[tuple[InstallationRequest, float]] = []

    def install(self, request, timeout):
        self.calls.append((request, timeout))
        if self.on_install:
            self.on_install(request)
        if self.error:
            raise self.error


class UnbindableDriver(RecordingDriver):
    def bind_config(self, cloud, template_name, management=False):
        raise CloudProvisioningError("bad credentials")


def make_cloud(connect_to_private_ip: bool = True, **template_overrides) -> CloudDescriptor:
    template = dict(
        machine_memory_mb=2048,
        number_of_cores=2,
        image_id="ami-test",
        hardware_id="m5.large",
        remote_directory="/opt/stratus",
        local_directory="/opt/stratus",
        username="ubuntu",
    )
    template.update(template_overrides)
    return CloudDescriptor(
        name="test-cloud",
        configuration=CloudConfiguration(
            driver_class="stratus.infrastructure.adapters.ec2_driver:EC2Driver",
            connect_to_private_ip=connect_to_private_ip,
        ),
        provider=CloudProvider(provider="aws", ssh_logging_level="WARNING"),
        templates={"small": CloudTemplate(**template)},
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return InMemoryClusterRegistry()


@pytest.fixture
def cloud():
    return make_cloud()


@pytest.fixture
def make_orchestrator(clock, registry, cloud):
    """Build an orchestrator around fakes; sleeping advances the fake clock."""

    def _make(
        driver: Optional[ProvisioningDriverPort] = None,
        installer: Optional[InstallerPort] = None,
        **kwargs,
    ) -> MachineLifecycleOrchestrator:
        params = dict(
            cloud=cloud,
            template_name="small",
            driver=driver or RecordingDriver(),
            installer=installer or RecordingInstaller(),
            registry=registry,
            zones=("web",),
            locators="10.0.0.1:4174",
            poll_interval=1.0,
            cleanup_timeout=300,
            clock=clock,
            sleep=clock.advance,
        )
        params.update(kwargs)
        return MachineLifecycleOrchestrator(**params)

    return _make
