"""
EC2 Provisioning Driver

Architectural Intent:
- Implements ProvisioningDriverPort for AWS EC2
- Talks to an EC2 client with the boto3 call shape (run_instances,
  terminate_instances, describe_instances); the bundled SimulatedEC2Client
  keeps machines in memory so the full lifecycle runs without credentials

Design Decisions:
- Context aware: the client for a region lives in the shared DriverContext,
  so every EC2Driver in the process sees the machines started by any other
- bind_config reads image (AMI), hardware (instance type) and region from the
  bound template
- destroy_node accepts either the private or the public address
"""

import logging
import threading
import uuid
from datetime import datetime, UTC
from typing import Optional

from stratus.domain.entities.cloud import CloudDescriptor, CloudTemplate
from stratus.domain.errors import CloudProvisioningError
from stratus.domain.ports.provisioning_driver_port import (
    DriverContext,
    ProvisioningDriverPort,
)
from stratus.domain.value_objects.node import NodeDetails

logger = logging.getLogger(__name__)

RUNNING = {"Code": 16, "Name": "running"}
SHUTTING_DOWN = {"Code": 32, "Name": "shutting-down"}


class SimulatedEC2Client:
    """In-memory stand-in for boto3.client("ec2") in one region.

    Addresses are handed out sequentially: 10.0.x.y privately, 54.160.x.y
    publicly.
    """

    def __init__(self, region: str) -> None:
        self.region = region
        self._lock = threading.Lock()
        self._instances: dict[str, dict] = {}
        self._launched = 0

    def run_instances(
        self,
        ImageId: str,
        InstanceType: str,
        MinCount: int = 1,
        MaxCount: int = 1,
        KeyName: Optional[str] = None,
        AssignPublicIp: bool = True,
        TagSpecifications: Optional[list] = None,
    ) -> dict:
        with self._lock:
            index = self._launched
            self._launched += 1
            octets = f"{(index // 254) % 256}.{index % 254 + 1}"
            instance = {
                "InstanceId": "i-" + uuid.uuid4().hex[:17],
                "ImageId": ImageId,
                "InstanceType": InstanceType,
                "KeyName": KeyName,
                "State": dict(RUNNING),
                "PrivateIpAddress": f"10.0.{octets}",
                "PublicIpAddress": f"54.160.{octets}" if AssignPublicIp else None,
                "LaunchTime": datetime.now(UTC).isoformat(),
                "Placement": {"AvailabilityZone": f"{self.region}a"},
                "Tags": [
                    tag
                    for spec in TagSpecifications or []
                    for tag in spec.get("Tags", [])
                ],
            }
            self._instances[instance["InstanceId"]] = instance
        return {"Instances": [dict(instance)], "ResponseMetadata": {"HTTPStatusCode": 200}}

    def terminate_instances(self, InstanceIds: list[str]) -> dict:
        terminating = []
        with self._lock:
            for instance_id in InstanceIds:
                instance = self._instances.pop(instance_id, None)
                if instance is None:
                    continue
                terminating.append(
                    {
                        "InstanceId": instance_id,
                        "PreviousState": instance["State"],
                        "CurrentState": dict(SHUTTING_DOWN),
                    }
                )
        return {"TerminatingInstances": terminating}

    def describe_instances(self) -> dict:
        with self._lock:
            instances = [dict(i) for i in self._instances.values()]
        return {"Reservations": [{"Instances": instances}] if instances else []}


class EC2Driver(ProvisioningDriverPort):
    """
    AWS EC2 provisioning driver.

    Constructor parameters
    ----------------------
    region : str
        Default AWS region; a template option "region" overrides it.
    default_ami, default_instance_type : str
        Used when the template has no image_id / hardware_id.
    key_name : str | None
        EC2 key pair injected into new instances for SSH access.
    ssh_user : str
        Username reported in NodeDetails.
    assign_public_ip : bool
        Whether new instances get a public address.
    agent_preinstalled : bool
        Report agent_running=True for images that start the agent on boot.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        default_ami: str = "ami-0abcdef1234567890",
        default_instance_type: str = "t3.micro",
        key_name: Optional[str] = None,
        ssh_user: str = "ec2-user",
        assign_public_ip: bool = True,
        agent_preinstalled: bool = False,
    ) -> None:
        self.region = region
        self.default_ami = default_ami
        self.default_instance_type = default_instance_type
        self.key_name = key_name
        self.ssh_user = ssh_user
        self.assign_public_ip = assign_public_ip
        self.agent_preinstalled = agent_preinstalled

        self._context: Optional[DriverContext] = None
        self._own_clients: dict[str, SimulatedEC2Client] = {}
        self._template: Optional[CloudTemplate] = None
        self._name_prefix = "stratus-agent-"

    def set_driver_context(self, context: DriverContext) -> None:
        self._context = context

    @property
    def client(self) -> SimulatedEC2Client:
        """EC2 client for the bound region, shared through the driver context."""
        region = self.region
        if self._context is not None:
            return self._context.get_or_create(
                f"ec2-client:{region}", lambda: SimulatedEC2Client(region)
            )
        if region not in self._own_clients:
            self._own_clients[region] = SimulatedEC2Client(region)
        return self._own_clients[region]

    # ------------------------------------------------------------------
    # ProvisioningDriverPort
    # ------------------------------------------------------------------

    def bind_config(
        self, cloud: CloudDescriptor, template_name: str, management: bool = False
    ) -> None:
        template = cloud.get_template(template_name)
        if template is None:
            raise CloudProvisioningError(
                f"Template {template_name!r} not found in cloud {cloud.name!r}"
            )
        self._template = template
        self._name_prefix = cloud.provider.machine_name_prefix
        self.region = template.options.get("region", self.region)
        logger.debug(
            "Bound to template %s: region=%s ami=%s type=%s",
            template_name,
            self.region,
            template.image_id or self.default_ami,
            template.hardware_id or self.default_instance_type,
        )

    def create_node(self, timeout: float) -> NodeDetails:
        if self._template is None:
            raise CloudProvisioningError("EC2Driver used before bind_config")
        if timeout <= 0:
            raise CloudProvisioningError(f"Invalid timeout for create_node: {timeout}")

        image_id = self._template.image_id or self.default_ami
        instance_type = self._template.hardware_id or self.default_instance_type
        client = self.client
        name = f"{self._name_prefix}{uuid.uuid4().hex[:8]}"

        response = client.run_instances(
            ImageId=image_id,
            InstanceType=instance_type,
            MinCount=1,
            MaxCount=1,
            KeyName=self.key_name,
            AssignPublicIp=self.assign_public_ip,
            TagSpecifications=[
                {
                    "ResourceType": "instance",
                    "Tags": [
                        {"Key": "Name", "Value": name},
                        {"Key": "ManagedBy", "Value": "stratus"},
                    ],
                }
            ],
        )
        instances = response.get("Instances") or []
        if not instances:
            raise CloudProvisioningError(f"run_instances returned no instance: {response}")
        instance = instances[0]

        logger.info(
            "Started EC2 instance %s (%s, %s) at %s",
            instance["InstanceId"],
            instance_type,
            self.region,
            instance["PrivateIpAddress"],
        )
        return NodeDetails(
            public_address=instance.get("PublicIpAddress"),
            private_address=instance["PrivateIpAddress"],
            agent_running=self.agent_preinstalled,
            machine_id=instance["InstanceId"],
            username=self.ssh_user,
            metadata={
                "provider": "aws",
                "region": self.region,
                "instance_type": instance_type,
                "image_id": image_id,
                "name": name,
            },
        )

    def destroy_node(self, address: str, timeout: float) -> bool:
        if timeout <= 0:
            raise CloudProvisioningError(f"Invalid timeout for destroy_node: {timeout}")

        instance_id = self._find_instance_id(address)
        if instance_id is None:
            logger.warning("No EC2 instance found with address %s", address)
            return False

        response = self.client.terminate_instances(InstanceIds=[instance_id])
        for change in response.get("TerminatingInstances", []):
            if change["InstanceId"] == instance_id:
                logger.info(
                    "EC2 instance %s at %s is %s",
                    instance_id,
                    address,
                    change["CurrentState"]["Name"],
                )
                return change["CurrentState"]["Name"] in ("shutting-down", "terminated")

        logger.error("Termination of instance %s was not acknowledged: %s", instance_id, response)
        return False

    def close(self) -> None:
        logger.debug("EC2Driver closed (region=%s)", self.region)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _instances(self) -> list[dict]:
        reservations = self.client.describe_instances().get("Reservations", [])
        return [i for r in reservations for i in r.get("Instances", [])]

    def running_addresses(self) -> list[str]:
        """Private addresses of the instances in the bound region."""
        return [i["PrivateIpAddress"] for i in self._instances()]

    def _find_instance_id(self, address: str) -> Optional[str]:
        for instance in self._instances():
            if address in (instance["PrivateIpAddress"], instance.get("PublicIpAddress")):
                return instance["InstanceId"]
        return None
