"""
Installation DTOs

Architectural Intent:
- Builds the InstallationRequest handed to an installer from the node the
  driver returned and the bound template
- Input validation at the application boundary
"""

import os
from typing import Optional, Sequence

from stratus.domain.entities.cloud import CloudTemplate
from stratus.domain.value_objects.installation import InstallationRequest
from stratus.domain.value_objects.node import NodeDetails

AGENT_MODE = "agent"


def _resolve_key_file(
    key_file: Optional[str], local_directory: str
) -> Optional[str]:
    if not key_file:
        return None
    path = key_file
    if not os.path.isabs(path):
        path = os.path.join(local_directory, path)
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Could not find key file: {path}")
    return path


def build_installation_request(
    node: NodeDetails,
    address: str,
    template: CloudTemplate,
    zones: Sequence[str],
    locators: str,
    management: bool = False,
) -> InstallationRequest:
    """Combine node, template and discovery settings into one request.

    Credentials returned by the driver take precedence over the template's.
    Raises FileNotFoundError when the key file does not exist.
    """
    key_file = _resolve_key_file(
        node.key_file or template.key_file, template.local_directory
    )
    environment = {
        "STRATUS_AGENT_MODE": "management" if management else AGENT_MODE,
        "STRATUS_MACHINE_ADDRESS": address,
        "STRATUS_MACHINE_ZONES": ",".join(zones),
        "STRATUS_LOOKUP_LOCATORS": locators,
        "STRATUS_WORKING_DIRECTORY": template.remote_directory,
    }
    if node.machine_id:
        environment["STRATUS_MACHINE_ID"] = node.machine_id

    return InstallationRequest(
        node=node,
        address=address,
        username=node.username or template.username,
        password=node.password or template.password,
        key_file=key_file,
        local_directory=template.local_directory,
        remote_directory=template.remote_directory,
        bootstrap_script=template.bootstrap_script,
        zones=tuple(zones),
        locators=locators,
        management=management,
        environment=environment,
    )
