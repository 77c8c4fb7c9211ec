"""
NodeDetails Value Object

Architectural Intent:
- Immutable description of a machine returned by a provisioning driver
- Carries both addresses; the cloud configuration decides which one the
  cluster uses (see select_address)
- Hostname validation (DNS, IPv4, IPv6) is shared with discovery locators
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

# RFC 1123 hostname: labels of alnum/hyphens, dot-separated
_HOSTNAME_RE = re.compile(
    r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.[A-Za-z0-9-]{1,63})*$"
)

# Simple IPv4 pattern
_IPV4_RE = re.compile(
    r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$"
)

# IPv6 pattern (simplified, accepts common forms including ::1, fe80::1, etc.)
_IPV6_RE = re.compile(r"^[0-9a-fA-F:]+$")


def is_valid_hostname(host: str) -> bool:
    """Validate hostname as DNS name, IPv4, or IPv6."""
    if not host:
        return False

    m = _IPV4_RE.match(host)
    if m:
        return all(0 <= int(g) <= 255 for g in m.groups())

    if _IPV6_RE.match(host) and ":" in host:
        return True

    if _HOSTNAME_RE.match(host) and len(host) <= 253:
        return True

    return False


@dataclass(frozen=True)
class NodeDetails:
    """
    Value Object describing a freshly provisioned machine.
    """
    public_address: Optional[str] = None
    private_address: Optional[str] = None
    agent_running: bool = False
    machine_id: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    key_file: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for address in (self.public_address, self.private_address):
            if address and not is_valid_hostname(address):
                raise ValueError(f"Invalid node address: {address!r}")
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def select_address(self, connect_to_private_ip: bool) -> Optional[str]:
        """Return the address the cluster should use for this node."""
        if connect_to_private_ip:
            return self.private_address
        return self.public_address

    def __str__(self) -> str:
        return (
            f"NodeDetails(id={self.machine_id}, public={self.public_address}, "
            f"private={self.private_address}, agent_running={self.agent_running})"
        )
