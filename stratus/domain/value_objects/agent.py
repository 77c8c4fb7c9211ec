from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AgentHandle:
    """A management agent discovered through the cluster registry."""
    uid: str
    host_address: str
    host_name: Optional[str] = None
    zones: tuple[str, ...] = ()

    def __str__(self) -> str:
        return f"Agent[{self.uid}]@{self.host_address}"
