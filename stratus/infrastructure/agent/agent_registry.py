"""
Agent Registry

Architectural Intent:
- In-process implementation of ClusterRegistryPort
- Agents register themselves by host address and host name once started
- Used for single-process deployments, local development and tests
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Optional
import logging
import threading
import uuid

from stratus.domain.errors import AgentRegistryError
from stratus.domain.value_objects.agent import AgentHandle
from stratus.domain.value_objects.discovery import DiscoverySeed

logger = logging.getLogger(__name__)


@dataclass
class AgentRecord:
    """Tracked state for a single agent."""
    agent: AgentHandle
    registered_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class InMemoryClusterRegistry:
    """Registry of all agents in the cluster."""

    def __init__(self, seed: Optional[DiscoverySeed] = None) -> None:
        self.seed = seed or DiscoverySeed()
        self._agents: dict[str, AgentRecord] = {}
        self._lock = threading.Lock()

    def register(
        self,
        host_address: str,
        host_name: Optional[str] = None,
        zones: tuple[str, ...] = (),
        uid: Optional[str] = None,
    ) -> AgentHandle:
        """Register an agent, replacing any agent on the same address."""
        agent = AgentHandle(
            uid=uid or uuid.uuid4().hex,
            host_address=host_address,
            host_name=host_name,
            zones=tuple(zones),
        )
        with self._lock:
            self._agents[agent.uid] = AgentRecord(agent=agent)
            for uid_, record in list(self._agents.items()):
                if uid_ != agent.uid and record.agent.host_address == host_address:
                    del self._agents[uid_]
        logger.info("Agent registered: %s", agent)
        return agent

    def find_agent_by_address(self, address: str) -> Optional[AgentHandle]:
        with self._lock:
            records = list(self._agents.values())
        for record in records:
            if record.agent.host_address == address:
                return record.agent
        for record in records:
            if record.agent.host_name == address:
                return record.agent
        return None

    def shutdown_agent(self, agent: AgentHandle) -> None:
        with self._lock:
            record = self._agents.pop(agent.uid, None)
        if record is None:
            raise AgentRegistryError(f"Agent {agent.uid} is not registered")
        logger.info("Agent shut down: %s", agent)

    def list_agents(self) -> list[AgentHandle]:
        with self._lock:
            return [r.agent for r in self._agents.values()]

    @property
    def total_count(self) -> int:
        return len(self._agents)
