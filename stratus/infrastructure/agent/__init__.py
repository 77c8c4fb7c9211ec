"""
Stratus Agent Infrastructure

Architectural Intent:
- Cluster registry adapters tracking the agents that joined the cluster
"""

from stratus.infrastructure.agent.agent_registry import (
    AgentRecord,
    InMemoryClusterRegistry,
)

__all__ = [
    "AgentRecord",
    "InMemoryClusterRegistry",
]
