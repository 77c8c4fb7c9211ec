"""
Application Orchestration Package

Architectural Intent:
- Contains the machine lifecycle orchestrator
- Deadline-bounded start/stop of single machines with rollback on failure
"""

from stratus.application.orchestration.machine_lifecycle import (
    MachineLifecycleOrchestrator,
    DEFAULT_POLL_INTERVAL_SECONDS,
)

__all__ = ["MachineLifecycleOrchestrator", "DEFAULT_POLL_INTERVAL_SECONDS"]
