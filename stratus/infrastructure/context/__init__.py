"""
Process-scoped shared state

Architectural Intent:
- Caches that must exist exactly once per process
- Created by the composition root and injected into every orchestrator
"""

from stratus.infrastructure.context.driver_context import (
    DefaultDriverContext,
    DriverContextRegistry,
    driver_identity,
)
from stratus.infrastructure.context.registry_handle_cache import RegistryHandleCache

__all__ = [
    "DefaultDriverContext",
    "DriverContextRegistry",
    "RegistryHandleCache",
    "driver_identity",
]
