"""
Registry Handle Cache

Architectural Intent:
- Holds the process's single connection to the cluster registry
- Built lazily from the first caller's discovery seed and reused by every
  orchestrator, whatever cloud or template it serves

Design Decisions:
- First seed wins; the process is assumed to serve one logical cluster
- Never closed by orchestrators; the handle lives as long as the process
"""

from __future__ import annotations
import logging
import threading
from typing import Optional

from stratus.domain.ports.cluster_registry_port import (
    ClusterRegistryPort,
    RegistryFactory,
)
from stratus.domain.value_objects.discovery import DiscoverySeed

logger = logging.getLogger(__name__)


class RegistryHandleCache:

    def __init__(self, factory: RegistryFactory) -> None:
        self._factory = factory
        self._handle: Optional[ClusterRegistryPort] = None
        self._seed: Optional[DiscoverySeed] = None
        self._lock = threading.Lock()

    @property
    def seed(self) -> Optional[DiscoverySeed]:
        return self._seed

    def get_or_create(self, seed: DiscoverySeed) -> ClusterRegistryPort:
        handle = self._handle
        if handle is not None:
            if seed != self._seed:
                logger.debug(
                    "Ignoring discovery seed %s, registry already built from %s",
                    seed,
                    self._seed,
                )
            return handle

        with self._lock:
            if self._handle is None:
                logger.info(
                    "Creating cluster registry handle (groups=%s, locators=%s)",
                    ",".join(seed.groups),
                    seed.locators_string(),
                )
                handle = self._factory(seed)
                # readers that see the handle must also see its seed
                self._seed = seed
                self._handle = handle
            return self._handle
