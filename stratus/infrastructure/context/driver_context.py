"""
Driver Context Registry

Architectural Intent:
- Lets stateless driver instances share data across calls (connection pools,
  instance tables) without module-level singletons
- One DriverContext per driver class for the lifetime of the process; the
  registry itself is owned by the composition root and injected

Design Decisions:
- Double-checked locking: reads after creation take no lock, a single lock
  guards check-and-insert
- No removal: drivers may hold long-lived pooled resources in their context
"""

from __future__ import annotations
import logging
import threading
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def driver_identity(driver_type: type) -> str:
    return f"{driver_type.__module__}.{driver_type.__qualname__}"


class DefaultDriverContext:
    """Keyed store shared by every instance of one driver class."""

    def __init__(self, identity: str) -> None:
        self.identity = identity
        self._values: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get_or_create(self, key: str, factory: Callable[[], T]) -> T:
        try:
            return self._values[key]
        except KeyError:
            pass
        with self._lock:
            if key not in self._values:
                self._values[key] = factory()
            return self._values[key]

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __repr__(self) -> str:
        return f"DefaultDriverContext({self.identity!r}, keys={sorted(self._values)})"


class DriverContextRegistry:
    """Process-wide map of driver class -> DriverContext."""

    def __init__(
        self, context_factory: Callable[[str], Any] = DefaultDriverContext
    ) -> None:
        self._context_factory = context_factory
        self._contexts: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get_or_create(self, driver_type: type) -> Any:
        identity = driver_identity(driver_type)
        context = self._contexts.get(identity)
        if context is not None:
            return context

        with self._lock:
            context = self._contexts.get(identity)
            if context is None:
                context = self._context_factory(identity)
                self._contexts[identity] = context
                logger.debug("Created driver context for %s", identity)
            return context

    def __len__(self) -> int:
        return len(self._contexts)
