"""Tests for the process-scoped driver contexts and registry handle cache."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from stratus.domain.ports.provisioning_driver_port import DriverContext
from stratus.domain.value_objects.discovery import DiscoverySeed
from stratus.infrastructure.adapters.ec2_driver import EC2Driver
from stratus.infrastructure.agent.agent_registry import InMemoryClusterRegistry
from stratus.infrastructure.context import (
    DefaultDriverContext,
    DriverContextRegistry,
    RegistryHandleCache,
    driver_identity,
)

THREADS = 16


def _race(fn):
    """Run fn on THREADS threads released at the same moment."""
    barrier = threading.Barrier(THREADS)

    def call():
        barrier.wait()
        return fn()

    with ThreadPoolExecutor(max_workers=THREADS) as pool:
        futures = [pool.submit(call) for _ in range(THREADS)]
        return [f.result() for f in futures]


class TestDefaultDriverContext:
    def test_satisfies_protocol(self):
        assert isinstance(DefaultDriverContext("x"), DriverContext)

    def test_get_or_create_reuses_value(self):
        context = DefaultDriverContext("x")
        first = context.get_or_create("pool", list)
        assert context.get_or_create("pool", dict) is first
        assert "pool" in context

    def test_concurrent_creation_calls_factory_once(self):
        context = DefaultDriverContext("x")
        calls = []

        def factory():
            calls.append(1)
            return object()

        results = _race(lambda: context.get_or_create("pool", factory))

        assert len(calls) == 1
        assert all(r is results[0] for r in results)


class TestDriverContextRegistry:
    def test_identity(self):
        assert driver_identity(EC2Driver) == (
            "stratus.infrastructure.adapters.ec2_driver.EC2Driver"
        )

    def test_one_context_per_driver_class(self):
        registry = DriverContextRegistry()
        assert registry.get_or_create(EC2Driver) is registry.get_or_create(EC2Driver)
        assert registry.get_or_create(EC2Driver) is not registry.get_or_create(dict)
        assert len(registry) == 2

    def test_concurrent_creation(self):
        created = []

        def factory(identity):
            created.append(identity)
            return DefaultDriverContext(identity)

        registry = DriverContextRegistry(context_factory=factory)
        results = _race(lambda: registry.get_or_create(EC2Driver))

        assert len(created) == 1
        assert all(r is results[0] for r in results)


class TestRegistryHandleCache:
    def test_first_seed_wins(self):
        cache = RegistryHandleCache(InMemoryClusterRegistry)
        first_seed = DiscoverySeed.from_strings(["a"], ["10.0.0.1"])

        first = cache.get_or_create(first_seed)
        second = cache.get_or_create(DiscoverySeed.from_strings(["b"], []))

        assert first is second
        assert cache.seed == first_seed
        assert first.seed == first_seed

    def test_seed_empty_before_first_use(self):
        assert RegistryHandleCache(InMemoryClusterRegistry).seed is None

    def test_concurrent_creation_builds_one_handle(self):
        built = []

        def factory(seed):
            built.append(seed)
            return InMemoryClusterRegistry(seed)

        cache = RegistryHandleCache(factory)
        results = _race(lambda: cache.get_or_create(DiscoverySeed()))

        assert len(built) == 1
        assert all(r is results[0] for r in results)

    def test_failed_factory_publishes_nothing(self):
        def factory(seed):
            raise RuntimeError("registry unreachable")

        cache = RegistryHandleCache(factory)
        with pytest.raises(RuntimeError):
            cache.get_or_create(DiscoverySeed())

        assert cache.seed is None

    def test_same_seed_from_many_threads_is_never_ignored(self, caplog):
        seed = DiscoverySeed.from_strings(["prod"], ["10.0.0.1"])
        cache = RegistryHandleCache(InMemoryClusterRegistry)

        with caplog.at_level("DEBUG", logger="stratus.infrastructure.context"):
            _race(lambda: cache.get_or_create(seed))

        assert cache.seed == seed
        assert "Ignoring discovery seed" not in caplog.text
