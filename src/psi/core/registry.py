"""
Test registry and the decorators that populate it.

Tests register themselves at import time. Inside one module the decorators run
top to bottom, so that relative order is kept; the order in which separate
modules are imported is not relied upon anywhere.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Type

from .state import get_active_context


@dataclass(frozen=True)
class TestDescriptor:
    """A registered test body and its "Suite.Case" display name."""

    __test__ = False

    name: str
    body: Callable[[], None]

    @property
    def suite(self) -> str:
        return self.name.split('.', 1)[0]

    @property
    def case(self) -> str:
        parts = self.name.split('.', 1)
        return parts[1] if len(parts) > 1 else parts[0]


class TestRegistry:
    """Append-only, ordered collection of test descriptors"""

    __test__ = False

    def __init__(self):
        self.logger = logging.getLogger('psi.registry')
        self._entries: List[TestDescriptor] = []

    def register(self, name: str, body: Callable[[], None]) -> int:
        """
        Register a test body under a name.

        Duplicate names are accepted; both entries then match the same
        filter patterns.

        Args:
            name: Display name, conventionally "Suite.Case"
            body: Callable invoked with no arguments

        Returns:
            int: Stable index of the new entry
        """
        if not callable(body):
            raise TypeError(f"Test body for '{name}' is not callable")

        index = len(self._entries)
        self._entries.append(TestDescriptor(name=name, body=body))
        self.logger.debug(f"Registered test #{index}: {name}")
        return index

    @property
    def count(self) -> int:
        return len(self._entries)

    def get(self, index: int) -> TestDescriptor:
        return self._entries[index]

    def names(self) -> List[str]:
        """Get all registered test names in registration order"""
        return [entry.name for entry in self._entries]

    def clear(self):
        """Forget every entry. Only used to reset the default registry."""
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TestDescriptor]:
        return iter(list(self._entries))


class Fixture:
    """
    Base class for fixture tests.

    A fresh instance is created for every run of a fixture test; ``setup``
    runs before the body and ``teardown`` after it.
    """

    def setup(self):
        pass

    def teardown(self):
        pass


def _fixture_runner(fixture_class: Type[Fixture], func: Callable[[Fixture], None]) -> Callable[[], None]:
    def run_fixture_test():
        fixture = fixture_class()
        fixture.setup()
        context = get_active_context()
        if context is not None and context.state.failed:
            return
        try:
            func(fixture)
        finally:
            fixture.teardown()

    run_fixture_test.__name__ = getattr(func, '__name__', 'run_fixture_test')
    return run_fixture_test


# Global registry instance
_registry = None


def get_registry() -> TestRegistry:
    """
    Get the process-wide default registry.

    Returns:
        TestRegistry: Registry that the decorators use by default
    """
    global _registry
    if _registry is None:
        _registry = TestRegistry()
    return _registry


@contextmanager
def use_registry(registry: TestRegistry) -> Iterator[TestRegistry]:
    """
    Make ``registry`` the default registry for the duration of the block.

    Test modules imported inside the block register into it through the
    decorators. The previous default is restored on exit.
    """
    global _registry
    previous = _registry
    _registry = registry
    try:
        yield registry
    finally:
        _registry = previous


def test(suite: str, case: str, registry: Optional[TestRegistry] = None) -> Callable:
    """
    Decorator registering a function as the test "suite.case".

    The function is returned unchanged so it can still be called directly.
    """
    def decorator(func: Callable[[], None]) -> Callable[[], None]:
        target = registry if registry is not None else get_registry()
        target.register(f"{suite}.{case}", func)
        return func

    return decorator


# keeps pytest from treating the decorator as a test function
test.__test__ = False


def test_fixture(fixture_class: Type[Fixture], case: str,
                 registry: Optional[TestRegistry] = None) -> Callable:
    """
    Decorator registering a fixture test as "FixtureClass.case".

    The decorated function receives the fixture instance. If ``setup`` fails a
    check, neither the body nor ``teardown`` runs; otherwise ``teardown`` runs
    even when the body was aborted by a Require.
    """
    def decorator(func: Callable[[Fixture], None]) -> Callable[[Fixture], None]:
        target = registry if registry is not None else get_registry()
        target.register(f"{fixture_class.__name__}.{case}", _fixture_runner(fixture_class, func))
        return func

    return decorator


test_fixture.__test__ = False
