"""
Pytest configuration and shared fixtures for all tests.
"""

import io
import logging
import sys
from pathlib import Path
from typing import Callable, List

import pytest

# Add src directory to Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from psi.core.engine import TestEngine
from psi.core.registry import TestRegistry
from psi.handlers.error_handler import ErrorHandler
from psi.handlers.logging_handler import LoggingHandler
from psi.utils.config_manager import RunConfig
from psi.utils.console import Console


@pytest.fixture(scope="session")
def test_logger() -> logging.Logger:
    """Create a test logger with appropriate configuration."""
    log_handler = LoggingHandler("DEBUG")
    return log_handler.setup_logging()


@pytest.fixture
def registry() -> TestRegistry:
    """Fresh, empty registry independent of the process-wide one."""
    return TestRegistry()


@pytest.fixture
def output() -> io.StringIO:
    """Captured report output."""
    return io.StringIO()


@pytest.fixture
def console(output: io.StringIO) -> Console:
    """Colourless console writing into ``output``."""
    return Console(output, color=False)


@pytest.fixture
def error_handler(output: io.StringIO) -> ErrorHandler:
    return ErrorHandler(stream=output)


@pytest.fixture
def make_engine(registry: TestRegistry, console: Console, error_handler: ErrorHandler) -> Callable[..., TestEngine]:
    """
    Factory building an engine over the fixture registry.

    Keyword arguments are passed to ``RunConfig``.
    """
    def factory(**config_values) -> TestEngine:
        config_values.setdefault('color', False)
        return TestEngine(
            registry=registry,
            config=RunConfig(**config_values),
            console=console,
            error_handler=error_handler,
        )

    return factory


@pytest.fixture
def call_log() -> List[str]:
    """Names of test bodies in the order they were invoked."""
    return []


@pytest.fixture
def sample_registry(registry: TestRegistry, call_log: List[str]) -> TestRegistry:
    """Registry holding A.one, A.two and B.one, all passing."""
    for name in ("A.one", "A.two", "B.one"):
        registry.register(name, lambda name=name: call_log.append(name))
    return registry
