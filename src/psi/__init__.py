"""
Psi, a minimal unit-testing engine.

Tests register themselves with the ``test`` and ``test_fixture`` decorators
and call the ``check_*`` / ``require_*`` assertions. A failed check marks the
test failed and lets it continue; a failed require ends the test at once.
"""

from .core.assertions import (
    check,
    check_buf_eq,
    check_buf_ne,
    check_eq,
    check_false,
    check_ge,
    check_gt,
    check_le,
    check_lt,
    check_ne,
    check_not_null,
    check_null,
    check_streq,
    check_strne,
    check_substreq,
    check_substrne,
    check_true,
    require,
    require_buf_eq,
    require_buf_ne,
    require_eq,
    require_false,
    require_ge,
    require_gt,
    require_le,
    require_lt,
    require_ne,
    require_not_null,
    require_null,
    require_streq,
    require_strne,
    require_substreq,
    require_substrne,
    require_true,
    warn,
)
from .core.engine import EnginePhase, RunStatistics, TestEngine, TestRecord
from .core.matcher import matches
from .core.registry import Fixture, TestRegistry, get_registry, test, test_fixture
from .cli import main

__version__ = "1.0.0"

__all__ = [
    "check", "check_buf_eq", "check_buf_ne", "check_eq", "check_false", "check_ge",
    "check_gt", "check_le", "check_lt", "check_ne", "check_not_null", "check_null",
    "check_streq", "check_strne", "check_substreq", "check_substrne", "check_true",
    "require", "require_buf_eq", "require_buf_ne", "require_eq", "require_false",
    "require_ge", "require_gt", "require_le", "require_lt", "require_ne",
    "require_not_null", "require_null", "require_streq", "require_strne",
    "require_substreq", "require_substrne", "require_true", "warn",
    "EnginePhase", "RunStatistics", "TestEngine", "TestRecord",
    "matches",
    "Fixture", "TestRegistry", "get_registry", "test", "test_fixture",
    "main",
]
