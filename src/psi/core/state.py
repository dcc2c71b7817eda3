"""
Per-test execution state and the run context that owns it.

The engine creates one ``RunContext`` per run and activates it for the run's
duration; assertions reach it through ``get_active_context``.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..utils.console import Console


@dataclass
class ExecutionState:
    """
    Flags of the currently executing test.

    Invariant: ``abort_requested`` implies ``failed``.
    """

    inside_test: bool = False
    failed: bool = False
    abort_requested: bool = False
    failures: List[str] = field(default_factory=list)

    def reset(self):
        """Clear the outcome flags before a test invocation."""
        self.failed = False
        self.abort_requested = False
        self.failures = []

    def mark_failed(self, message: str):
        self.failed = True
        self.failures.append(message)

    def mark_aborted(self, message: str):
        self.mark_failed(message)
        self.abort_requested = True


class RunContext:
    """Mutable state owned by the engine for one run"""

    def __init__(self, console: Console):
        self.console = console
        self.state = ExecutionState()
        self.warnings = 0
        self.current_index: Optional[int] = None
        self.current_name: Optional[str] = None

    def enter_test(self, index: int, name: str):
        self.state.reset()
        self.state.inside_test = True
        self.current_index = index
        self.current_name = name

    def leave_test(self):
        self.state.inside_test = False
        self.current_index = None
        self.current_name = None


_active_context: Optional[RunContext] = None


def get_active_context() -> Optional[RunContext]:
    """Return the context of the run in progress, or None between runs."""
    return _active_context


def activate_context(context: Optional[RunContext]) -> Optional[RunContext]:
    """
    Make ``context`` the active one.

    Returns:
        The previously active context, so nested runs can restore it
    """
    global _active_context
    previous = _active_context
    _active_context = context
    return previous
