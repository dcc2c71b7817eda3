"""
Test execution engine.

Runs every registered test that passes the filter, in registration order,
collects statistics and hands the results to the console and structured
reporters.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TextIO

from ..handlers.error_handler import ErrorHandler, TestAbort, get_error_handler
from ..utils.config_manager import RunConfig
from ..utils.console import Console
from ..utils.report_generator import ConsoleReporter, ReportGenerator
from .matcher import should_skip
from .registry import TestRegistry, get_registry
from .state import RunContext, activate_context


class EnginePhase(Enum):
    IDLE = "idle"
    CONFIGURING = "configuring"
    RUNNING = "running"
    REPORTING = "reporting"
    DONE = "done"


@dataclass
class RunStatistics:
    """
    Counters of one run.

    Invariants: ``total_run + total_skipped == total_registered`` and
    ``total_failed == len(failed_indices)``.
    """

    total_registered: int = 0
    total_skipped: int = 0
    total_run: int = 0
    total_failed: int = 0
    total_warnings: int = 0
    failed_indices: List[int] = field(default_factory=list)

    @property
    def total_passed(self) -> int:
        return self.total_run - self.total_failed


@dataclass
class TestRecord:
    """Outcome of one executed test."""

    __test__ = False

    index: int
    name: str
    passed: bool
    aborted: bool
    duration_ns: int
    failures: List[str] = field(default_factory=list)

    @property
    def suite(self) -> str:
        return self.name.split('.', 1)[0]

    @property
    def case(self) -> str:
        parts = self.name.split('.', 1)
        return parts[1] if len(parts) > 1 else parts[0]


class TestEngine:
    """
    Sequential test runner.

    A failing test never stops the run: a failed Require or an unexpected
    exception ends only the test that raised it.
    """

    __test__ = False

    def __init__(self, registry: Optional[TestRegistry] = None,
                 config: Optional[RunConfig] = None,
                 console: Optional[Console] = None,
                 reporter: Optional[ConsoleReporter] = None,
                 report_generator: Optional[ReportGenerator] = None,
                 error_handler: Optional[ErrorHandler] = None):
        self.registry = registry if registry is not None else get_registry()
        self.config = config or RunConfig()
        self.console = console or Console(color=self.config.color)
        self.reporter = reporter or ConsoleReporter(
            self.console,
            failed_output_only=self.config.failed_output_only,
            show_summary=self.config.show_summary,
        )
        self.report_generator = report_generator or ReportGenerator()
        self.error_handler = error_handler or get_error_handler()
        self.logger = logging.getLogger('psi.engine')

        self.phase = EnginePhase.IDLE
        self.records: List[TestRecord] = []
        self.statistics = RunStatistics()
        self.error_summary: Dict[str, Any] = {}

    def _open_report(self) -> Optional[TextIO]:
        path = self.config.output_path
        if not path:
            return None
        try:
            return open(path, 'w', encoding='utf-8')
        except OSError as e:
            self.logger.warning(f"Cannot open report file {path}, no structured report will be written: {e}")
            return None

    def run(self) -> RunStatistics:
        """
        Execute one full run.

        Returns:
            RunStatistics: Counters of the completed run
        """
        self.phase = EnginePhase.CONFIGURING
        self.records = []
        statistics = RunStatistics(total_registered=self.registry.count)
        pattern = self.config.filter_pattern

        self.error_handler.reset()
        skipped = [should_skip(pattern, entry.name) for entry in self.registry]
        statistics.total_skipped = sum(skipped)
        self.logger.info(
            f"Starting run: {statistics.total_registered} registered, "
            f"{statistics.total_skipped} skipped by filter {pattern!r}"
        )

        report_stream = self._open_report()
        try:
            context = RunContext(self.console)
            previous = activate_context(context)
            run_start = time.perf_counter_ns()
            try:
                self.phase = EnginePhase.RUNNING
                self.reporter.run_started(statistics.total_registered - statistics.total_skipped)

                for index, entry in enumerate(self.registry):
                    if skipped[index]:
                        self.logger.debug(f"Skipping: {entry.name}")
                        continue

                    record = self._run_one(context, index, entry)
                    self.records.append(record)
                    statistics.total_run += 1
                    if not record.passed:
                        statistics.total_failed += 1
                        statistics.failed_indices.append(index)

                self.reporter.tests_ran(statistics.total_run)
            finally:
                activate_context(previous)
            duration_ns = time.perf_counter_ns() - run_start
            statistics.total_warnings = context.warnings
            self.error_summary = self.error_handler.get_error_summary()
            if self.error_summary['total_errors']:
                self.logger.warning(
                    f"{self.error_summary['total_errors']} test(s) raised unexpected exceptions: "
                    f"{self.error_summary['error_types']}"
                )

            self.phase = EnginePhase.REPORTING
            failed_names = [self.registry.get(i).name for i in statistics.failed_indices]
            self.reporter.run_finished(statistics, failed_names, duration_ns)

            if report_stream is not None:
                self.report_generator.write_report(
                    report_stream, self.config.output_path, self.records, statistics, duration_ns,
                    errors=self.error_summary,
                )
        finally:
            if report_stream is not None:
                report_stream.close()

        self.statistics = statistics
        self.phase = EnginePhase.DONE
        self.logger.info(
            f"Run completed: {statistics.total_run} run, {statistics.total_failed} failed, "
            f"{statistics.total_warnings} warnings"
        )
        return statistics

    def _run_one(self, context: RunContext, index: int, entry) -> TestRecord:
        self.reporter.test_started(entry.name)
        context.enter_test(index, entry.name)
        start = time.perf_counter_ns()
        try:
            entry.body()
        except TestAbort:
            pass
        except Exception as e:
            tb = self.error_handler.log_error(e, entry.name)
            self.reporter.test_error(tb)
            context.state.mark_aborted(f"{type(e).__name__}: {e}")
        finally:
            elapsed = time.perf_counter_ns() - start
            context.leave_test()

        state = context.state
        record = TestRecord(
            index=index,
            name=entry.name,
            passed=not state.failed,
            aborted=state.abort_requested,
            duration_ns=elapsed,
            failures=list(state.failures),
        )
        self.reporter.test_finished(record)
        return record

    def execute(self) -> int:
        """Run and return the number of failed tests as the exit indicator."""
        return self.run().total_failed

    def list_tests(self, stream: Optional[TextIO] = None) -> List[str]:
        """
        Print every registered name, one per line, without running anything.

        Returns:
            List[str]: The printed names in registration order
        """
        names = self.registry.names()
        out = stream or self.console.stream
        for name in names:
            out.write(f"{name}\n")
        out.flush()
        return names
