"""
Report Generator Utility
Renders run results to the console and to structured XML or JSON reports.
"""

import json
import logging
import xml.etree.ElementTree as ET
from collections import OrderedDict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from .console import Colors, Console
from .formatting import format_duration


FRAMEWORK_VERSION = '1.0.0'


def _plural(count: int) -> str:
    return "suite" if count == 1 else "suites"


class ConsoleReporter:
    """
    Human-readable console report.

    Per-test RUN/OK lines are dropped when only failed output is wanted;
    FAILED lines are always printed.
    """

    def __init__(self, console: Console, failed_output_only: bool = False, show_summary: bool = True):
        self.console = console
        self.failed_output_only = failed_output_only
        self.show_summary = show_summary

    def run_started(self, total_run: int):
        self.console.write("[==========] ", Colors.BRIGHT_GREEN)
        self.console.line(f"Running {total_run} test suites.", Colors.BOLD)

    def test_started(self, name: str):
        if not self.failed_output_only:
            self.console.write("[ RUN      ] ", Colors.BRIGHT_GREEN)
            self.console.line(name)

    def test_error(self, traceback_text: str):
        self.console.write("Unexpected exception raised by the test body:\n", Colors.BRIGHT_RED)
        self.console.write(traceback_text)

    def test_finished(self, record):
        if record.passed:
            if self.failed_output_only:
                return
            self.console.write("[       OK ] ", Colors.BRIGHT_GREEN)
        else:
            self.console.write("[  FAILED  ] ", Colors.BRIGHT_RED)
        self.console.line(f"{record.name} ({format_duration(record.duration_ns)})")

    def tests_ran(self, total_run: int):
        self.console.write("[==========] ", Colors.BRIGHT_GREEN)
        self.console.line(f"{total_run} test suites ran")

    def run_finished(self, statistics, failed_names: List[str], duration_ns: float):
        """
        Print the pass/fail tally, the optional summary block and the verdict.

        Args:
            statistics: RunStatistics of the completed run
            failed_names: Names of the failed tests in registration order
            duration_ns: Wall time of the whole run
        """
        passed = statistics.total_passed
        failed = statistics.total_failed

        self.console.line(f"[  PASSED  ] {passed} {_plural(passed)}", Colors.BRIGHT_GREEN)
        self.console.line(f"[  FAILED  ] {failed} {_plural(failed)}",
                          Colors.BRIGHT_RED if failed > 0 else Colors.DEFAULT)

        if self.show_summary:
            self.console.line()
            self.console.line("Summary:", Colors.BOLD)
            self.console.line(f"    Total test suites:          {statistics.total_registered}")
            self.console.line(f"    Total suites run:           {statistics.total_run}")
            self.console.line(f"    Total warnings generated:   {statistics.total_warnings}")
            self.console.line(f"    Total suites skipped:       {statistics.total_skipped}")
            self.console.line(f"    Total suites failed:        {failed}")

        if failed > 0:
            self.console.write("FAILED: ", Colors.BRIGHT_RED)
            self.console.line(f"{failed} failed, {passed} passed in {format_duration(duration_ns)}")
            for name in failed_names:
                self.console.line(f"  [ FAILED ] {name}", Colors.BRIGHT_RED)
        elif statistics.total_registered > 0:
            self.console.write("SUCCESS: ", Colors.BRIGHT_GREEN)
            self.console.line(f"{passed} test suites passed in {format_duration(duration_ns)}")
        else:
            self.console.write("WARNING: ", Colors.BRIGHT_YELLOW)
            self.console.line("No test suites were found.")
        self.console.flush()


class ReportGenerator:
    """
    Structured report writer.

    One entry per executed test, in registration order, grouped by suite in
    first-seen order. Skipped tests produce no entry.
    """

    def __init__(self):
        self.logger = logging.getLogger('psi.report_generator')

    def write_report(self, stream: TextIO, path: str, records: List[Any],
                     statistics, duration_ns: float,
                     errors: Optional[Dict[str, Any]] = None) -> None:
        """
        Write the report in the format implied by the target path.

        Args:
            stream: Open text stream for the report
            path: Report path; a ``.json`` suffix selects JSON, anything else XML
            records: TestRecords of the executed tests
            statistics: RunStatistics of the run
            duration_ns: Wall time of the whole run
            errors: Error summary of unexpected exceptions, included in JSON reports
        """
        if Path(path).suffix.lower() == '.json':
            json.dump(self.build_summary(records, statistics, duration_ns, errors), stream, indent=2, ensure_ascii=False)
            stream.write("\n")
        else:
            stream.write('<?xml version="1.0" encoding="UTF-8"?>\n')
            stream.write(ET.tostring(self.build_xml(records, statistics, duration_ns), encoding='unicode'))
            stream.write("\n")
        self.logger.info(f"Structured report written to: {path}")

    def _group_by_suite(self, records: List[Any]) -> "OrderedDict[str, List[Any]]":
        suites: "OrderedDict[str, List[Any]]" = OrderedDict()
        for record in records:
            suites.setdefault(record.suite, []).append(record)
        return suites

    def build_xml(self, records: List[Any], statistics, duration_ns: float) -> ET.Element:
        root = ET.Element('testsuites', {
            'name': 'All',
            'tests': str(statistics.total_run),
            'failures': str(statistics.total_failed),
            'skipped': str(statistics.total_skipped),
            'time': f"{duration_ns / 1e9:.6f}",
        })

        for suite, suite_records in self._group_by_suite(records).items():
            suite_element = ET.SubElement(root, 'testsuite', {
                'name': suite,
                'tests': str(len(suite_records)),
                'failures': str(sum(1 for r in suite_records if not r.passed)),
                'time': f"{sum(r.duration_ns for r in suite_records) / 1e9:.6f}",
            })
            for record in suite_records:
                case_element = ET.SubElement(suite_element, 'testcase', {
                    'name': record.case,
                    'classname': suite,
                    'time': f"{record.duration_ns / 1e9:.6f}",
                })
                if not record.passed:
                    failure = ET.SubElement(case_element, 'failure', {
                        'message': record.failures[0] if record.failures else 'failed',
                        'type': 'abort' if record.aborted else 'check',
                    })
                    failure.text = "\n".join(record.failures)

        ET.indent(root)
        return root

    def build_summary(self, records: List[Any], statistics, duration_ns: float,
                      errors: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        suites = []
        for suite, suite_records in self._group_by_suite(records).items():
            suites.append({
                'name': suite,
                'tests': len(suite_records),
                'failures': sum(1 for r in suite_records if not r.passed),
                'cases': [
                    {
                        'name': record.case,
                        'passed': record.passed,
                        'aborted': record.aborted,
                        'duration_seconds': round(record.duration_ns / 1e9, 6),
                        'failures': list(record.failures),
                    }
                    for record in suite_records
                ],
            })

        return {
            'report_metadata': {
                'generated_at': datetime.now().isoformat(),
                'report_type': 'test_run',
                'framework_version': FRAMEWORK_VERSION
            },
            'statistics': {
                'total_registered': statistics.total_registered,
                'total_run': statistics.total_run,
                'total_skipped': statistics.total_skipped,
                'total_failed': statistics.total_failed,
                'total_passed': statistics.total_passed,
                'total_warnings': statistics.total_warnings,
                'duration_seconds': round(duration_ns / 1e9, 6),
            },
            'suites': suites,
            'unexpected_errors': errors or {'total_errors': 0, 'error_types': {}},
        }
