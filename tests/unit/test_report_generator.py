# tests/unit/test_report_generator.py
import io
import json
import unittest
import xml.etree.ElementTree as ET

from psi.core.engine import RunStatistics, TestRecord
from psi.utils.console import Console
from psi.utils.report_generator import ConsoleReporter, ReportGenerator


def make_records():
    return [
        TestRecord(index=0, name="Alpha.first", passed=True, aborted=False, duration_ns=1500),
        TestRecord(index=1, name="Beta.only", passed=False, aborted=True, duration_ns=2000,
                   failures=["t.py:10: require(x)"]),
        TestRecord(index=3, name="Alpha.second", passed=False, aborted=False, duration_ns=500,
                   failures=["t.py:20: check_eq(a, 1)", "t.py:21: check_eq(b, 2)"]),
    ]


def make_statistics():
    return RunStatistics(total_registered=4, total_skipped=1, total_run=3, total_failed=2,
                         total_warnings=1, failed_indices=[1, 3])


class TestReportGenerator(unittest.TestCase):

    def setUp(self):
        self.generator = ReportGenerator()
        self.records = make_records()
        self.statistics = make_statistics()

    def test_xml_structure(self):
        root = self.generator.build_xml(self.records, self.statistics, 4000)

        self.assertEqual(root.tag, 'testsuites')
        self.assertEqual(root.get('name'), 'All')
        self.assertEqual(root.get('tests'), '3')
        self.assertEqual(root.get('failures'), '2')
        self.assertEqual(root.get('skipped'), '1')

        # suites in first-seen order, cases in registration order
        suites = root.findall('testsuite')
        self.assertEqual([s.get('name') for s in suites], ['Alpha', 'Beta'])
        self.assertEqual([c.get('name') for c in suites[0].findall('testcase')], ['first', 'second'])
        self.assertEqual(suites[0].get('tests'), '2')
        self.assertEqual(suites[0].get('failures'), '1')

    def test_failure_elements(self):
        root = self.generator.build_xml(self.records, self.statistics, 4000)
        cases = {c.get('name'): c for c in root.iter('testcase')}

        self.assertIsNone(cases['first'].find('failure'))

        aborted = cases['only'].find('failure')
        self.assertEqual(aborted.get('type'), 'abort')
        self.assertEqual(aborted.get('message'), 't.py:10: require(x)')

        checked = cases['second'].find('failure')
        self.assertEqual(checked.get('type'), 'check')
        self.assertIn('check_eq(b, 2)', checked.text)

    def test_times_in_seconds(self):
        root = self.generator.build_xml(self.records, self.statistics, 4000)
        cases = {c.get('name'): c for c in root.iter('testcase')}
        self.assertEqual(cases['only'].get('time'), '0.000002')
        self.assertEqual(root.get('time'), '0.000004')

    def test_write_xml_report(self):
        stream = io.StringIO()
        self.generator.write_report(stream, 'out.xml', self.records, self.statistics, 4000)

        text = stream.getvalue()
        self.assertTrue(text.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<testsuites'))
        root = ET.fromstring(text.split('\n', 1)[1])
        self.assertEqual(len(list(root.iter('testcase'))), 3)

    def test_write_json_report(self):
        stream = io.StringIO()
        self.generator.write_report(stream, 'OUT.JSON', self.records, self.statistics, 4000)

        data = json.loads(stream.getvalue())
        self.assertEqual(data['report_metadata']['report_type'], 'test_run')
        self.assertEqual(data['statistics']['total_passed'], 1)
        self.assertEqual([s['name'] for s in data['suites']], ['Alpha', 'Beta'])
        self.assertEqual(data['suites'][1]['cases'][0]['aborted'], True)
        self.assertEqual(data['unexpected_errors'], {'total_errors': 0, 'error_types': {}})

    def test_summary_carries_error_summary(self):
        errors = {'total_errors': 1, 'error_types': {'KeyError': 1}}

        summary = self.generator.build_summary(self.records, self.statistics, 4000, errors)

        self.assertEqual(summary['unexpected_errors'], errors)

    def test_empty_run(self):
        root = self.generator.build_xml([], RunStatistics(), 0)
        self.assertEqual(root.get('tests'), '0')
        self.assertEqual(root.findall('testsuite'), [])


class TestConsoleReporter(unittest.TestCase):

    def setUp(self):
        self.stream = io.StringIO()
        self.reporter = ConsoleReporter(Console(self.stream, color=False))

    def test_run_lines(self):
        self.reporter.run_started(2)
        self.reporter.test_started("Alpha.first")
        self.reporter.test_finished(make_records()[0])
        self.reporter.tests_ran(2)

        self.assertEqual(self.stream.getvalue().splitlines(), [
            "[==========] Running 2 test suites.",
            "[ RUN      ] Alpha.first",
            "[       OK ] Alpha.first (1.50us)",
            "[==========] 2 test suites ran",
        ])

    def test_failed_verdict(self):
        self.reporter.run_finished(make_statistics(), ["Beta.only", "Alpha.second"], 4000)

        lines = self.stream.getvalue().splitlines()
        self.assertIn("[  PASSED  ] 1 suite", lines)
        self.assertIn("[  FAILED  ] 2 suites", lines)
        self.assertIn("FAILED: 2 failed, 1 passed in 4.00us", lines)
        self.assertEqual(lines[-2:], ["  [ FAILED ] Beta.only", "  [ FAILED ] Alpha.second"])

    def test_summary_suppressed(self):
        reporter = ConsoleReporter(Console(self.stream, color=False), show_summary=False)
        reporter.run_finished(make_statistics(), [], 4000)
        self.assertNotIn("Summary:", self.stream.getvalue())

    def test_failed_only_still_prints_failures(self):
        reporter = ConsoleReporter(Console(self.stream, color=False), failed_output_only=True)
        records = make_records()
        reporter.test_started(records[1].name)
        reporter.test_finished(records[0])
        reporter.test_finished(records[1])

        self.assertEqual(self.stream.getvalue(), "[  FAILED  ] Beta.only (2.00us)\n")


if __name__ == '__main__':
    unittest.main()
