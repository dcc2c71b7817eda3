"""
Test helper utilities.

This module provides common helper functions for tests.
"""

import textwrap
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List

from psi.core.registry import TestRegistry


def write_test_module(directory: Path, name: str, source: str) -> Path:
    """Write a dedented test module into ``directory`` and return its path."""
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source), encoding='utf-8')
    return path


def register_many(registry: TestRegistry, count: int, suite: str = "Bulk") -> List[str]:
    """Register ``count`` passing tests named ``suite.case_<i>``."""
    names = []
    for i in range(count):
        name = f"{suite}.case_{i}"
        registry.register(name, lambda: None)
        names.append(name)
    return names


def report_lines(text: str, prefix: str) -> List[str]:
    """Lines of a console report that start with ``prefix``."""
    return [line for line in text.splitlines() if line.startswith(prefix)]


def parse_xml_report(path: Path) -> ET.Element:
    return ET.parse(path).getroot()
