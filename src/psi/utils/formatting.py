"""
Formatting helpers shared by the assertions and the reporters.

Operand values are described through a small tagged variant (``ValueKind``)
instead of per-type print functions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .console import Colors, Console


class ValueKind(Enum):
    """Kinds of operand values an assertion can print"""

    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    POINTER = "pointer"
    BUFFER = "buffer"
    OBJECT = "object"


@dataclass(frozen=True)
class DescribedValue:
    kind: ValueKind
    text: str

    def __str__(self) -> str:
        return self.text


def to_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, memoryview):
        return value.tobytes()
    return bytes(value)


def describe_value(value: Any) -> DescribedValue:
    """
    Classify a runtime value and render it for a failure report.

    Args:
        value: Any operand passed to an assertion

    Returns:
        DescribedValue: The value kind and its printable text
    """
    if value is None:
        return DescribedValue(ValueKind.POINTER, "NULL")
    if isinstance(value, (bool, int)):
        return DescribedValue(ValueKind.INTEGER, str(value))
    if isinstance(value, float):
        return DescribedValue(ValueKind.FLOAT, f"{value:f}")
    if isinstance(value, str):
        return DescribedValue(ValueKind.STRING, f'"{value}"')
    if isinstance(value, (bytes, bytearray, memoryview)):
        data = to_bytes(value)
        return DescribedValue(ValueKind.BUFFER, "<" + " ".join(f"{b:02X}" for b in data) + ">")
    if type(value).__repr__ is object.__repr__:
        return DescribedValue(ValueKind.POINTER, f"0x{id(value):x}")
    return DescribedValue(ValueKind.OBJECT, repr(value))


def format_duration(nanoseconds: float) -> str:
    """
    Render a duration using the unit that fits its magnitude.

    1-2 digits stay in nanoseconds, 3-5 become microseconds, 6-8 milliseconds
    and anything larger seconds.
    """
    digits = len(str(int(nanoseconds))) if int(nanoseconds) > 0 else 0

    if digits <= 2:
        return f"{nanoseconds:.0f}ns"
    if digits <= 5:
        return f"{nanoseconds / 1000:.2f}us"
    if digits <= 8:
        return f"{nanoseconds / 1000000:.2f}ms"
    return f"{nanoseconds / 1000000000:.2f}s"


def format_hex_buffer(buff: bytes, ref: bytes, size: int, console: Console) -> str:
    """
    Render the first ``size`` bytes of ``buff`` as hex pairs.

    Bytes that differ from ``ref`` at the same position are highlighted, in
    bright yellow when colour is on and bracketed otherwise.
    """
    parts = []
    for i, byte in enumerate(buff[:size]):
        text = f"{byte:02X}"
        if i >= len(ref) or ref[i] != byte:
            text = console.colorize(text, Colors.BRIGHT_YELLOW) if console.color else f"[{text}]"
        parts.append(text)
    return console.colorize("<", Colors.CYAN) + " ".join(parts) + console.colorize(">", Colors.CYAN)


def _is_numeric_literal(text: str) -> bool:
    dots = 0
    for ch in text:
        if ch.isdigit():
            continue
        if ch == '.':
            dots += 1
            if dots > 1:
                return False
            continue
        return False
    return True


def should_decompose(actual: str, expected: Optional[str], is_string_cmp: bool) -> bool:
    """
    Decide whether the "In macro" line adds information.

    For scalar comparisons it does unless both operands are plain numeric
    literals. For string comparisons it does when either operand is a call or
    is not a quoted literal.
    """
    if not is_string_cmp:
        if not _is_numeric_literal(actual):
            return True
        return expected is not None and not _is_numeric_literal(expected)

    expected = expected or ""
    if '(' in actual or '(' in expected:
        return True
    return actual[:1] not in ('"', "'") or expected[:1] not in ('"', "'")
