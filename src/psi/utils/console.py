"""
Coloured console output for test reports.
"""

import os
import sys
from typing import Optional, TextIO


class Colors:
    """ANSI color codes for terminal output"""

    DEFAULT = "\033[0m"
    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[0;33m"
    BLUE = "\033[0;34m"
    CYAN = "\033[0;36m"
    BRIGHT_RED = "\033[1;31m"
    BRIGHT_GREEN = "\033[1;32m"
    BRIGHT_YELLOW = "\033[1;33m"
    BRIGHT_BLUE = "\033[1;34m"
    BRIGHT_CYAN = "\033[1;36m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


def supports_color(stream: TextIO) -> bool:
    """Colour is on for terminals unless NO_COLOR is set."""
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        # closed stream
        return False


class Console:
    """Writes report text, optionally wrapped in colour codes"""

    def __init__(self, stream: Optional[TextIO] = None, color: Optional[bool] = None):
        self.stream = stream if stream is not None else sys.stdout
        self.color = supports_color(self.stream) if color is None else color

    def colorize(self, text: str, color: Optional[str]) -> str:
        if not self.color or not color or color == Colors.DEFAULT:
            return text
        return f"{color}{text}{Colors.RESET}"

    def write(self, text: str, color: Optional[str] = None) -> None:
        self.stream.write(self.colorize(text, color))

    def line(self, text: str = "", color: Optional[str] = None) -> None:
        self.write(text, color)
        self.stream.write("\n")

    def flush(self) -> None:
        self.stream.flush()
