"""
Logging setup for the ``psi`` logger hierarchy.

Diagnostic logs go to stderr so that stdout carries only the test report.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional


LOGGER_NAME = 'psi'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LoggingHandler:
    """
    Configures the ``psi`` logger for one command-line invocation.

    Calling ``setup_logging`` again replaces the handlers installed by an
    earlier call, so repeated ``psi.main()`` calls never duplicate log lines.
    """

    def __init__(self, log_level: str = "WARNING", log_file: Optional[str] = None):
        self.log_level = getattr(logging, log_level.upper(), logging.WARNING)
        self.log_file = log_file

    def _build_handlers(self) -> List[logging.Handler]:
        handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]

        if self.log_file:
            log_path = Path(self.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path, encoding='utf-8'))

        formatter = logging.Formatter(LOG_FORMAT)
        for handler in handlers:
            handler.setLevel(self.log_level)
            handler.setFormatter(formatter)
        return handlers

    def setup_logging(self) -> logging.Logger:
        """
        Install fresh handlers on the ``psi`` logger.

        Returns:
            logging.Logger: The configured ``psi`` logger
        """
        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(self.log_level)

        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        for handler in self._build_handlers():
            logger.addHandler(handler)

        logger.debug(f"Logging configured at {logging.getLevelName(self.log_level)}"
                     + (f", file: {self.log_file}" if self.log_file else ""))
        return logger
