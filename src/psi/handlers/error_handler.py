"""
Error taxonomy and error handling for the Psi test engine.

Assertion failures never travel as ordinary exceptions: a failed Check only
flips the execution state and a failed Require raises ``TestAbort``, which the
engine catches for that single test. The only process-fatal path is
``ErrorHandler.abort_process``.
"""

import logging
import sys
import traceback
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional


EXIT_CONFIGURATION_ERROR = 2
EXIT_FATAL = 3


class PsiError(Exception):
    """Base class for test engine errors."""
    pass


class ConfigurationError(PsiError):
    """Raised for unrecognized options and unusable configuration sources."""
    pass


class TestAbort(BaseException):
    """
    Control signal raised by a failed Require.

    Derives from BaseException so an ``except Exception`` inside a test body
    cannot swallow it. Caught by the engine around exactly one test invocation.
    """

    # keeps pytest from collecting this class
    __test__ = False


class ErrorHandler:
    def __init__(self, stream=None):
        self.logger = logging.getLogger('psi.error_handler')
        self.stream = stream
        self._errors: List[Dict[str, Any]] = []

    def log_error(self, error: BaseException, test_name: Optional[str] = None) -> str:
        """
        Record an unexpected exception raised by a test body.

        Args:
            error: The exception that escaped the test body
            test_name: Name of the test that raised it

        Returns:
            str: Formatted traceback text for the console report
        """
        error_type = type(error).__name__
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        tb = ''.join(traceback.format_exception(type(error), error, error.__traceback__))

        message = f"[{timestamp}] {error_type}: {error}"
        if test_name:
            message += f" | Test: {test_name}"

        self.logger.error(message)
        self.logger.debug(tb)

        self._errors.append({
            'type': error_type,
            'message': str(error),
            'test': test_name,
        })
        return tb

    def get_error_summary(self) -> Dict[str, Any]:
        """
        Return a summary of all errors recorded during the run.

        Returns:
            Dict[str, Any]: Error statistics and the first few error details
        """
        error_counts = Counter(error['type'] for error in self._errors)
        return {
            'total_errors': len(self._errors),
            'error_types': dict(error_counts),
            'most_common_errors': error_counts.most_common(5),
            'error_details': self._errors[:10]
        }

    def reset(self):
        self._errors = []

    def abort_process(self, message: str) -> None:
        """
        Terminate the whole process for programmer misuse.

        Used when an assertion fails outside a running test or when a negative
        length reaches a bounded comparison. Never returns.
        """
        self.logger.critical(message)
        stream = self.stream or sys.stdout
        stream.write(f"FATAL: {message}\n")
        stream.flush()
        raise SystemExit(EXIT_FATAL)


# Global error handler instance
_error_handler = None


def get_error_handler() -> ErrorHandler:
    """
    Get the global error handler instance.

    Returns:
        ErrorHandler instance
    """
    global _error_handler

    if _error_handler is None:
        _error_handler = ErrorHandler()

    return _error_handler
