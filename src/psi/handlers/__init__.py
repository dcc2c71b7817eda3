"""
Logging and error handling for the Psi test engine.
"""

from .error_handler import (
    EXIT_CONFIGURATION_ERROR,
    EXIT_FATAL,
    ConfigurationError,
    ErrorHandler,
    PsiError,
    TestAbort,
    get_error_handler,
)
from .logging_handler import LoggingHandler

__all__ = [
    "EXIT_CONFIGURATION_ERROR",
    "EXIT_FATAL",
    "ConfigurationError",
    "ErrorHandler",
    "PsiError",
    "TestAbort",
    "get_error_handler",
    "LoggingHandler",
]
