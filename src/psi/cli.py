"""
Command-line entry point.

Used both as the ``psi`` command, which imports test modules from the given
paths, and from a test module's own ``if __name__ == "__main__"`` block, where
the tests are already registered.
"""

import sys
from typing import Optional, Sequence, TextIO

from .core.discovery import load_test_paths
from .core.engine import TestEngine
from .core.registry import TestRegistry, get_registry, use_registry
from .handlers.error_handler import EXIT_CONFIGURATION_ERROR, ConfigurationError, get_error_handler
from .handlers.logging_handler import LoggingHandler
from .utils.config_manager import ConfigManager
from .utils.console import Console


MAX_EXIT_CODE = 255


def main(argv: Optional[Sequence[str]] = None, registry: Optional[TestRegistry] = None,
         stream: Optional[TextIO] = None) -> int:
    """
    Parse options, then list or run the registered tests.

    Args:
        argv: Arguments without the program name; defaults to ``sys.argv[1:]``
        registry: Registry to run; defaults to the process-wide one
        stream: Report output; defaults to stdout

    Returns:
        int: Number of failed tests (at most 255), 0 for --help and --list,
        2 for configuration errors
    """
    argv = sys.argv[1:] if argv is None else list(argv)
    out = stream if stream is not None else sys.stdout
    registry = registry if registry is not None else get_registry()
    config_manager = ConfigManager()

    try:
        config = config_manager.load_run_config(argv)
    except ConfigurationError as e:
        out.write(f"ERROR: {e}\n")
        out.write(f"Try '{config_manager.prog} --help' for more information.\n")
        out.flush()
        return EXIT_CONFIGURATION_ERROR

    logger = LoggingHandler(config.log_level, config.log_file).setup_logging()

    if config.show_help:
        out.write(config_manager.format_help())
        out.flush()
        return 0

    try:
        with use_registry(registry):
            load_test_paths(config.paths)
    except ConfigurationError as e:
        logger.error(str(e))
        out.write(f"ERROR: {e}\n")
        out.flush()
        return EXIT_CONFIGURATION_ERROR

    console = Console(out, color=config.color)
    engine = TestEngine(registry=registry, config=config, console=console,
                        error_handler=get_error_handler())

    if config.list_tests:
        engine.list_tests()
        return 0

    failed = engine.execute()
    return min(failed, MAX_EXIT_CODE)


if __name__ == "__main__":
    sys.exit(main())
