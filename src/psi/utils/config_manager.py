"""
Configuration Manager for test runs.

Builds a ``RunConfig`` from command-line arguments, optionally layered over a
JSON or YAML configuration file whose string values may reference environment
variables as ``${VAR}`` or ``${VAR:-default}``.
"""

import argparse
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from ..handlers.error_handler import ConfigurationError


VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class RunConfig:
    """Options that shape one run of the engine."""

    filter_pattern: Optional[str] = None
    output_path: Optional[str] = None
    color: Optional[bool] = None
    show_summary: bool = True
    failed_output_only: bool = False
    list_tests: bool = False
    show_help: bool = False
    log_level: str = 'WARNING'
    log_file: Optional[str] = None
    config_file: Optional[str] = None
    paths: List[str] = field(default_factory=list)


class _ArgumentParser(argparse.ArgumentParser):
    """Parser that reports problems instead of exiting the interpreter."""

    def error(self, message):
        raise ConfigurationError(message)


class ConfigManager:
    """
    Run configuration manager.

    Command-line options always win over values read from a config file.
    """

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

    # config file key -> RunConfig attribute
    FILE_KEYS = {
        'filter': 'filter_pattern',
        'output': 'output_path',
        'color': 'color',
        'summary': 'show_summary',
        'failed_output_only': 'failed_output_only',
        'log_level': 'log_level',
        'log_file': 'log_file',
        'paths': 'paths',
    }

    # Options that carry their value after '='; never rewritten
    VALUE_PREFIXES = ('--filter=', '--output=', '--config=', '--log-level=', '--log-file=')

    # Switches are recognized by prefix, checked in this order
    SWITCH_PREFIXES = ('--help', '--failed-output-only', '--list', '--no-color', '--no-summary')

    def __init__(self, prog: str = 'psi'):
        """Initialize the configuration manager."""
        self.logger = logging.getLogger('psi.config_manager')
        self.prog = prog
        self._env_vars_used = set()
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = _ArgumentParser(
            prog=self.prog,
            description="Run the registered unit tests. By default every registered test runs.",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            add_help=False,
            allow_abbrev=False,
            epilog="""
Examples:
  %(prog)s tests/                          # Run every test_*.py module under tests/
  %(prog)s tests/ --filter='Suite1*.a'     # Run Suite1Case.a but not Suite1Case.b
  %(prog)s tests/ --output=report.xml      # Also write an XUnit XML report
            """
        )
        parser.add_argument('paths', nargs='*', help='Test files or directories to load')
        parser.add_argument('--help', dest='show_help', action='store_true',
                            help='Display this help and exit')
        parser.add_argument('--list', dest='list_tests', action='store_true',
                            help='List unit tests in the suite and exit')
        parser.add_argument('--filter', dest='filter_pattern', metavar='PATTERN', default=None,
                            help="Filter the test suites to run ('*' matches any characters)")
        parser.add_argument('--output', dest='output_path', metavar='FILE', default=None,
                            help='Write an XUnit XML report (or JSON for a .json path) to FILE')
        parser.add_argument('--no-color', dest='color', action='store_const', const=False, default=None,
                            help='Disable coloured output')
        parser.add_argument('--no-summary', dest='show_summary', action='store_const', const=False,
                            default=None, help='Suppress printing of the test results summary')
        parser.add_argument('--failed-output-only', dest='failed_output_only', action='store_const',
                            const=True, default=None, help='Output only failed test suites')
        parser.add_argument('--config', dest='config_file', metavar='FILE', default=None,
                            help='Load default options from a YAML or JSON file')
        parser.add_argument('--log-level', dest='log_level', metavar='LEVEL', default=None,
                            help='Diagnostic logging level (default: WARNING)')
        parser.add_argument('--log-file', dest='log_file', metavar='FILE', default=None,
                            help='Also write diagnostic logs to FILE')
        return parser

    def format_help(self) -> str:
        return self.parser.format_help()

    def _normalize_switches(self, argv: Sequence[str]) -> List[str]:
        """
        Rewrite every argument that starts with a known switch to that switch.

        ``--no-summary=yes`` and ``--listall`` therefore act as ``--no-summary``
        and ``--list``. Anything matching no known prefix is left for the parser
        to reject.
        """
        normalized = []
        for arg in argv:
            if arg.startswith('--') and not arg.startswith(self.VALUE_PREFIXES):
                for switch in self.SWITCH_PREFIXES:
                    if arg.startswith(switch):
                        if arg != switch:
                            self.logger.debug(f"Treating {arg!r} as {switch}")
                        arg = switch
                        break
            normalized.append(arg)
        return normalized

    def load_run_config(self, argv: Sequence[str]) -> RunConfig:
        """
        Build the run configuration from command-line arguments.

        Args:
            argv: Arguments without the program name

        Returns:
            RunConfig: Validated configuration

        Raises:
            ConfigurationError: On unrecognized options or unusable config files
        """
        args, unknown = self.parser.parse_known_args(self._normalize_switches(argv))
        if unknown:
            raise ConfigurationError(f"Unrecognized option: {unknown[0]}")

        config = RunConfig(show_help=args.show_help, list_tests=args.list_tests)

        if args.config_file:
            config.config_file = args.config_file
            self._apply_file_values(config, self._load_config_file(args.config_file))
            self.logger.info(f"Loaded run configuration from: {args.config_file}")

        # Command-line values override the file
        for attribute in ('filter_pattern', 'output_path', 'color', 'show_summary',
                          'failed_output_only', 'log_level', 'log_file'):
            value = getattr(args, attribute)
            if value is not None:
                setattr(config, attribute, value)
        if args.paths:
            config.paths = list(args.paths)

        self._validate_run_config(config)
        self.logger.debug(f"Final run configuration: {config}")
        return config

    def _apply_file_values(self, config: RunConfig, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            attribute = self.FILE_KEYS.get(key)
            if attribute is None:
                self.logger.warning(f"Ignoring unknown configuration key: {key}")
                continue
            if attribute == 'paths' and isinstance(value, str):
                value = [value]
            setattr(config, attribute, value)

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a JSON or YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Dict: Configuration data with environment variables substituted

        Raises:
            ConfigurationError: If file loading fails
        """
        path = Path(config_path)

        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        if not path.is_file():
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()

            if path.suffix.lower() == '.json':
                data = json.loads(content)
            else:
                data = yaml.safe_load(content)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in configuration file: {str(e)}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {str(e)}")
        except OSError as e:
            raise ConfigurationError(f"Error reading configuration file: {str(e)}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

        return self._substitute_environment_variables(data)

    def _substitute_environment_variables(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Substitute environment variables in configuration values.

        Args:
            config: Configuration dictionary

        Returns:
            Dict: Configuration with environment variables substituted
        """
        def substitute_value(value):
            if isinstance(value, str):
                for match in self.ENV_VAR_PATTERN.findall(value):
                    if ':-' in match:
                        var_name, default_value = match.split(':-', 1)
                    else:
                        var_name, default_value = match, None

                    env_value = os.environ.get(var_name.strip(), default_value)

                    if env_value is None:
                        self.logger.warning(f"Environment variable not found: {var_name}")
                        continue

                    self._env_vars_used.add(var_name.strip())
                    value = value.replace(f"${{{match}}}", str(env_value))

                return value
            elif isinstance(value, dict):
                return {k: substitute_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [substitute_value(item) for item in value]
            else:
                return value

        substituted_config = substitute_value(config)

        if self._env_vars_used:
            self.logger.info(f"Substituted environment variables: {', '.join(sorted(self._env_vars_used))}")

        return substituted_config

    def _validate_run_config(self, config: RunConfig) -> None:
        """
        Validate the merged configuration.

        Raises:
            ConfigurationError: If a value is unusable
        """
        level = str(config.log_level).upper()
        if level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: {config.log_level}. Valid levels: {', '.join(VALID_LOG_LEVELS)}"
            )
        config.log_level = level

        for attribute in ('color', 'show_summary', 'failed_output_only'):
            value = getattr(config, attribute)
            if value is not None and not isinstance(value, bool):
                raise ConfigurationError(f"Option '{attribute}' must be true or false, got: {value!r}")

        if config.filter_pattern is not None:
            config.filter_pattern = str(config.filter_pattern)

        if not isinstance(config.paths, list):
            raise ConfigurationError("Option 'paths' must be a list")
