"""
Test module discovery.

Importing a test module is what registers its tests, so discovery only has to
find the modules and import each of them once.
"""

import fnmatch
import importlib.util
import logging
import sys
from pathlib import Path
from typing import List, Sequence

from ..handlers.error_handler import ConfigurationError


logger = logging.getLogger('psi.discovery')

TEST_FILE_PATTERN = 'test_*.py'

# Directory names never descended into
IGNORE_PATTERNS = [
    '.*',
    '__pycache__',
    'node_modules',
    '*.egg-info',
]


def _is_ignored(path: Path, root: Path) -> bool:
    for part in path.relative_to(root).parts[:-1]:
        if any(fnmatch.fnmatch(part, pattern) for pattern in IGNORE_PATTERNS):
            return True
    return False


def find_test_files(directory: Path) -> List[Path]:
    """
    Find test modules below a directory.

    Args:
        directory: Root directory to scan

    Returns:
        List[Path]: Matching files in sorted order
    """
    files = [
        path for path in sorted(directory.rglob(TEST_FILE_PATTERN))
        if path.is_file() and not _is_ignored(path, directory)
    ]
    logger.debug(f"Found {len(files)} test modules under {directory}")
    return files


def _module_name(path: Path) -> str:
    base = f"psi_tests.{path.stem}"
    name = base
    suffix = 1
    while name in sys.modules and getattr(sys.modules[name], '__file__', None) != str(path):
        suffix += 1
        name = f"{base}_{suffix}"
    return name


def import_test_file(path: Path):
    """
    Import one test module, registering its tests.

    A module that was already imported from the same file is not imported
    again, so its tests are not registered twice.

    Raises:
        ConfigurationError: If the module cannot be imported
    """
    path = path.resolve()
    name = _module_name(path)
    if name in sys.modules:
        logger.debug(f"Already imported: {path}")
        return sys.modules[name]

    spec = importlib.util.spec_from_file_location(name, str(path))
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"Cannot import test module: {path}")

    # lets test modules import their sibling helpers
    parent = str(path.parent)
    if parent not in sys.path:
        sys.path.insert(0, parent)

    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        del sys.modules[name]
        raise ConfigurationError(f"Error importing test module {path}: {type(e).__name__}: {e}") from e

    logger.info(f"Imported test module: {path}")
    return module


def load_test_paths(paths: Sequence[str]) -> List[Path]:
    """
    Import every test module named by ``paths``.

    Directories are searched recursively for ``test_*.py``; files are
    imported as given.

    Args:
        paths: Files or directories

    Returns:
        List[Path]: Imported module files in import order

    Raises:
        ConfigurationError: If a path does not exist or a module fails to import
    """
    loaded = []
    for raw in paths:
        path = Path(raw)
        if not path.exists():
            raise ConfigurationError(f"Test path not found: {raw}")

        files = find_test_files(path) if path.is_dir() else [path]
        for file_path in files:
            import_test_file(file_path)
            loaded.append(file_path)

    return loaded
