"""Project root resolution.

The root is the nearest directory, walking outward from the start path,
that carries one of these markers (checked in this order at each level):

1. a ``resultcheck.yml`` configuration file
2. a file ending in ``.pyproj``
3. a ``.git`` directory
"""

from __future__ import annotations

import logging
import os
import warnings
from pathlib import Path

from resultcheck.config import CONFIG_FILENAME
from resultcheck.context import get_execution_context
from resultcheck.errors import (
    ErrorContext,
    InvalidStartPathError,
    RootFallbackWarning,
    RootNotFoundError,
)

logger = logging.getLogger(__name__)

PROJECT_FILE_SUFFIX = ".pyproj"
VCS_ROOT_MARKER = ".git"


def has_config_file(directory: Path) -> bool:
    return (directory / CONFIG_FILENAME).is_file()


def has_project_file(directory: Path) -> bool:
    try:
        entries = list(directory.iterdir())
    except OSError:
        return False
    return any(
        entry.name.endswith(PROJECT_FILE_SUFFIX) and entry.is_file() for entry in entries
    )


def is_vcs_root(directory: Path) -> bool:
    return (directory / VCS_ROOT_MARKER).is_dir()


ROOT_CRITERIA = (has_config_file, has_project_file, is_vcs_root)


def default_start_path() -> Path:
    """Pick the directory a root search starts from.

    Inside a strict-mode run the caller's pre-sandbox directory is used, so
    scripts executing in a temp directory still find the real project.
    """
    ctx = get_execution_context()
    if ctx is not None and ctx.strict_mode and ctx.original_working_dir is not None:
        if ctx.original_working_dir.is_dir():
            return ctx.original_working_dir
        warnings.warn(
            RootFallbackWarning(
                f"Original working directory no longer exists: {ctx.original_working_dir}; "
                "searching from the current directory instead"
            ),
            stacklevel=3,
        )
    return Path.cwd()


def find_root(start_path: str | os.PathLike[str] | None = None) -> Path:
    """Find the project root directory.

    Args:
        start_path: Directory to start searching from. Defaults to the
            pre-sandbox working directory during a sandboxed run, else the
            current working directory.

    Returns:
        Absolute, resolved path of the project root.

    Raises:
        InvalidStartPathError: If the start path does not exist.
        RootNotFoundError: If no ancestor directory carries a marker.
    """
    start = Path(start_path) if start_path is not None else default_start_path()

    if not start.exists():
        raise InvalidStartPathError(
            f"Start path does not exist: {start}",
            context=ErrorContext(path=str(start)),
        )

    start = start.resolve()
    if start.is_file():
        start = start.parent

    for directory in (start, *start.parents):
        for criterion in ROOT_CRITERIA:
            if criterion(directory):
                logger.debug("Project root %s matched %s", directory, criterion.__name__)
                return directory

    raise RootNotFoundError(context=ErrorContext(path=str(start)))
