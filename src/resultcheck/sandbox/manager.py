"""Sandbox creation, staging and teardown."""

from __future__ import annotations

import logging
import os
import secrets
import shutil
import stat
import string
import sys
import tempfile
import warnings
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from resultcheck.config import load_config
from resultcheck.errors import (
    ErrorContext,
    InvalidSandboxError,
    InvalidStartPathError,
    MissingInputWarning,
    NoSandboxError,
    RootNotFoundError,
    SandboxCreateError,
    SandboxWarning,
)
from resultcheck.root import find_root
from resultcheck.sandbox.paths import validate_relative_path

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_SUFFIX_LENGTH = 8


@dataclass(frozen=True)
class Sandbox:
    """Handle to an isolated working directory.

    Attributes:
        id: Unique identifier (timestamp plus random suffix).
        path: Absolute path of the sandbox directory.

    Using the handle as a context manager removes the directory on exit.
    """

    id: str
    path: Path

    def exists(self) -> bool:
        return self.path.is_dir()

    def __enter__(self) -> Sandbox:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self.exists():
            default_manager.cleanup(self)


def generate_sandbox_id() -> str:
    """Build a collision-resistant sandbox identifier."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"sandbox_{timestamp}_{suffix}"


def resolve_root_or_cwd() -> Path:
    """Project root, or the current directory when none can be found."""
    try:
        return find_root()
    except (RootNotFoundError, InvalidStartPathError) as e:
        cwd = Path.cwd()
        logger.info("No project root found (%s); resolving files against %s", e.message, cwd)
        return cwd


def _make_writable_and_retry(func: Any, path: str, exc: Any) -> None:
    os.chmod(path, stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC)
    func(path)


class SandboxManager:
    """Creates and tracks sandboxes.

    The manager remembers the most recently created sandbox so that callers
    may omit the handle in later calls. Code that runs several sandboxes at
    once should pass explicit handles and may use its own manager.

    Example:
        >>> manager = SandboxManager()
        >>> sandbox = manager.setup(["data/input.csv"])
        >>> manager.cleanup(sandbox)
        True
    """

    def __init__(self) -> None:
        self._last: Sandbox | None = None

    @property
    def last(self) -> Sandbox | None:
        """The most recently created sandbox still being tracked."""
        return self._last

    def reset(self) -> None:
        """Forget the tracked default sandbox without touching the disk."""
        self._last = None

    def resolve(self, sandbox: Sandbox | None = None) -> Sandbox:
        """Return the explicit sandbox, or the tracked default.

        Raises:
            NoSandboxError: If neither is available.
            InvalidSandboxError: If ``sandbox`` is not a Sandbox handle.
        """
        if sandbox is None:
            if self._last is None:
                raise NoSandboxError()
            return self._last
        if not isinstance(sandbox, Sandbox):
            raise InvalidSandboxError(
                context=ErrorContext(extra={"received_type": type(sandbox).__name__}),
            )
        return sandbox

    def setup(
        self,
        files: str | os.PathLike[str] | Iterable[str | os.PathLike[str]] = (),
        temp_base: str | os.PathLike[str] | None = None,
    ) -> Sandbox:
        """Create a sandbox and copy files into it, preserving structure.

        Args:
            files: Paths relative to the project root. Missing files are
                skipped with a MissingInputWarning.
            temp_base: Directory to create the sandbox in. Defaults to the
                configured ``sandbox_base`` or the system temp directory.

        Returns:
            The new Sandbox handle, also remembered as the default.

        Raises:
            InvalidPathError: For absolute paths or ``..`` components.
            SandboxCreateError: If the directory cannot be created.
        """
        if isinstance(files, (str, os.PathLike)):
            files = [files]
        requested = [validate_relative_path(f) for f in files]

        sandbox_id = generate_sandbox_id()
        project_root = resolve_root_or_cwd()

        if temp_base is None:
            temp_base = load_config(project_root).sandbox_base or tempfile.gettempdir()
        sandbox_path = Path(temp_base) / sandbox_id

        try:
            sandbox_path.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            raise SandboxCreateError(
                f"Failed to create sandbox directory: {e}",
                context=ErrorContext(path=str(sandbox_path), sandbox_id=sandbox_id),
                cause=e,
            ) from e
        if not sandbox_path.is_dir():
            raise SandboxCreateError(
                f"Failed to create sandbox directory: {sandbox_path}",
                context=ErrorContext(path=str(sandbox_path), sandbox_id=sandbox_id),
            )

        sandbox = Sandbox(id=sandbox_id, path=sandbox_path.resolve())

        for relative in requested:
            self._stage(project_root, sandbox, relative)

        self._last = sandbox
        logger.info("Created sandbox %s at %s", sandbox.id, sandbox.path)
        return sandbox

    def _stage(self, project_root: Path, sandbox: Sandbox, relative: str) -> None:
        source = project_root / relative
        if not source.is_file():
            warnings.warn(MissingInputWarning(f"File not found, skipping: {relative}"), stacklevel=3)
            return

        target = sandbox.path / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target, follow_symlinks=True)
        except OSError as e:
            warnings.warn(
                MissingInputWarning(f"Failed to copy file {relative}: {e}"),
                stacklevel=3,
            )
            return
        logger.debug("Staged %s into sandbox %s", relative, sandbox.id)

    def cleanup(self, sandbox: Sandbox | None = None, force: bool = True) -> bool:
        """Remove a sandbox directory and all its contents.

        Args:
            sandbox: Sandbox to remove. Defaults to the tracked sandbox.
            force: Make read-only entries writable so they can be removed.

        Returns:
            True if the directory was removed, False otherwise.

        Raises:
            NoSandboxError: If no sandbox was given and none is tracked.
            InvalidSandboxError: If ``sandbox`` is not a Sandbox handle.
        """
        sandbox = self.resolve(sandbox)

        if not sandbox.path.is_dir():
            warnings.warn(
                SandboxWarning(f"Sandbox directory does not exist: {sandbox.path}"),
                stacklevel=2,
            )
            return False

        try:
            if force and sys.version_info >= (3, 12):
                shutil.rmtree(sandbox.path, onexc=_make_writable_and_retry)
            elif force:
                shutil.rmtree(sandbox.path, onerror=_make_writable_and_retry)
            else:
                shutil.rmtree(sandbox.path)
        except OSError as e:
            warnings.warn(
                SandboxWarning(f"Failed to clean up sandbox directory: {e}"),
                stacklevel=2,
            )
            return False

        if self._last is not None and self._last.path == sandbox.path:
            self._last = None
        logger.info("Removed sandbox %s", sandbox.id)
        return True


default_manager = SandboxManager()


def setup_sandbox(
    files: str | os.PathLike[str] | Iterable[str | os.PathLike[str]] = (),
    temp_base: str | os.PathLike[str] | None = None,
) -> Sandbox:
    """Create a sandbox with the default manager. See SandboxManager.setup."""
    return default_manager.setup(files, temp_base=temp_base)


def cleanup_sandbox(sandbox: Sandbox | None = None, force: bool = True) -> bool:
    """Remove a sandbox with the default manager. See SandboxManager.cleanup."""
    return default_manager.cleanup(sandbox, force=force)
