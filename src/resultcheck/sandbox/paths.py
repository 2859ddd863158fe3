"""Path-safety checks for files staged into a sandbox."""

from __future__ import annotations

import os
import re
from pathlib import Path, PurePath

from resultcheck.errors import ErrorContext, InvalidPathError

_WINDOWS_ABSOLUTE = re.compile(r"^[A-Za-z]:|^\\\\|^/")
_POSIX_ABSOLUTE = re.compile(r"^/")
_SEPARATORS = re.compile(r"[/\\]")


def is_absolute_path(path: str, windows: bool | None = None) -> bool:
    """Check whether ``path`` is absolute on the given platform.

    On Windows a drive letter, a UNC prefix or a leading slash counts as
    absolute; elsewhere only a leading slash does.
    """
    if windows is None:
        windows = os.name == "nt"
    pattern = _WINDOWS_ABSOLUTE if windows else _POSIX_ABSOLUTE
    return pattern.match(path) is not None


def path_components(path: str) -> list[str]:
    """Split on both separator styles, regardless of platform."""
    return _SEPARATORS.split(path)


def validate_relative_path(path: str | os.PathLike[str], windows: bool | None = None) -> str:
    """Reject absolute paths and ``..`` components.

    Only components exactly equal to ``..`` are rejected, so a file called
    ``file..txt`` is fine.

    Returns:
        The path as a string.

    Raises:
        InvalidPathError: If the path is absolute or traverses upward.
    """
    text = os.fspath(path)
    if is_absolute_path(text, windows=windows):
        raise InvalidPathError(
            f"Absolute paths are not allowed. Please use relative paths only: {text}",
            context=ErrorContext(path=text),
        )
    return reject_traversal(text)


def reject_traversal(path: str | os.PathLike[str]) -> str:
    """Reject paths with a ``..`` component, absolute or not."""
    text = os.fspath(path)
    if ".." in path_components(text):
        raise InvalidPathError(
            f"Path traversal (e.g., '..') is not allowed for security reasons: {text}",
            context=ErrorContext(path=text),
        )
    return text


def staging_target(sandbox_path: Path, path: str | os.PathLike[str]) -> Path:
    """Location inside the sandbox that mirrors ``path``.

    Absolute paths lose their drive/root so they nest under the sandbox
    instead of replacing it.
    """
    pure = PurePath(path)
    if pure.anchor:
        pure = pure.relative_to(pure.anchor)
    return sandbox_path / pure
